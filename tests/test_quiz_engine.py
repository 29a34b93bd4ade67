"""
Unit tests for the QuizEngine deadlines.
"""
import asyncio
import unittest
from unittest.mock import Mock

from wordgame.quiz_engine import DeadlineExpired, DeadlineTick, QuizEngine, QuizTimer


class TestQuizEngine(unittest.IsolatedAsyncioTestCase):
    """Test cases for arming and cancelling deadlines."""

    def setUp(self):
        self.engine = QuizEngine(session_id="test")
        self.events = []

    async def asyncTearDown(self):
        self.engine.cancel_all()

    async def test_arm_returns_fresh_handles(self):
        first = self.engine.arm(1000, self.events.append)
        second = self.engine.arm(1000, self.events.append)

        self.assertNotEqual(first, second)
        self.assertEqual(self.engine.active_count, 2)

    async def test_deadline_expires_once(self):
        handle = self.engine.arm(50, self.events.append)

        await asyncio.sleep(0.2)

        self.assertEqual(self.events, [DeadlineExpired(handle)])
        self.assertFalse(self.engine.is_running(handle))

    async def test_cancelled_deadline_never_expires(self):
        handle = self.engine.arm(50, self.events.append)

        self.assertTrue(self.engine.cancel(handle))
        await asyncio.sleep(0.15)

        self.assertEqual(self.events, [])
        self.assertEqual(self.engine.active_count, 0)

    async def test_cancel_unknown_handle(self):
        self.assertFalse(self.engine.cancel(999))
        self.assertFalse(self.engine.cancel(None))

    async def test_cancel_after_expiry_reports_not_running(self):
        handle = self.engine.arm(20, self.events.append)
        await asyncio.sleep(0.1)

        self.assertFalse(self.engine.cancel(handle))

    async def test_elapsed_time_readable_after_expiry(self):
        handle = self.engine.arm(20, self.events.append)
        await asyncio.sleep(0.1)

        self.assertGreaterEqual(self.engine.elapsed_ms(handle), 20)
        self.engine.cancel(handle)
        self.assertIsNone(self.engine.elapsed_ms(handle))

    async def test_ticks_before_expiry(self):
        engine = QuizEngine(session_id="ticks", tick_interval_ms=50)
        handle = engine.arm(300, self.events.append)

        await asyncio.sleep(0.45)
        engine.cancel_all()

        ticks = [event for event in self.events if isinstance(event, DeadlineTick)]
        self.assertGreater(len(ticks), 0)
        self.assertTrue(all(tick.handle == handle for tick in ticks))
        self.assertTrue(all(0 <= tick.elapsed_ms <= 300 for tick in ticks))
        self.assertEqual(self.events[-1], DeadlineExpired(handle))

    async def test_cancel_all(self):
        self.engine.arm(1000, self.events.append)
        self.engine.arm(1000, self.events.append)

        self.assertEqual(self.engine.cancel_all(), 2)
        self.assertEqual(self.engine.active_count, 0)

    async def test_uses_injected_clock(self):
        clock = Mock(return_value=10.0)
        engine = QuizEngine(clock=clock)
        handle = engine.arm(5000, self.events.append)

        clock.return_value = 11.25

        self.assertEqual(engine.elapsed_ms(handle), 1250)
        engine.cancel_all()


class TestQuizTimer(unittest.IsolatedAsyncioTestCase):
    """Test cases for QuizTimer countdowns."""

    async def test_countdown_emits_expiry(self):
        events = []
        timer = QuizTimer(1, "test")

        await timer.start_countdown(20, events.append)

        self.assertEqual(events, [DeadlineExpired(1)])
        self.assertFalse(timer.is_cancelled)

    async def test_cancel_stops_countdown(self):
        events = []
        timer = QuizTimer(2, "test")
        timer._task = asyncio.create_task(timer.start_countdown(1000, events.append))
        await asyncio.sleep(0)

        timer.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await timer._task

        self.assertTrue(timer.is_cancelled)
        self.assertEqual(events, [])


if __name__ == '__main__':
    unittest.main()
