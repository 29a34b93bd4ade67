"""
Quiz engine timing for the word game.
Provides cancellable per-question deadlines that report through an event sink.
"""
import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

# Set up logger for timer operations
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeadlineTick:
    """Intermediate timer event used for elapsed-time readouts."""
    handle: int
    elapsed_ms: int


@dataclass(frozen=True)
class DeadlineExpired:
    """Terminal timer event, emitted once when a deadline runs out."""
    handle: int


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_created(session_id: str, handle: int, duration_ms: int) -> None:
        """Log deadline creation."""
        logger.debug(
            f"Timer lifecycle: CREATED - Session {session_id}, Handle {handle}, Duration {duration_ms}ms",
            extra={
                'event_type': 'timer_created',
                'session_id': session_id,
                'handle': handle,
                'duration_ms': duration_ms,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_completion(session_id: str, handle: int, completion_type: str, duration_ms: int) -> None:
        """Log timer completion (natural expiry or cancellation)."""
        logger.debug(
            f"Timer lifecycle: COMPLETED - Session {session_id}, Handle {handle}, Type {completion_type}",
            extra={
                'event_type': 'timer_completed',
                'session_id': session_id,
                'handle': handle,
                'completion_type': completion_type,
                'duration_ms': duration_ms,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(session_id: str, handle: int, from_state: str, to_state: str, reason: str = None) -> None:
        """Log timer state transitions."""
        logger.debug(
            f"Timer lifecycle: STATE_TRANSITION - Session {session_id}, Handle {handle}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'session_id': session_id,
                'handle': handle,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(session_id: str, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Session {session_id}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'session_id': session_id,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_stale_event(session_id: str, details: str) -> None:
        """Log a timer or answer event that lost the race for its question."""
        logger.info(
            f"Timer lifecycle: STALE_EVENT - Session {session_id}: {details}",
            extra={
                'event_type': 'timer_stale_event',
                'session_id': session_id,
                'details': details,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """Countdown for a single question."""

    def __init__(self, handle: int, session_id: str = None, clock: Callable[[], float] = time.monotonic):
        """Initialize the timer."""
        self.handle = handle
        self._task: Optional[asyncio.Task] = None
        self._is_cancelled = False
        self._session_id = session_id
        self._clock = clock
        self._started_at = clock()
        self._duration_ms = 0

    async def start_countdown(
        self,
        duration_ms: int,
        emit: Callable[[Any], Any],
        tick_interval_ms: Optional[int] = None
    ) -> None:
        """
        Run the countdown, emitting ticks and a single expiry event.

        Args:
            duration_ms: Deadline in milliseconds
            emit: Sink receiving DeadlineTick and DeadlineExpired events
            tick_interval_ms: Interval between ticks, no ticks if None
        """
        self._duration_ms = duration_ms
        deadline = self._started_at + duration_ms / 1000
        tick_seconds = tick_interval_ms / 1000 if tick_interval_ms else None

        try:
            while not self._is_cancelled:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                await asyncio.sleep(min(remaining, tick_seconds) if tick_seconds else remaining)
                if tick_seconds and not self._is_cancelled and self._clock() < deadline:
                    emit(DeadlineTick(self.handle, self.elapsed_ms))

            if self._is_cancelled:
                TimerLifecycleLogger.log_timer_completion(
                    self._session_id, self.handle, "cancelled", duration_ms
                )
                return

            TimerLifecycleLogger.log_timer_completion(
                self._session_id, self.handle, "natural_expiry", duration_ms
            )
            emit(DeadlineExpired(self.handle))

        except asyncio.CancelledError:
            self._is_cancelled = True
            TimerLifecycleLogger.log_timer_completion(
                self._session_id, self.handle, "asyncio_cancelled", duration_ms
            )
            raise
        except Exception as e:
            TimerLifecycleLogger.log_timer_error(
                self._session_id, "countdown_execution_error", str(e), "start_countdown"
            )
            raise

    def cancel(self) -> None:
        """Cancel the countdown timer."""
        self._is_cancelled = True
        if self._task and not self._task.done():
            self._task.cancel()
            TimerLifecycleLogger.log_timer_state_transition(
                self._session_id, self.handle, "running", "cancelled", "task cancelled"
            )
        else:
            TimerLifecycleLogger.log_timer_state_transition(
                self._session_id, self.handle, "done", "cancelled", "no active task"
            )

    @property
    def is_cancelled(self) -> bool:
        """Check if timer is cancelled."""
        return self._is_cancelled

    @property
    def elapsed_ms(self) -> int:
        """Milliseconds since the timer was armed."""
        return int((self._clock() - self._started_at) * 1000)


class QuizEngine:
    """
    Arms and cancels question deadlines.

    Each armed deadline gets a fresh integer handle. Events carry the handle
    so the consumer can tell a current deadline from a superseded one.
    """

    def __init__(
        self,
        session_id: str = None,
        tick_interval_ms: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the quiz engine.

        Args:
            session_id: Identifier used in log records
            tick_interval_ms: Interval between tick events, no ticks if None
            clock: Monotonic clock in seconds
        """
        self._session_id = session_id
        self._tick_interval_ms = tick_interval_ms
        self._clock = clock
        self._handles = itertools.count(1)
        self._timers: Dict[int, QuizTimer] = {}  # Handle -> Timer mapping

    def arm(self, duration_ms: int, emit: Callable[[Any], Any]) -> int:
        """
        Arm a deadline. Must be called from a running event loop.

        Args:
            duration_ms: Deadline in milliseconds
            emit: Sink receiving the timer's events

        Returns:
            Handle identifying the new deadline
        """
        handle = next(self._handles)
        timer = QuizTimer(handle, self._session_id, self._clock)
        self._timers[handle] = timer

        timer._task = asyncio.create_task(
            timer.start_countdown(duration_ms, emit, self._tick_interval_ms)
        )

        TimerLifecycleLogger.log_timer_created(self._session_id, handle, duration_ms)
        return handle

    def cancel(self, handle: Optional[int]) -> bool:
        """
        Cancel a deadline and forget its handle.

        Expired deadlines stay registered until cancelled so their elapsed
        time can still be read.

        Args:
            handle: Handle returned by arm, None is ignored

        Returns:
            True if a running deadline was cancelled, False otherwise
        """
        if handle is None:
            return False

        timer = self._timers.pop(handle, None)
        if timer is None:
            return False

        was_running = self.is_task_running(timer)
        timer.cancel()
        return was_running

    def cancel_all(self) -> int:
        """Cancel every running deadline and return how many were cancelled."""
        handles = list(self._timers.keys())
        for handle in handles:
            self.cancel(handle)
        return len(handles)

    def elapsed_ms(self, handle: int) -> Optional[int]:
        """Milliseconds since the deadline was armed, None for unknown handles."""
        timer = self._timers.get(handle)
        return timer.elapsed_ms if timer else None

    def is_running(self, handle: int) -> bool:
        """Check whether a deadline is still counting down."""
        timer = self._timers.get(handle)
        return timer is not None and not timer.is_cancelled and self.is_task_running(timer)

    @staticmethod
    def is_task_running(timer: QuizTimer) -> bool:
        return timer._task is not None and not timer._task.done()

    @property
    def active_count(self) -> int:
        return len(self._timers)
