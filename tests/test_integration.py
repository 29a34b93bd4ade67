"""
Integration tests covering the word file, controller and rendering together.
"""
import json
import logging
import shutil
import tempfile
import unittest

from wordgame.config_manager import ConfigManager
from wordgame.data_manager import DataManager
from wordgame.models import SessionPhase
from wordgame.quiz_controller import QuizController
from wordgame.views import render_state_embed
from tests.test_fixtures import TestFixtures

WAIT_TIMEOUT = 3.0


class TestCompleteGameFlow(unittest.IsolatedAsyncioTestCase):
    """Test complete game sessions from words file to finished snapshot."""

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.files = TestFixtures.create_temp_words_files(self.temp_dir)

        self.config_manager = ConfigManager()
        self.config_manager.set_words_file(str(self.files["valid"]))
        self.data_manager = DataManager(self.config_manager.get_words_file())
        self.controller = QuizController(self.data_manager, self.config_manager, session_id="integration")

        self.rendered = []
        self.controller.subscribe(lambda state: self.rendered.append(render_state_embed(state)))

    async def asyncTearDown(self):
        await self.controller.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    async def test_perfect_game(self):
        """Test answering every question correctly."""
        self.controller.start_session(3, 2000)
        state = await self.controller.wait_for_phase(SessionPhase.ACTIVE, timeout=WAIT_TIMEOUT)

        while state.phase == SessionPhase.ACTIVE:
            self.controller.submit_answer(state.current_question.is_intrinsically_correct)
            await self.controller.drain()
            state = self.controller.state

        self.assertEqual(state.phase, SessionPhase.FINISHED)
        self.assertEqual(state.total_correct, 3)
        self.assertEqual(len(state.answers), 3)
        self.assertEqual(self.rendered[-1].title, "🎉 Finished!")
        self.assertIn("3/3", self.rendered[-1].description)

    async def test_retry_reads_updated_words_file(self):
        """Test that a retry picks up a word file that was too small before."""
        self.data_manager.words_file = self.files["wrapped"]
        self.controller.start_session(3, 2000)
        state = await self.controller.wait_for_phase(SessionPhase.ERROR, timeout=WAIT_TIMEOUT)
        self.assertEqual(state.error_kind.value, "request_exceeds_capacity")

        with open(self.files["wrapped"], 'w', encoding='utf-8') as f:
            json.dump(TestFixtures.create_valid_words_json(8), f)
        self.controller.retry()
        state = await self.controller.wait_for_phase(SessionPhase.ACTIVE, timeout=WAIT_TIMEOUT)

        self.assertEqual(state.total_questions, 3)
        self.assertEqual(self.data_manager.get_loading_summary()['word_count'], 8)

    async def test_missing_words_file(self):
        self.data_manager.words_file = self.files["valid"].parent / "missing.json"

        self.controller.start_session(3, 2000)
        state = await self.controller.wait_for_phase(SessionPhase.ERROR, timeout=WAIT_TIMEOUT)

        self.assertEqual(state.error_kind.value, "data_unavailable")
        self.assertEqual(self.rendered[-1].description, state.error_message)


if __name__ == '__main__':
    unittest.main()
