"""
Unit tests for session transitions and snapshots.
"""
import unittest

from wordgame.errors import EmptyPoolError, InsufficientPoolSizeError, classify_error
from wordgame.models import ErrorKind, SessionPhase, SessionSettings
from wordgame.session import (
    InvalidTransitionError, QuizSession, activate, begin_session, fail,
    record_answer, record_timeout, tick
)
from tests.test_fixtures import TestFixtures


class TestSessionTransitions(unittest.TestCase):
    """Test cases for the pure session transition functions."""

    def setUp(self):
        self.settings = TestFixtures.create_sample_settings()
        self.questions = TestFixtures.create_sample_questions()
        self.session = activate(begin_session(self.settings, 1), self.questions)

    def test_begin_session_is_loading(self):
        session = begin_session(self.settings, 4)
        state = session.to_state()

        self.assertEqual(session.generation, 4)
        self.assertEqual(state.phase, SessionPhase.LOADING)
        self.assertEqual(state.total_questions, 3)
        self.assertEqual(state.time_budget_ms, 2000)
        self.assertEqual(state.answers, ())

    def test_activate_starts_on_first_question(self):
        state = self.session.to_state()

        self.assertEqual(state.phase, SessionPhase.ACTIVE)
        self.assertEqual(state.current_question, self.questions[0])
        self.assertEqual(state.question_number, 1)
        self.assertEqual(state.progress, 0.0)
        self.assertEqual(state.elapsed_ms, 0)

    def test_activate_requires_loading_phase(self):
        with self.assertRaises(InvalidTransitionError):
            activate(self.session, self.questions)

    def test_activate_requires_requested_count(self):
        with self.assertRaises(InvalidTransitionError):
            activate(begin_session(self.settings, 1), self.questions[:2])

    def test_correct_judgement_of_self_paired_question(self):
        session = record_answer(self.session, True, 400)

        answer = session.answers[0]
        self.assertTrue(answer.was_judged_correct)
        self.assertEqual(answer.elapsed_ms, 400)
        self.assertEqual(session.question_index, 1)

    def test_incorrect_judgement_of_self_paired_question(self):
        session = record_answer(self.session, False, 400)

        self.assertFalse(session.answers[0].was_judged_correct)

    def test_correct_judgement_of_mismatched_question(self):
        session = record_answer(self.session, True, 100)
        session = record_answer(session, False, 100)

        self.assertTrue(session.answers[1].was_judged_correct)

    def test_answer_time_is_clamped_to_budget(self):
        session = record_answer(self.session, True, 5000)
        session = record_answer(session, True, -10)

        self.assertEqual(session.answers[0].elapsed_ms, 2000)
        self.assertEqual(session.answers[1].elapsed_ms, 0)

    def test_timeout_records_incorrect_full_budget_answer(self):
        session = record_timeout(self.session)

        answer = session.answers[0]
        self.assertFalse(answer.was_judged_correct)
        self.assertEqual(answer.elapsed_ms, 2000)
        self.assertEqual(answer.question, self.questions[0])

    def test_progress_advances_per_question(self):
        session = record_answer(self.session, True, 100)
        state = session.to_state()

        self.assertEqual(state.question_number, 2)
        self.assertAlmostEqual(state.progress, 1 / 3)
        self.assertEqual(state.current_question, self.questions[1])

    def test_answers_hidden_until_finished(self):
        session = record_answer(self.session, True, 100)

        self.assertEqual(len(session.answers), 1)
        self.assertEqual(session.to_state().answers, ())

    def test_last_answer_finishes_session(self):
        """Test the correct, incorrect, timeout sequence."""
        session = record_answer(self.session, True, 500)
        session = record_answer(session, True, 1000)
        session = record_timeout(session)
        state = session.to_state()

        self.assertEqual(state.phase, SessionPhase.FINISHED)
        self.assertEqual(state.total_correct, 1)
        self.assertEqual(len(state.answers), 3)
        self.assertEqual(state.progress, 1.0)
        self.assertEqual(state.question_number, 3)
        self.assertEqual(state.average_answer_time_ms, int((500 + 1000 + 2000) / 3))

    def test_no_transitions_after_finish(self):
        session = record_timeout(record_timeout(record_timeout(self.session)))

        with self.assertRaises(InvalidTransitionError):
            record_answer(session, True, 100)
        with self.assertRaises(InvalidTransitionError):
            record_timeout(session)
        with self.assertRaises(InvalidTransitionError):
            tick(session, 100)

    def test_tick_updates_elapsed_time(self):
        session = tick(self.session, 1200)

        self.assertEqual(session.to_state().elapsed_ms, 1200)
        self.assertEqual(tick(self.session, 9000).elapsed_ms, 2000)

    def test_fail_sets_error_fields(self):
        state = fail(begin_session(self.settings, 1), EmptyPoolError()).to_state()

        self.assertEqual(state.phase, SessionPhase.ERROR)
        self.assertEqual(state.error_kind, ErrorKind.EMPTY_POOL)
        self.assertEqual(state.error_message, "No words found")

    def test_average_time_is_none_without_answers(self):
        self.assertIsNone(QuizSession(settings=SessionSettings()).average_answer_time_ms)


class TestClassifyError(unittest.TestCase):
    """Test cases for error classification."""

    def test_word_game_errors_keep_their_kind(self):
        kind, message = classify_error(InsufficientPoolSizeError())

        self.assertEqual(kind, ErrorKind.INSUFFICIENT_POOL_SIZE)
        self.assertEqual(message, "Not enough words to create questions")

    def test_custom_message(self):
        kind, message = classify_error(EmptyPoolError("Nothing here"))

        self.assertEqual(kind, ErrorKind.EMPTY_POOL)
        self.assertEqual(message, "Nothing here")

    def test_unknown_errors(self):
        self.assertEqual(classify_error(RuntimeError("boom")), (ErrorKind.UNKNOWN, "boom"))
        self.assertEqual(classify_error(KeyError()), (ErrorKind.UNKNOWN, "Unknown error"))


if __name__ == '__main__':
    unittest.main()
