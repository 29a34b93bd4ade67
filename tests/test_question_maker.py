"""
Unit tests for question generation.
"""
import random
import unittest

from wordgame.errors import InsufficientPoolSizeError, RequestExceedsCapacityError
from wordgame.models import ErrorKind
from wordgame.question_maker import MIN_CAPACITY, available_capacity, create_questions
from tests.test_fixtures import TestFixtures


class TestAvailableCapacity(unittest.TestCase):
    """Test cases for pool capacity."""

    def test_capacity_is_half_the_pool_rounded_down(self):
        self.assertEqual(available_capacity(0), 0)
        self.assertEqual(available_capacity(3), 1)
        self.assertEqual(available_capacity(4), 2)
        self.assertEqual(available_capacity(6), 3)
        self.assertEqual(available_capacity(11), 5)

    def test_minimum_capacity(self):
        self.assertEqual(MIN_CAPACITY, 2)


class TestCreateQuestions(unittest.TestCase):
    """Test cases for create_questions."""

    def setUp(self):
        self.pool = TestFixtures.create_word_pairs(6)

    def test_creates_exact_count(self):
        """Test that a pool of 6 produces 3 questions when asked for 3."""
        questions = create_questions(self.pool, 3)

        self.assertEqual(len(questions), 3)

    def test_first_question_is_self_paired(self):
        """Test that the first question always pairs a word with itself."""
        for seed in range(25):
            questions = create_questions(self.pool, 3, random.Random(seed))
            self.assertTrue(questions[0].is_intrinsically_correct)
            self.assertEqual(questions[0].prompt, questions[0].candidate)

    def test_prompt_and_candidate_positions(self):
        """Test that questions follow the shuffled pool layout."""
        pool = TestFixtures.create_word_pairs(20)
        shuffled = list(pool)
        random.Random(7).shuffle(shuffled)

        questions = create_questions(pool, 10, random.Random(7))

        for i, question in enumerate(questions):
            self.assertEqual(question.prompt, shuffled[i + 1])
            self.assertIn(question.candidate, shuffled[i + 1:2 * (i + 1)])

    def test_prompts_are_distinct(self):
        pool = TestFixtures.create_word_pairs(30)
        questions = create_questions(pool, 15, random.Random(3))

        prompts = [question.prompt for question in questions]
        self.assertEqual(len(set(prompts)), len(prompts))

    def test_all_words_come_from_pool(self):
        questions = create_questions(self.pool, 3, random.Random(11))

        for question in questions:
            self.assertIn(question.prompt, self.pool)
            self.assertIn(question.candidate, self.pool)

    def test_pool_is_not_modified(self):
        original = list(self.pool)

        create_questions(self.pool, 3, random.Random(5))

        self.assertEqual(self.pool, original)

    def test_same_seed_gives_same_questions(self):
        first = create_questions(self.pool, 3, random.Random(99))
        second = create_questions(self.pool, 3, random.Random(99))

        self.assertEqual(first, second)

    def test_mixes_correct_and_incorrect_pairs(self):
        """Test that later questions are sometimes paired with another word."""
        pool = TestFixtures.create_word_pairs(30)
        mismatched = 0
        for seed in range(20):
            questions = create_questions(pool, 15, random.Random(seed))
            mismatched += sum(1 for q in questions if not q.is_intrinsically_correct)

        self.assertGreater(mismatched, 0)

    def test_insufficient_pool_size(self):
        """Test that a pool of 3 fails regardless of the requested count."""
        pool = TestFixtures.create_word_pairs(3)

        for count in (1, 2, 5):
            with self.assertRaises(InsufficientPoolSizeError) as context:
                create_questions(pool, count)
            self.assertEqual(context.exception.kind, ErrorKind.INSUFFICIENT_POOL_SIZE)

    def test_empty_pool_is_insufficient(self):
        with self.assertRaises(InsufficientPoolSizeError):
            create_questions([], 1)

    def test_request_exceeds_capacity(self):
        """Test that a pool of 10 cannot produce 6 questions."""
        pool = TestFixtures.create_word_pairs(10)

        with self.assertRaises(RequestExceedsCapacityError) as context:
            create_questions(pool, 6)
        self.assertEqual(context.exception.kind, ErrorKind.REQUEST_EXCEEDS_CAPACITY)

    def test_request_at_capacity_succeeds(self):
        pool = TestFixtures.create_word_pairs(10)

        questions = create_questions(pool, 5)

        self.assertEqual(len(questions), 5)

    def test_count_below_one_raises_value_error(self):
        with self.assertRaises(ValueError):
            create_questions(self.pool, 0)


if __name__ == '__main__':
    unittest.main()
