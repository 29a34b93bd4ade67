"""
Question generation for the word game.
Turns a pool of word pairs into a randomized list of judgeable questions.
"""
import logging
import random
from typing import List, Optional, Sequence

from .errors import InsufficientPoolSizeError, RequestExceedsCapacityError
from .models import Question, WordPair

logger = logging.getLogger(__name__)

# Fewest questions a pool must be able to produce
MIN_CAPACITY = 2


def available_capacity(pool_size: int) -> int:
    """Number of questions a pool of the given size can produce."""
    return pool_size // 2


def create_questions(
    pool: Sequence[WordPair],
    count: int,
    rng: Optional[random.Random] = None
) -> List[Question]:
    """
    Create questions from a pool of word pairs.

    The pool is shuffled once and used both for prompts and candidates.
    Question ``i`` takes its prompt from position ``i + 1`` and its candidate
    from a random position in ``[i + 1, 2 * (i + 1))``, so some questions pair
    a word with its own translation and some with another word's. The first
    question always pairs a word with itself.

    Args:
        pool: Word pairs to build questions from
        count: Number of questions to create
        rng: Optional random generator, module-level random is used if None

    Returns:
        List of exactly ``count`` questions

    Raises:
        InsufficientPoolSizeError: If the pool can produce fewer than 2 questions
        RequestExceedsCapacityError: If count exceeds what the pool can produce
        ValueError: If count is less than 1
    """
    capacity = available_capacity(len(pool))

    if capacity < MIN_CAPACITY:
        raise InsufficientPoolSizeError()

    if count > capacity:
        raise RequestExceedsCapacityError()

    if count < 1:
        raise ValueError(f"Question count must be at least 1, got {count}")

    if rng is None:
        rng = random
    shuffled = list(pool)
    rng.shuffle(shuffled)

    questions = []
    for i in range(count):
        index = i + 1
        candidate_index = rng.randrange(index, 2 * index)
        # capacity check keeps 2 * count - 1 within the pool
        assert candidate_index < len(shuffled), "candidate index out of range"
        questions.append(Question(prompt=shuffled[index], candidate=shuffled[candidate_index]))

    logger.debug(
        f"Created {len(questions)} questions from {len(pool)} words",
        extra={
            'event_type': 'questions_created',
            'pool_size': len(pool),
            'question_count': count,
            'self_paired': sum(1 for q in questions if q.is_intrinsically_correct)
        }
    )
    return questions
