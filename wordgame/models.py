"""
Core data models for the word game.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class WordPair:
    """A word and its translation."""
    source: str
    target: str


@dataclass(frozen=True)
class Question:
    """A prompt word paired with a candidate translation to be judged."""
    prompt: WordPair
    candidate: WordPair

    @property
    def is_intrinsically_correct(self) -> bool:
        """True when the candidate is the prompt's own translation."""
        return self.prompt == self.candidate


@dataclass(frozen=True)
class Answer:
    """Recorded outcome for one question."""
    question: Question
    was_judged_correct: bool
    elapsed_ms: int


class SessionPhase(Enum):
    """Enumeration of possible game session phases."""
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"
    ERROR = "error"


class ErrorKind(Enum):
    """Classification of failures surfaced in the ERROR phase."""
    DATA_UNAVAILABLE = "data_unavailable"
    EMPTY_POOL = "empty_pool"
    INSUFFICIENT_POOL_SIZE = "insufficient_pool_size"
    REQUEST_EXCEEDS_CAPACITY = "request_exceeds_capacity"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SessionSettings:
    """Start parameters of a game session."""
    question_count: int = 5
    time_budget_ms: int = 2000


@dataclass(frozen=True)
class SessionState:
    """Externally observable snapshot of a game session."""
    phase: SessionPhase = SessionPhase.LOADING
    current_question: Optional[Question] = None
    progress: float = 0.0
    question_number: int = 0
    total_questions: int = 0
    time_budget_ms: int = 2000
    total_correct: int = 0
    average_answer_time_ms: Optional[int] = None
    answers: Tuple[Answer, ...] = field(default_factory=tuple)
    error_kind: Optional[ErrorKind] = None
    error_message: str = ""
    elapsed_ms: int = 0

    @property
    def question_index(self) -> int:
        """Zero-based index of the current question."""
        return max(self.question_number - 1, 0)

    def copy(self, **changes) -> "SessionState":
        return replace(self, **changes)
