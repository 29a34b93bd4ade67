"""
Game session value and its transition functions.

A QuizSession is never mutated: every function here takes the current
session and returns the next one. The controller owns the current value and
publishes its SessionState snapshot after each transition.
"""
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

from .errors import classify_error
from .models import (
    Answer, ErrorKind, Question, SessionPhase, SessionSettings, SessionState
)


class InvalidTransitionError(Exception):
    """Raised when a transition is applied in a phase that does not allow it."""
    pass


@dataclass(frozen=True)
class QuizSession:
    """Internal state of one game session."""
    settings: SessionSettings
    generation: int = 0
    phase: SessionPhase = SessionPhase.LOADING
    questions: Tuple[Question, ...] = field(default_factory=tuple)
    answers: Tuple[Answer, ...] = field(default_factory=tuple)
    question_index: int = 0
    error_kind: Optional[ErrorKind] = None
    error_message: str = ""
    elapsed_ms: int = 0

    @property
    def total_questions(self) -> int:
        return self.settings.question_count

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[min(self.question_index, len(self.questions) - 1)]

    @property
    def total_correct(self) -> int:
        return sum(1 for answer in self.answers if answer.was_judged_correct)

    @property
    def average_answer_time_ms(self) -> Optional[int]:
        if not self.answers:
            return None
        return int(sum(answer.elapsed_ms for answer in self.answers) / len(self.answers))

    def to_state(self) -> SessionState:
        """Build the external snapshot for this session."""
        state = SessionState(
            phase=self.phase,
            current_question=self.current_question,
            total_questions=self.total_questions,
            time_budget_ms=self.settings.time_budget_ms,
            elapsed_ms=self.elapsed_ms
        )

        if self.phase == SessionPhase.ACTIVE:
            return state.copy(
                progress=self.question_index / self.total_questions,
                question_number=self.question_index + 1
            )

        if self.phase == SessionPhase.FINISHED:
            return state.copy(
                progress=1.0,
                question_number=self.total_questions,
                total_correct=self.total_correct,
                average_answer_time_ms=self.average_answer_time_ms,
                answers=self.answers,
                elapsed_ms=0
            )

        if self.phase == SessionPhase.ERROR:
            return state.copy(
                error_kind=self.error_kind,
                error_message=self.error_message,
                elapsed_ms=0
            )

        return state


def begin_session(settings: SessionSettings, generation: int) -> QuizSession:
    """Start a fresh session in the LOADING phase with an empty answer log."""
    return QuizSession(settings=settings, generation=generation)


def activate(session: QuizSession, questions: Sequence[Question]) -> QuizSession:
    """
    Move a loading session to ACTIVE on its first question.

    Raises:
        InvalidTransitionError: If the session is not loading or the question
            count does not match the requested count
    """
    _require_phase(session, SessionPhase.LOADING, "activate")

    if len(questions) != session.total_questions:
        raise InvalidTransitionError(
            f"Expected {session.total_questions} questions, got {len(questions)}"
        )

    return replace(
        session,
        phase=SessionPhase.ACTIVE,
        questions=tuple(questions),
        answers=(),
        question_index=0,
        elapsed_ms=0
    )


def record_answer(session: QuizSession, user_judged_correct: bool, elapsed_ms: int) -> QuizSession:
    """
    Record the player's judgement of the current question and advance.

    The answer counts as correct when the judgement matches whether the
    question pairs the prompt with its own translation.
    """
    _require_phase(session, SessionPhase.ACTIVE, "record_answer")

    question = session.current_question
    answer = Answer(
        question=question,
        was_judged_correct=user_judged_correct == question.is_intrinsically_correct,
        elapsed_ms=max(0, min(elapsed_ms, session.settings.time_budget_ms))
    )
    return _advance(replace(session, answers=session.answers + (answer,)))


def record_timeout(session: QuizSession) -> QuizSession:
    """Record an expired question as incorrect at full duration and advance."""
    _require_phase(session, SessionPhase.ACTIVE, "record_timeout")

    answer = Answer(
        question=session.current_question,
        was_judged_correct=False,
        elapsed_ms=session.settings.time_budget_ms
    )
    return _advance(replace(session, answers=session.answers + (answer,)))


def tick(session: QuizSession, elapsed_ms: int) -> QuizSession:
    """Update the elapsed-time readout of the current question."""
    _require_phase(session, SessionPhase.ACTIVE, "tick")
    return replace(session, elapsed_ms=max(0, min(elapsed_ms, session.settings.time_budget_ms)))


def fail(session: QuizSession, error: Exception) -> QuizSession:
    """Move the session to ERROR with a classified message."""
    kind, message = classify_error(error)
    return replace(
        session,
        phase=SessionPhase.ERROR,
        error_kind=kind,
        error_message=message,
        elapsed_ms=0
    )


def _advance(session: QuizSession) -> QuizSession:
    if session.question_index + 1 < session.total_questions:
        return replace(session, question_index=session.question_index + 1, elapsed_ms=0)

    return replace(session, phase=SessionPhase.FINISHED, elapsed_ms=0)


def _require_phase(session: QuizSession, phase: SessionPhase, operation: str) -> None:
    if session.phase != phase:
        raise InvalidTransitionError(
            f"Cannot {operation} in phase {session.phase.value}, expected {phase.value}"
        )
