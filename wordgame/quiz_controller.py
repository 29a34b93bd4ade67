"""
Game session controller for the word game.
Serializes commands, load results and timer events through one event queue
and publishes a SessionState snapshot after every transition.
"""
import asyncio
import inspect
import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Set

from . import session as transitions
from .config_manager import ConfigManager
from .errors import DataUnavailableError, EmptyPoolError, WordGameError
from .models import Question, SessionPhase, SessionSettings, SessionState
from .question_maker import create_questions
from .quiz_engine import DeadlineExpired, DeadlineTick, QuizEngine, TimerLifecycleLogger
from .session import QuizSession

StateCallback = Callable[[SessionState], Any]


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class ControllerClosedError(QuizControllerError):
    """Raised when a command is issued to a closed controller."""
    pass


@dataclass(frozen=True)
class StartSession:
    settings: SessionSettings


@dataclass(frozen=True)
class SubmitAnswer:
    user_judged_correct: bool
    question_index: int
    generation: int


@dataclass(frozen=True)
class RetrySession:
    pass


@dataclass(frozen=True)
class QuestionsLoaded:
    generation: int
    questions: Sequence[Question]


@dataclass(frozen=True)
class LoadFailed:
    generation: int
    error: Exception


class QuizController:
    """
    Drives one player's game sessions.

    Commands return immediately; their results arrive as SessionState
    snapshots delivered to subscribers. All state changes happen in a single
    consumer task, so a timeout and an answer for the same question can never
    both be recorded: whichever event is dequeued first wins and the other is
    dropped as stale.
    """

    def __init__(
        self,
        word_source,
        config_manager: Optional[ConfigManager] = None,
        session_id: Optional[str] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the quiz controller.

        Args:
            word_source: Object providing fetch_word_pairs()
            config_manager: Source of loading delay and tick interval, defaults if None
            session_id: Identifier used in log records
            rng: Random generator for question creation
            clock: Monotonic clock in seconds used for answer timing
        """
        self.logger = logging.getLogger(__name__)
        self.word_source = word_source
        self.config_manager = config_manager or ConfigManager()
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self._rng = rng

        self.quiz_engine = QuizEngine(
            session_id=self.session_id,
            tick_interval_ms=self.config_manager.get_tick_interval(),
            clock=clock
        )

        defaults = self.config_manager.get_session_settings()
        self._session = QuizSession(settings=defaults)
        self._state = self._session.to_state()
        self._settings: Optional[SessionSettings] = None
        self._generation = 0
        self._deadline: Optional[int] = None

        self._events: Optional[asyncio.Queue] = None
        self._consumer: Optional[asyncio.Task] = None
        self._load_task: Optional[asyncio.Task] = None
        self._subscribers: List[StateCallback] = []
        self._callback_tasks: Set[asyncio.Task] = set()
        self._closed = False

    async def __aenter__(self) -> "QuizController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def state(self) -> SessionState:
        """Current session snapshot."""
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Start the event consumer. Commands also start it on first use."""
        self._ensure_started()

    async def close(self) -> None:
        """Cancel the running deadline, pending load and event consumer."""
        if self._closed:
            return
        self._closed = True

        self._cancel_deadline()
        self.quiz_engine.cancel_all()

        tasks = [task for task in (self._load_task, self._consumer) if task and not task.done()]
        tasks.extend(self._callback_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._subscribers.clear()
        self.logger.info(
            f"Closed controller for session {self.session_id}",
            extra={
                'event_type': 'controller_closed',
                'session_id': self.session_id,
                'timestamp': time.time()
            }
        )

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """
        Register a snapshot callback.

        The callback is invoked with the current snapshot right away and with
        every later one. Coroutine functions are scheduled as tasks.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)
        self._notify(callback, self._state)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def wait_for_phase(self, *phases: SessionPhase, timeout: Optional[float] = None) -> SessionState:
        """
        Wait until a snapshot in one of the given phases is published.

        Returns immediately when the current snapshot already matches.

        Raises:
            asyncio.TimeoutError: If no matching snapshot arrives in time
        """
        future = asyncio.get_running_loop().create_future()

        def on_state(state: SessionState) -> None:
            if state.phase in phases and not future.done():
                future.set_result(state)

        unsubscribe = self.subscribe(on_state)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            unsubscribe()

    async def drain(self) -> None:
        """Wait until every queued event has been processed."""
        if self._events is not None:
            await self._events.join()

    def start_session(self, question_count: int, time_budget_ms: int) -> None:
        """
        Start a new session, discarding any previous one.

        Fire-and-forget: the LOADING snapshot and then ACTIVE or ERROR are
        published to subscribers.
        """
        self._post(StartSession(SessionSettings(question_count, time_budget_ms)))

    def submit_answer(self, user_judged_correct: bool, question_index: Optional[int] = None) -> None:
        """
        Judge the current question.

        Args:
            user_judged_correct: True if the player says the translation is correct
            question_index: Zero-based index of the question being judged,
                defaults to the question in the current snapshot
        """
        if question_index is None:
            question_index = self._state.question_index if self._state.phase == SessionPhase.ACTIVE else -1

        self._post(SubmitAnswer(bool(user_judged_correct), question_index, self._session.generation))

    def retry(self) -> None:
        """Restart with the previous settings. Only honored in FINISHED or ERROR."""
        self._post(RetrySession())

    def _ensure_started(self) -> None:
        if self._closed:
            raise ControllerClosedError(f"Controller for session {self.session_id} is closed")

        if self._consumer is None or self._consumer.done():
            if self._events is None:
                self._events = asyncio.Queue()
            self._consumer = asyncio.create_task(self._consume_events())

    def _post(self, event: Any) -> None:
        self._ensure_started()
        self._events.put_nowait(event)

    async def _consume_events(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self._handle_event(event)
            except Exception as e:
                self.logger.error(
                    f"Error handling {type(event).__name__} for session {self.session_id}: {e}",
                    exc_info=True
                )
                self._fail(e)
            finally:
                self._events.task_done()

    def _handle_event(self, event: Any) -> None:
        if isinstance(event, StartSession):
            self._begin(event.settings)
        elif isinstance(event, RetrySession):
            self._handle_retry()
        elif isinstance(event, QuestionsLoaded):
            self._handle_questions_loaded(event)
        elif isinstance(event, LoadFailed):
            self._handle_load_failed(event)
        elif isinstance(event, SubmitAnswer):
            self._handle_answer(event)
        elif isinstance(event, DeadlineExpired):
            self._handle_expired(event)
        elif isinstance(event, DeadlineTick):
            self._handle_tick(event)
        else:
            raise QuizControllerError(f"Unknown event: {event!r}")

    def _begin(self, settings: SessionSettings) -> None:
        self._cancel_deadline()
        self._cancel_load()

        self._generation += 1
        self._settings = settings
        self._set_session(transitions.begin_session(settings, self._generation))

        self.logger.info(
            f"Starting session {self.session_id}: questions={settings.question_count}, "
            f"time_budget={settings.time_budget_ms}ms",
            extra={
                'event_type': 'session_loading',
                'session_id': self.session_id,
                'generation': self._generation,
                'question_count': settings.question_count,
                'time_budget_ms': settings.time_budget_ms,
                'timestamp': time.time()
            }
        )

        if not _is_positive_int(settings.question_count) or not _is_positive_int(settings.time_budget_ms):
            self._fail(ValueError(
                f"Question count and time budget must be positive integers, "
                f"got {settings.question_count} and {settings.time_budget_ms}"
            ))
            return

        self._load_task = asyncio.create_task(self._load_questions(self._generation, settings))

    def _handle_retry(self) -> None:
        if self._session.phase not in (SessionPhase.FINISHED, SessionPhase.ERROR) or self._settings is None:
            self.logger.warning(
                f"Ignoring retry for session {self.session_id} in phase {self._session.phase.value}"
            )
            return

        self._begin(self._settings)

    async def _load_questions(self, generation: int, settings: SessionSettings) -> None:
        try:
            delay_ms = self.config_manager.get_loading_delay()
            if delay_ms:
                await asyncio.sleep(delay_ms / 1000)
            questions = await asyncio.to_thread(self._create_questions, settings.question_count)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._post_if_open(LoadFailed(generation, e))
            return

        self._post_if_open(QuestionsLoaded(generation, questions))

    def _create_questions(self, count: int) -> List[Question]:
        """Fetch words and build questions. Runs in a worker thread."""
        try:
            words = self.word_source.fetch_word_pairs()
        except WordGameError:
            raise
        except OSError as e:
            raise DataUnavailableError() from e
        except Exception as e:
            raise DataUnavailableError("There was an error fetching words") from e

        if not words:
            raise EmptyPoolError()

        return create_questions(words, count, self._rng)

    def _handle_questions_loaded(self, event: QuestionsLoaded) -> None:
        if self._is_stale_load(event.generation):
            return

        self._set_session(transitions.activate(self._session, event.questions))
        self._arm_deadline()

        self.logger.info(
            f"Session {self.session_id} active with {len(event.questions)} questions",
            extra={
                'event_type': 'session_active',
                'session_id': self.session_id,
                'generation': event.generation,
                'timestamp': time.time()
            }
        )

    def _handle_load_failed(self, event: LoadFailed) -> None:
        if self._is_stale_load(event.generation):
            return

        self.logger.error(
            f"Failed to load questions for session {self.session_id}: {event.error}",
            exc_info=event.error
        )
        self._fail(event.error)

    def _handle_answer(self, event: SubmitAnswer) -> None:
        session = self._session
        if (session.phase != SessionPhase.ACTIVE
                or event.generation != session.generation
                or event.question_index != session.question_index):
            TimerLifecycleLogger.log_stale_event(
                self.session_id,
                f"answer for question {event.question_index} ignored "
                f"(phase {session.phase.value}, current question {session.question_index})"
            )
            return

        elapsed_ms = self.quiz_engine.elapsed_ms(self._deadline) or 0
        self._cancel_deadline()
        self._advance(transitions.record_answer(session, event.user_judged_correct, elapsed_ms))

    def _handle_expired(self, event: DeadlineExpired) -> None:
        if event.handle != self._deadline or self._session.phase != SessionPhase.ACTIVE:
            TimerLifecycleLogger.log_stale_event(
                self.session_id, f"expiry of deadline {event.handle} ignored"
            )
            return

        self._cancel_deadline()
        self._advance(transitions.record_timeout(self._session))

    def _handle_tick(self, event: DeadlineTick) -> None:
        if event.handle != self._deadline or self._session.phase != SessionPhase.ACTIVE:
            return

        self._set_session(transitions.tick(self._session, event.elapsed_ms))

    def _advance(self, session: QuizSession) -> None:
        self._set_session(session)

        if session.phase == SessionPhase.ACTIVE:
            self._arm_deadline()
            return

        self.logger.info(
            f"Session {self.session_id} finished: {session.total_correct}/{session.total_questions} correct, "
            f"average {session.average_answer_time_ms}ms",
            extra={
                'event_type': 'session_finished',
                'session_id': self.session_id,
                'total_correct': session.total_correct,
                'total_questions': session.total_questions,
                'average_answer_time_ms': session.average_answer_time_ms,
                'timestamp': time.time()
            }
        )

    def _fail(self, error: Exception) -> None:
        self._cancel_deadline()
        self._set_session(transitions.fail(self._session, error))

    def _arm_deadline(self) -> None:
        self._cancel_deadline()
        self._deadline = self.quiz_engine.arm(self._session.settings.time_budget_ms, self._post_if_open)

    def _cancel_deadline(self) -> None:
        if self._deadline is not None:
            self.quiz_engine.cancel(self._deadline)
            self._deadline = None

    def _cancel_load(self) -> None:
        if self._load_task and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None

    def _is_stale_load(self, generation: int) -> bool:
        if generation == self._generation and self._session.phase == SessionPhase.LOADING:
            return False

        self.logger.debug(
            f"Dropping load result of generation {generation} for session {self.session_id}"
        )
        return True

    def _post_if_open(self, event: Any) -> None:
        if not self._closed:
            self._post(event)

    def _set_session(self, session: QuizSession) -> None:
        self._session = session
        self._state = session.to_state()
        for callback in list(self._subscribers):
            self._notify(callback, self._state)

    def _notify(self, callback: StateCallback, state: SessionState) -> None:
        try:
            result = callback(state)
        except Exception as e:
            self.logger.error(f"State subscriber failed for session {self.session_id}: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error(
                f"State subscriber failed for session {self.session_id}: {task.exception()}",
                exc_info=task.exception()
            )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
