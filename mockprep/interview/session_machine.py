"""
Interview Session State Machine.

Phases: SETUP -> LOADING -> ACTIVE -> SUBMITTING -> RESULTS, with ERROR
reachable from LOADING or SUBMITTING.

The machine is synchronous and knows nothing about networking or timers:
SessionActor feeds it events one at a time. Requests that leave the
machine (question generation, grading) are tagged with a token, and a
response whose token is not the pending one is ignored.
"""
import itertools
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..utils.logger import setup_logger
from ..errors import InputValidationError, InvalidTransitionError
from .models import AggregateResult, Question, SessionConfig

logger = setup_logger("session_machine")


class SessionPhase(str, Enum):
    SETUP = "setup"
    LOADING = "loading"
    ACTIVE = "active"
    SUBMITTING = "submitting"
    RESULTS = "results"
    ERROR = "error"


class InterviewSession:
    """
    State of one timed interview session.

    Invariants while ACTIVE:
    - 0 <= current_index < len(questions)
    - answers keys are a subset of the question ids
    """

    def __init__(self, session_id: Optional[str] = None, config: Optional[SessionConfig] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.config = config
        self.phase = SessionPhase.SETUP
        self.questions: Tuple[Question, ...] = ()
        self.answers: Dict[str, str] = {}
        self.current_index = 0
        self.remaining_seconds = 0
        self.elapsed_seconds = 0
        self.result: Optional[AggregateResult] = None
        self.error_message: Optional[str] = None
        self.error_origin: Optional[SessionPhase] = None
        self.interim_transcript = ""
        self.submissions = 0

        self._tokens = itertools.count(1)
        self._pending_token: Optional[int] = None
        self._auto_submitted = False

    # Loading

    def begin_loading(self, config: Optional[SessionConfig] = None) -> int:
        """
        Confirm configuration and request questions.

        Returns:
            Token the question response must carry
        """
        if self.phase not in (SessionPhase.SETUP, SessionPhase.RESULTS, SessionPhase.ERROR):
            raise InvalidTransitionError(f"Cannot load questions while {self.phase.value}")
        if config is not None:
            self.config = config
        if self.config is None:
            raise InputValidationError("Please configure the interview first")

        self._clear_progress()
        self.questions = ()
        self.result = None
        self.phase = SessionPhase.LOADING
        self._pending_token = next(self._tokens)
        logger.info(f"Session {self.session_id}: loading {self.config.total_questions} questions")
        return self._pending_token

    def questions_loaded(self, token: int, questions: Sequence[Question]) -> bool:
        """
        Accept generated questions and start the countdown.

        Returns:
            False when the response is stale and was ignored
        """
        if not self._is_pending(token, SessionPhase.LOADING):
            logger.debug(f"Session {self.session_id}: ignoring stale question response {token}")
            return False

        if len(questions) != self.config.total_questions:
            return self.loading_failed(
                token,
                f"Expected {self.config.total_questions} questions, received {len(questions)}"
            )

        self._pending_token = None
        self.questions = tuple(questions)
        self._clear_progress()
        self.phase = SessionPhase.ACTIVE
        logger.info(f"Session {self.session_id}: active with {len(self.questions)} questions")
        return True

    def loading_failed(self, token: int, message: str) -> bool:
        if not self._is_pending(token, SessionPhase.LOADING):
            return False
        self._pending_token = None
        self._fail(SessionPhase.LOADING, message)
        return True

    # Navigation and answers

    def next(self) -> int:
        return self.go_to(self.current_index + 1)

    def previous(self) -> int:
        return self.go_to(self.current_index - 1)

    def go_to(self, index: int) -> int:
        """Move to a question; out-of-range indices are clamped."""
        self._require(SessionPhase.ACTIVE, "navigate")
        self.current_index = max(0, min(index, len(self.questions) - 1))
        self.interim_transcript = ""
        return self.current_index

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_index == len(self.questions) - 1

    def record_answer(self, question_id: str, value: str) -> bool:
        """
        Upsert an answer. Focus stays on the current question.

        Returns:
            True when the answer map changed
        """
        self._require(SessionPhase.ACTIVE, "answer")
        if question_id not in {q.id for q in self.questions}:
            raise InputValidationError(f"Unknown question: {question_id}")
        if self.answers.get(question_id) == value:
            return False
        self.answers[question_id] = value
        return True

    def append_transcript(self, question_id: str, text: str) -> bool:
        """Append a final speech-to-text fragment to an answer."""
        text = text.strip()
        if not text:
            return False
        existing = self.answers.get(question_id, "").rstrip()
        self.interim_transcript = ""
        return self.record_answer(question_id, f"{existing} {text}".strip())

    def set_interim_transcript(self, text: str) -> None:
        if self.phase == SessionPhase.ACTIVE:
            self.interim_transcript = text

    # Timer

    def tick(self, seconds: int = 1) -> Optional[int]:
        """
        Advance the countdown. Ignored outside ACTIVE.

        Returns:
            Submission token when this tick expired the timer
        """
        if self.phase != SessionPhase.ACTIVE:
            return None
        self.elapsed_seconds += seconds
        if self.remaining_seconds > 0:
            self.remaining_seconds = max(0, self.remaining_seconds - seconds)
            if self.remaining_seconds == 0 and not self._auto_submitted:
                self._auto_submitted = True
                logger.info(f"Session {self.session_id}: time is up, submitting automatically")
                return self.begin_submission(auto=True)
        return None

    # Submission

    def begin_submission(self, auto: bool = False) -> Optional[int]:
        """
        Move to SUBMITTING.

        A user submit is accepted on the last question or once time is up.
        A submit while one is already in flight is ignored.

        Returns:
            Token the evaluation response must carry, or None when ignored
        """
        if self.phase == SessionPhase.SUBMITTING:
            logger.debug(f"Session {self.session_id}: submission already in flight, ignoring")
            return None
        self._require(SessionPhase.ACTIVE, "submit")
        if not auto and not self.is_last_question and self.remaining_seconds > 0:
            raise InputValidationError("Answer the remaining questions and submit from the last one")

        self.phase = SessionPhase.SUBMITTING
        self.submissions += 1
        self._pending_token = next(self._tokens)
        logger.info(f"Session {self.session_id}: submitting ({'timer' if auto else 'user'})")
        return self._pending_token

    def submission_answers(self) -> Dict[str, str]:
        """Answer map for grading, with every question present."""
        return {q.id: self.answers.get(q.id, "") for q in self.questions}

    def evaluation_completed(self, token: int, result: AggregateResult) -> bool:
        if not self._is_pending(token, SessionPhase.SUBMITTING):
            logger.debug(f"Session {self.session_id}: ignoring stale evaluation {token}")
            return False
        self._pending_token = None
        self.result = result
        self.phase = SessionPhase.RESULTS
        logger.info(f"Session {self.session_id}: results ready, score {result.overall_score}")
        return True

    def evaluation_failed(self, token: int, message: str) -> bool:
        if not self._is_pending(token, SessionPhase.SUBMITTING):
            return False
        self._pending_token = None
        self._fail(SessionPhase.SUBMITTING, message)
        return True

    # Recovery

    def resume(self) -> None:
        """Return from a failed submission to ACTIVE with answers intact."""
        if self.phase != SessionPhase.ERROR or self.error_origin != SessionPhase.SUBMITTING:
            raise InvalidTransitionError("Only a failed submission can be resumed")
        self.phase = SessionPhase.ACTIVE
        self.error_message = None
        self.error_origin = None
        logger.info(f"Session {self.session_id}: resumed after failed submission")

    def retake(self) -> int:
        """Start over with the same configuration and new questions."""
        if self.phase not in (SessionPhase.RESULTS, SessionPhase.ERROR):
            raise InvalidTransitionError("Retake is available from results or after an error")
        return self.begin_loading()

    def reset(self) -> None:
        """Back to SETUP. Any in-flight response becomes stale."""
        self._pending_token = None
        self.phase = SessionPhase.SETUP
        self.questions = ()
        self.result = None
        self._clear_progress()
        logger.info(f"Session {self.session_id}: reset to setup")

    # Helpers

    def _clear_progress(self) -> None:
        self.answers = {}
        self.current_index = 0
        self.remaining_seconds = self.config.time_limit_seconds if self.config else 0
        self.elapsed_seconds = 0
        self.error_message = None
        self.error_origin = None
        self.interim_transcript = ""
        self._auto_submitted = False

    def _fail(self, origin: SessionPhase, message: str) -> None:
        self.phase = SessionPhase.ERROR
        self.error_origin = origin
        self.error_message = message
        logger.error(f"Session {self.session_id}: {origin.value} failed: {message}")

    def _is_pending(self, token: int, phase: SessionPhase) -> bool:
        return self.phase == phase and token == self._pending_token

    def _require(self, phase: SessionPhase, action: str) -> None:
        if self.phase != phase:
            raise InvalidTransitionError(f"Cannot {action} while {self.phase.value}")

    def snapshot(self) -> Dict[str, Any]:
        """Serializable view of the session."""
        question = self.current_question
        if question is not None and self.phase != SessionPhase.RESULTS:
            current = question.public_view()
        elif question is not None:
            current = question.model_dump(mode="json")
        else:
            current = None

        questions: List[Dict] = []
        if self.phase in (SessionPhase.ACTIVE, SessionPhase.SUBMITTING):
            questions = [q.public_view() for q in self.questions]
        elif self.phase == SessionPhase.RESULTS:
            questions = [q.model_dump(mode="json") for q in self.questions]

        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "config": self.config.model_dump(mode="json") if self.config else None,
            "current_index": self.current_index,
            "total_questions": len(self.questions),
            "current_question": current,
            "questions": questions,
            "answers": dict(self.answers),
            "interim_transcript": self.interim_transcript,
            "remaining_seconds": self.remaining_seconds,
            "elapsed_seconds": self.elapsed_seconds,
            "result": self.result.model_dump(mode="json") if self.result else None,
            "performance_message": self.result.performance_message if self.result else None,
            "error_message": self.error_message,
            "can_resume": self.phase == SessionPhase.ERROR and self.error_origin == SessionPhase.SUBMITTING,
        }
