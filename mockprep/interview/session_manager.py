"""
Interview Session Manager.

Keeps the running sessions of this process:
- Create a session actor per interview
- Look sessions up by id for their owner
- Close sessions (stops timer and capture, discards state)

Sessions live in memory only; results are not persisted.
"""
from typing import Dict, Optional

from ..errors import SessionNotFoundError
from ..utils.config import TICK_INTERVAL_SECONDS
from ..utils.logger import setup_logger
from ..voice.capture import CaptureManager
from .answer_evaluator import AnswerEvaluator
from .question_supply import QuestionSupply
from .session_actor import SessionActor
from .session_machine import InterviewSession

logger = setup_logger("session_manager")


class InterviewSessionManager:
    """Registry of session actors keyed by session id."""

    def __init__(self):
        self._actors: Dict[str, SessionActor] = {}
        self._owners: Dict[str, str] = {}

        logger.info("InterviewSessionManager initialized")

    async def create_session(
        self,
        owner_id: str,
        supply: QuestionSupply,
        evaluator: AnswerEvaluator,
        capture: Optional[CaptureManager] = None,
        tick_interval: Optional[float] = TICK_INTERVAL_SECONDS
    ) -> SessionActor:
        """
        Create and start a new session actor.

        Args:
            owner_id: User the session belongs to
            supply: Question source (shares the user's recently-used set)
            evaluator: Grader
            capture: Capture resources for the session
            tick_interval: Timer interval in seconds; None disables the timer

        Returns:
            Started SessionActor
        """
        actor = SessionActor(
            InterviewSession(), supply, evaluator,
            capture=capture, tick_interval=tick_interval
        )
        await actor.start()

        self._actors[actor.session_id] = actor
        self._owners[actor.session_id] = owner_id
        logger.info(f"Created interview session: {actor.session_id} for user: {owner_id}")
        return actor

    def get_session(self, session_id: str, owner_id: Optional[str] = None) -> SessionActor:
        """
        Look up a session.

        Raises:
            SessionNotFoundError: Unknown id, or owned by someone else
        """
        actor = self._actors.get(session_id)
        if actor is None or (owner_id is not None and self._owners.get(session_id) != owner_id):
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return actor

    async def close_session(self, session_id: str, owner_id: Optional[str] = None) -> None:
        actor = self.get_session(session_id, owner_id)
        del self._actors[session_id]
        del self._owners[session_id]
        await actor.stop()
        logger.info(f"Closed interview session: {session_id}")

    async def close_all(self) -> None:
        for session_id in list(self._actors):
            await self.close_session(session_id)

    @property
    def active_count(self) -> int:
        return len(self._actors)


# Singleton instance
_session_manager = None


def get_session_manager() -> InterviewSessionManager:
    """Get or create session manager instance (singleton)."""
    global _session_manager
    if _session_manager is None:
        _session_manager = InterviewSessionManager()
    return _session_manager
