"""
Service layer wiring the interview components together.
"""
from typing import Any, Dict, Optional, Tuple

from ..auth import AuthProvider, InMemoryAuthProvider, User
from ..errors import SessionNotFoundError
from ..interview import (
    AnswerEvaluator,
    FallbackQuestionBank,
    InterviewSessionManager,
    get_session_manager,
    PracticeConversation,
    QuestionGenerator,
    QuestionSupply,
    RecentlyUsedSet,
    SessionActor,
    SessionConfig
)
from ..interview.session_actor import StartSession
from ..llm import initialize_llm, is_llm_configured
from ..utils.config import GROQ_GENERATION_TEMPERATURE, GROQ_GRADING_TEMPERATURE, TICK_INTERVAL_SECONDS
from ..utils.logger import setup_logger
from ..voice import CaptureManager, STTService, TTSService, get_stt_service, get_tts_service

logger = setup_logger("api_service")


class InterviewPracticeService:
    """
    Service class that manages the interview practice components.
    Handles initialization and gives the HTTP layer access to sessions.
    """

    def __init__(
        self,
        auth: Optional[AuthProvider] = None,
        session_manager: Optional[InterviewSessionManager] = None,
        generator: Optional[QuestionGenerator] = None,
        evaluator: Optional[AnswerEvaluator] = None,
        bank: Optional[FallbackQuestionBank] = None,
        tts: Optional[TTSService] = None,
        stt: Optional[STTService] = None,
        tick_interval: Optional[float] = TICK_INTERVAL_SECONDS,
        supply_options: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the service (LLM components loaded by initialize()).

        Args:
            auth: Authentication collaborator
            session_manager: Registry of running sessions
            generator: Remote question generator
            evaluator: Grader
            bank: Fallback question bank
            tts: Text-to-speech service
            stt: Speech-to-text service
            tick_interval: Session timer interval; None disables timers
            supply_options: Extra QuestionSupply arguments (retries, sleep)
        """
        self.auth = auth or InMemoryAuthProvider()
        self.sessions = session_manager or get_session_manager()
        self.generator = generator
        self.evaluator = evaluator
        self.bank = bank or FallbackQuestionBank()
        self.tts = tts
        self.stt = stt
        self.tick_interval = tick_interval
        self.supply_options = supply_options or {}
        self._used_ids: Dict[str, RecentlyUsedSet] = {}
        self._practice: Dict[str, Tuple[str, PracticeConversation]] = {}
        self._initialized = False

    def initialize(self) -> bool:
        """
        Create the LLM-backed components that were not injected.

        Without an API key the service still runs on the fallback bank
        and the heuristic scorer.

        Returns:
            True if the LLM is available, False otherwise
        """
        llm_ready = False
        try:
            if is_llm_configured():
                if self.generator is None:
                    self.generator = QuestionGenerator(
                        llm=initialize_llm(temperature=GROQ_GENERATION_TEMPERATURE)
                    )
                if self.evaluator is None:
                    self.evaluator = AnswerEvaluator(
                        llm=initialize_llm(temperature=GROQ_GRADING_TEMPERATURE)
                    )
                llm_ready = True
            else:
                logger.warning("GROQ_API_KEY not set - using fallback questions and offline grading")
        except Exception as e:
            logger.error(f"Failed to initialize LLM: {e}")

        if self.evaluator is None:
            self.evaluator = AnswerEvaluator()
        if self.tts is None:
            self.tts = get_tts_service()
        if self.stt is None:
            self.stt = get_stt_service()

        self._initialized = True
        logger.info(f"Interview practice service initialized (llm_ready={llm_ready})")
        return llm_ready

    def is_ready(self) -> bool:
        """Check if service is ready to use."""
        return self._initialized

    @property
    def llm_ready(self) -> bool:
        return self.generator is not None

    def supply_for(self, user: User) -> QuestionSupply:
        """Question supply sharing the user's recently-used set across sessions."""
        used_ids = self._used_ids.setdefault(user.user_id, RecentlyUsedSet())
        return QuestionSupply(
            generator=self.generator,
            bank=self.bank,
            used_ids=used_ids,
            **self.supply_options
        )

    async def create_session(self, user: User, config: SessionConfig) -> SessionActor:
        """Start a session actor and request its questions."""
        if not self._initialized:
            self.initialize()
        actor = await self.sessions.create_session(
            user.user_id,
            self.supply_for(user),
            self.evaluator,
            capture=CaptureManager(stt_service=self.stt),
            tick_interval=self.tick_interval
        )
        await actor.ask(StartSession(config))
        return actor

    def get_session(self, session_id: str, user: User) -> SessionActor:
        return self.sessions.get_session(session_id, user.user_id)

    async def close_session(self, session_id: str, user: User) -> None:
        await self.sessions.close_session(session_id, user.user_id)

    def start_practice(self, user: User) -> PracticeConversation:
        conversation = PracticeConversation()
        conversation.start()
        self._practice[conversation.conversation_id] = (user.user_id, conversation)
        logger.info(f"Practice {conversation.conversation_id} created for user: {user.user_id}")
        return conversation

    def get_practice(self, conversation_id: str, user: User) -> PracticeConversation:
        owner, conversation = self._practice.get(conversation_id, (None, None))
        if conversation is None or owner != user.user_id:
            raise SessionNotFoundError(f"Practice conversation not found: {conversation_id}")
        return conversation

    def close_practice(self, conversation_id: str, user: User) -> None:
        self.get_practice(conversation_id, user)
        del self._practice[conversation_id]
        logger.info(f"Practice {conversation_id} closed")

    def speak(self, text: str) -> Optional[bytes]:
        """Synthesized audio for a question prompt, or None when TTS is unavailable."""
        if self.tts is None or not self.tts.available:
            return None
        return self.tts.speak_question(text)

    async def shutdown(self) -> None:
        await self.sessions.close_all()
        self._practice.clear()


# Global service instance
_service_instance: Optional[InterviewPracticeService] = None


def get_service() -> InterviewPracticeService:
    """Get or create the global service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = InterviewPracticeService()
    return _service_instance
