"""
Question Supply.

Produces the exact per-kind set of questions a session asks for:
1. Remote generation, retried with exponential backoff on overload
2. Fallback bank when the remote path fails or returns something unusable
3. Every returned id is recorded in the recently-used set, either right
   away or, for callers that may discard the result, through remember()
"""
import random
import time
from typing import Callable, Dict, Iterable, List, Optional

from ..utils.config import MAX_RETRIES, RETRY_BASE_DELAY_SECONDS, RETRY_MAX_JITTER_SECONDS
from ..utils.logger import setup_logger
from ..utils.retry import is_transient_error, retry_with_backoff
from ..errors import GenerationFailedError, RemoteServiceError, RemoteUnavailableError
from .models import Question, QuestionKind, SessionConfig, count_by_kind
from .question_bank import FallbackQuestionBank
from .question_generator import QuestionGenerator
from .recent_questions import RecentlyUsedSet

logger = setup_logger("question_supply")


class QuestionSupply:
    """
    Remote-backed question source with a local fallback bank.

    The recently-used set is owned here and injected, so a session
    (or a test) decides its lifetime.
    """

    def __init__(
        self,
        generator: Optional[QuestionGenerator] = None,
        bank: Optional[FallbackQuestionBank] = None,
        used_ids: Optional[RecentlyUsedSet] = None,
        use_fallback: bool = True,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        max_jitter: float = RETRY_MAX_JITTER_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize question supply.

        Args:
            generator: Remote generator. If None, only the fallback bank is used.
            bank: Fallback bank. If None, the built-in bank is loaded.
            used_ids: Recently-used question ids shared across retakes
            use_fallback: Degrade to the bank instead of failing
            max_retries: Retries for transient remote failures
            base_delay: Backoff base delay in seconds
            max_jitter: Upper bound of random jitter in seconds
            sleep: Sleep function (injected in tests)
            rng: Random source for jitter
        """
        self.generator = generator
        self.bank = bank or FallbackQuestionBank()
        self.used_ids = used_ids if used_ids is not None else RecentlyUsedSet()
        self.use_fallback = use_fallback
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self._sleep = sleep
        self._rng = rng

    def generate(self, config: SessionConfig, remember: bool = True) -> List[Question]:
        """
        Produce exactly the requested distribution of questions.

        Args:
            config: Session configuration
            remember: Record the returned ids as used. Pass False when the
                result may be superseded and call remember() once it is kept.

        Returns:
            Questions whose per-kind counts equal the configured counts

        Raises:
            GenerationFailedError: Remote generation failed and the fallback
                is disabled or cannot satisfy the counts
        """
        logger.info(
            f"Generating {config.total_questions} questions "
            f"(topic={config.topic}, difficulty={config.difficulty})"
        )
        try:
            questions = self._generate_remote(config)
        except RemoteServiceError as e:
            if not self.use_fallback:
                logger.error(f"Question generation failed: {e}")
                raise GenerationFailedError(str(e), user_message=e.user_message) from e
            logger.warning(f"Remote generation unusable ({e}), using fallback bank")
            questions = self._generate_fallback(config)

        if remember:
            self.remember(questions)
        return questions

    def remember(self, questions: Iterable[Question]) -> None:
        """Record question ids as recently used."""
        self.used_ids.add_many(q.id for q in questions)

    def reset_history(self) -> None:
        """Forget recently used ids ("take a fresh assessment")."""
        logger.info(f"Clearing {len(self.used_ids)} recently used question ids")
        self.used_ids.clear()

    def _generate_remote(self, config: SessionConfig) -> List[Question]:
        if self.generator is None:
            raise RemoteUnavailableError("No question generator configured")

        exclude = self.used_ids.snapshot()
        questions = retry_with_backoff(
            lambda: self.generator.request_questions(config, exclude),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_jitter=self.max_jitter,
            is_retryable=is_transient_error,
            sleep=self._sleep,
            rng=self._rng
        )
        if len(questions) != config.total_questions:
            raise RemoteUnavailableError(
                f"Generator returned {len(questions)} questions, expected {config.total_questions}"
            )
        return questions

    def _generate_fallback(self, config: SessionConfig) -> List[Question]:
        pool = self.bank.matching(config.topic, config.difficulty)
        wanted = config.counts_by_kind()

        for kind, count in wanted.items():
            if len(pool[kind]) < count:
                raise GenerationFailedError(
                    f"Fallback bank has {len(pool[kind])} {kind.value} questions "
                    f"for topic={config.topic} difficulty={config.difficulty}, need {count}"
                )

        fresh = self._fresh_candidates(pool)
        while any(len(fresh[kind]) < count for kind, count in wanted.items()):
            evicted = self.used_ids.evict_oldest_half()
            logger.info(f"Fallback pool running short, recycled {evicted} used question ids")
            fresh = self._fresh_candidates(pool)

        questions: List[Question] = []
        for kind in QuestionKind:
            questions.extend(self.bank.pick(fresh[kind], wanted[kind]))

        counts = {kind.value: count for kind, count in count_by_kind(questions).items()}
        logger.info(f"Selected {len(questions)} fallback questions: {counts}")
        return questions

    def _fresh_candidates(self, pool: Dict[QuestionKind, List[Question]]) -> Dict[QuestionKind, List[Question]]:
        return {
            kind: [q for q in candidates if q.id not in self.used_ids]
            for kind, candidates in pool.items()
        }
