"""
Remote Question Generator.

Asks the LLM for an exact distribution of multiple-choice, coding and
spoken questions and validates the reply at the boundary:
- the first JSON array in the reply is parsed
- every item is validated into a Question
- ids must be unique and not in the exclude list
- per-kind counts must match the request exactly

A single call is made here; retries and fallback live in QuestionSupply.
"""
import random
import string
import time
from typing import Any, Callable, Iterable, List, Optional

from langchain_core.prompts import PromptTemplate
from langchain_classic.chains import LLMChain
from pydantic import TypeAdapter, ValidationError

from ..llm.groq_service import initialize_llm
from ..utils.config import GROQ_GENERATION_TEMPERATURE
from ..utils.logger import setup_logger
from ..utils.retry import is_transient_error
from ..utils.text_utils import extract_json_block
from ..errors import (
    DistributionMismatchError,
    MalformedResponseError,
    RemoteUnavailableError
)
from .models import Question, SessionConfig, count_by_kind

logger = setup_logger("question_generator")

_QUESTION_LIST = TypeAdapter(List[Question])


def default_id_prefix() -> str:
    """Timestamp plus random suffix, so every batch gets fresh ids."""
    seed = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"q-{int(time.time() * 1000)}-{seed}"


class QuestionGenerator:
    """
    Generates assessment questions using the LLM.

    The chain is created lazily, so constructing a generator never needs
    an API key. Tests inject a chain directly.
    """

    def __init__(
        self,
        llm: Optional[Any] = None,
        chain: Optional[Any] = None,
        id_prefix_factory: Callable[[], str] = default_id_prefix
    ):
        """
        Initialize question generator.

        Args:
            llm: Optional LLM instance. If None, one is created on first use.
            chain: Optional ready-made chain exposing invoke(dict) -> dict
            id_prefix_factory: Produces the id prefix for each batch
        """
        self.llm = llm
        self._generation_chain = chain
        self._id_prefix_factory = id_prefix_factory

        logger.info("QuestionGenerator initialized")

    def _get_generation_chain(self) -> LLMChain:
        """Get or create question generation chain."""
        if self._generation_chain is None:
            if self.llm is None:
                self.llm = initialize_llm(temperature=GROQ_GENERATION_TEMPERATURE)
            prompt = PromptTemplate(
                input_variables=[
                    "total", "mcq_count", "coding_count", "voice_count",
                    "topic", "difficulty", "id_prefix", "exclude_ids"
                ],
                template=(
                    "You are an expert technical interviewer preparing a practice assessment.\n\n"
                    "Generate EXACTLY {total} unique questions with this distribution:\n"
                    "- {mcq_count} MCQ questions (multiple choice with 4 options each)\n"
                    "- {coding_count} coding questions (with code templates and expected outputs)\n"
                    "- {voice_count} voice questions (suitable for spoken answers)\n\n"
                    "Topic: {topic}\n"
                    "Difficulty: {difficulty}\n\n"
                    "Requirements:\n"
                    "1. MCQ questions must have exactly 4 options and correctAnswer must be one of them\n"
                    "2. Coding questions include a starter codeTemplate and expectedOutput examples\n"
                    "3. Voice questions have a short reference answer in correctAnswer\n"
                    "4. Ids must start with {id_prefix}- followed by the question number\n"
                    "5. Do not reuse any of these ids: {exclude_ids}\n\n"
                    "Return ONLY a valid JSON array in this exact format:\n"
                    "[\n"
                    "  {{\n"
                    "    \"id\": \"{id_prefix}-1\",\n"
                    "    \"type\": \"mcq\",\n"
                    "    \"question\": \"What is the time complexity of binary search?\",\n"
                    "    \"options\": [\"O(n)\", \"O(log n)\", \"O(n^2)\", \"O(1)\"],\n"
                    "    \"correctAnswer\": \"O(log n)\",\n"
                    "    \"category\": \"Algorithms\",\n"
                    "    \"difficulty\": \"medium\",\n"
                    "    \"voiceEnabled\": false\n"
                    "  }},\n"
                    "  {{\n"
                    "    \"id\": \"{id_prefix}-2\",\n"
                    "    \"type\": \"coding\",\n"
                    "    \"question\": \"Write a function to reverse a string without using built-in methods\",\n"
                    "    \"correctAnswer\": \"function reverseString(str) {{ let result = ''; "
                    "for (let i = str.length - 1; i >= 0; i--) {{ result += str[i]; }} return result; }}\",\n"
                    "    \"category\": \"Programming\",\n"
                    "    \"difficulty\": \"easy\",\n"
                    "    \"codeTemplate\": \"function reverseString(str) {{\\n  // Your code here\\n}}\",\n"
                    "    \"expectedOutput\": [\"input: 'hello' -> output: 'olleh'\"]\n"
                    "  }},\n"
                    "  {{\n"
                    "    \"id\": \"{id_prefix}-3\",\n"
                    "    \"type\": \"voice\",\n"
                    "    \"question\": \"Explain how HTTP works in simple terms\",\n"
                    "    \"correctAnswer\": \"HTTP is a request-response protocol for transferring data "
                    "between browsers and servers\",\n"
                    "    \"category\": \"Web Technology\",\n"
                    "    \"difficulty\": \"medium\",\n"
                    "    \"voiceEnabled\": true\n"
                    "  }}\n"
                    "]"
                )
            )
            self._generation_chain = LLMChain(
                llm=self.llm,
                prompt=prompt,
                output_key="questions"
            )
        return self._generation_chain

    def request_questions(
        self,
        config: SessionConfig,
        exclude_ids: Iterable[str] = ()
    ) -> List[Question]:
        """
        Make one generation request and validate the reply.

        Args:
            config: Session configuration with topic, difficulty and counts
            exclude_ids: Recently used ids the generator must not return

        Returns:
            Questions matching the requested distribution exactly

        Raises:
            RemoteUnavailableError: The call itself failed (transient flag set for overload)
            MalformedResponseError: The reply could not be parsed or validated
            DistributionMismatchError: Per-kind counts differ from the request
        """
        excluded = set(exclude_ids)
        topic = config.topic
        if topic.lower() == "all":
            topic = "web development (React, JavaScript, CSS, HTML, Node.js)"
        difficulty = "mix of easy, medium, hard" if config.difficulty == "all" else config.difficulty

        try:
            chain = self._get_generation_chain()
            result = chain.invoke({
                "total": config.total_questions,
                "mcq_count": config.mcq_count,
                "coding_count": config.coding_count,
                "voice_count": config.voice_count,
                "topic": topic,
                "difficulty": difficulty,
                "id_prefix": self._id_prefix_factory(),
                "exclude_ids": ", ".join(sorted(excluded)) or "none"
            })
        except Exception as e:
            transient = is_transient_error(e)
            logger.warning(f"Question generation call failed (transient={transient}): {e}")
            raise RemoteUnavailableError(str(e), transient=transient) from e

        text = result.get("questions", "") if isinstance(result, dict) else str(result)
        questions = self.parse_questions(text)

        ids = [q.id for q in questions]
        if len(set(ids)) != len(ids):
            raise MalformedResponseError("Generator returned duplicate question ids")
        reused = excluded.intersection(ids)
        if reused:
            raise MalformedResponseError(f"Generator returned excluded question ids: {sorted(reused)}")

        expected = {kind.value: count for kind, count in config.counts_by_kind().items()}
        actual = {kind.value: count for kind, count in count_by_kind(questions).items()}
        if expected != actual:
            raise DistributionMismatchError(expected, actual)

        logger.info(f"Generated {len(questions)} questions remotely: {actual}")
        return questions

    def parse_questions(self, text: str) -> List[Question]:
        """Parse and validate the JSON array in an LLM reply."""
        try:
            data = extract_json_block(text, "[")
        except ValueError as e:
            raise MalformedResponseError(str(e)) from e

        try:
            return _QUESTION_LIST.validate_python(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Generated questions failed validation: {e.error_count()} errors") from e
