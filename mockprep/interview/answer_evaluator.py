"""
Answer Evaluator for the interview workflow.

Sends the whole question set plus the answer map to the LLM grader and
reduces the reply into an AggregateResult:
- overall score (0-100) and overall feedback
- one result per question, keyed by question id
- focus areas and recommended topics

Any failure or malformed reply falls back to the HeuristicScorer.
"""
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from langchain_core.prompts import PromptTemplate
from langchain_classic.chains import LLMChain
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ..llm.groq_service import initialize_llm
from ..utils.config import GROQ_GRADING_TEMPERATURE, MAX_RETRIES, RETRY_BASE_DELAY_SECONDS
from ..utils.logger import setup_logger
from ..utils.retry import is_transient_error, retry_with_backoff
from ..utils.text_utils import extract_json_block
from ..errors import GradingFailedError, MalformedResponseError, RemoteServiceError, RemoteUnavailableError
from .heuristic_scorer import HeuristicScorer, category_scores
from .models import (
    AggregateResult,
    CodeAnalysis,
    EvaluationResult,
    Question,
    QuestionKind,
    VoiceAnalysis
)

logger = setup_logger("answer_evaluator")


class RemoteQuestionFeedback(BaseModel):
    """Per-question entry of a grading reply."""

    question_id: str = Field(..., validation_alias=AliasChoices("id", "questionId", "question_id"))
    is_correct: bool = Field(..., validation_alias=AliasChoices("isCorrect", "is_correct"))
    feedback: str = ""
    score: Optional[int] = Field(None, ge=0, le=100)
    correct_answer: Optional[str] = Field(
        None, validation_alias=AliasChoices("correctAnswer", "correct_answer")
    )
    code_analysis: Optional[CodeAnalysis] = Field(
        None, validation_alias=AliasChoices("codeAnalysis", "code_analysis")
    )
    voice_analysis: Optional[VoiceAnalysis] = Field(
        None, validation_alias=AliasChoices("voiceAnalysis", "voice_analysis")
    )


class RemoteGrading(BaseModel):
    """Shape of the grading reply."""

    overall_score: int = Field(..., ge=0, le=100, validation_alias=AliasChoices("overallScore", "score"))
    overall_feedback: str = Field("", validation_alias=AliasChoices("overallFeedback", "overall_feedback"))
    per_question: List[RemoteQuestionFeedback] = Field(
        ..., validation_alias=AliasChoices("perQuestion", "questionFeedbacks", "per_question")
    )
    focus_areas: List[str] = Field(default_factory=list, validation_alias=AliasChoices("focusAreas", "focus_areas"))
    recommended_topics: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("recommendedTopics", "recommended_topics")
    )


def format_questions_for_grading(questions: Sequence[Question], answers: Mapping[str, str]) -> str:
    """Render each question with its reference and the candidate's answer."""
    blocks = []
    for question in questions:
        lines = [
            f"Question ID: {question.id}",
            f"Question: {question.prompt}",
            f"Type: {question.kind.value}",
            f"Topic: {question.topic}",
            f"Difficulty: {question.difficulty}",
        ]
        if question.choices:
            lines.append(f"Options: {', '.join(question.choices)}")
        lines.append(f"Expected Answer: {question.expected_answer}")
        lines.append(f"User Answer: {answers.get(question.id) or 'No answer provided'}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class AnswerEvaluator:
    """
    Evaluates a submitted session using the LLM grader.

    Falls back to HeuristicScorer when the grader is unavailable or its
    reply does not cover every submitted question.
    """

    def __init__(
        self,
        llm: Optional[Any] = None,
        chain: Optional[Any] = None,
        fallback: Optional[HeuristicScorer] = None,
        use_fallback: bool = True,
        max_retries: int = MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize answer evaluator.

        Args:
            llm: Optional LLM instance. If None, one is created on first use.
            chain: Optional ready-made chain exposing invoke(dict) -> dict
            fallback: Local scorer used when remote grading fails
            use_fallback: Raise GradingFailedError instead of falling back when False
            max_retries: Retries for transient grader failures
            base_delay: Backoff base delay in seconds
            sleep: Sleep function (injected in tests)
        """
        self.llm = llm
        self._grading_chain = chain
        self.fallback = fallback or HeuristicScorer()
        self.use_fallback = use_fallback
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep

        logger.info("AnswerEvaluator initialized")

    def _get_grading_chain(self) -> LLMChain:
        """Get or create grading chain."""
        if self._grading_chain is None:
            if self.llm is None:
                self.llm = initialize_llm(temperature=GROQ_GRADING_TEMPERATURE)
            prompt = PromptTemplate(
                input_variables=["question_count", "questions"],
                template=(
                    "You are an expert technical interviewer grading a practice assessment.\n\n"
                    "Evaluate these {question_count} interview answers and provide detailed feedback "
                    "with focus areas for improvement:\n\n"
                    "{questions}\n\n"
                    "Please evaluate each answer and provide:\n"
                    "1. Overall score (0-100)\n"
                    "2. General feedback message\n"
                    "3. Individual question feedback with correct answers for wrong answers\n"
                    "4. Top 3 focus areas where the candidate needs improvement\n"
                    "5. Recommended topics to study based on weak areas\n\n"
                    "Every Question ID above must appear exactly once in perQuestion.\n\n"
                    "Return ONLY valid JSON in this format:\n"
                    "{{\n"
                    "  \"overallScore\": 85,\n"
                    "  \"overallFeedback\": \"Strong understanding of React concepts, "
                    "but review asynchronous JavaScript.\",\n"
                    "  \"perQuestion\": [\n"
                    "    {{\n"
                    "      \"id\": \"question-id\",\n"
                    "      \"isCorrect\": true,\n"
                    "      \"score\": 90,\n"
                    "      \"feedback\": \"Clear understanding of the concept.\",\n"
                    "      \"correctAnswer\": \"Only include if answer was wrong\"\n"
                    "    }}\n"
                    "  ],\n"
                    "  \"focusAreas\": [\"JavaScript async programming\", \"React performance\"],\n"
                    "  \"recommendedTopics\": [\"Study async/await patterns\", \"Learn React.memo and useMemo\"]\n"
                    "}}"
                )
            )
            self._grading_chain = LLMChain(
                llm=self.llm,
                prompt=prompt,
                output_key="grading"
            )
        return self._grading_chain

    def evaluate(self, questions: Sequence[Question], answers: Mapping[str, str]) -> AggregateResult:
        """
        Grade a submitted session.

        Args:
            questions: Session questions (not modified)
            answers: Answer map (not modified); missing answers count as ""

        Returns:
            AggregateResult, graded remotely or by the fallback scorer

        Raises:
            GradingFailedError: Remote grading failed and fallback is disabled
        """
        questions = list(questions)
        filled = {q.id: answers.get(q.id) or "" for q in questions}

        try:
            return self._evaluate_remote(questions, filled)
        except RemoteServiceError as e:
            if not self.use_fallback:
                logger.error(f"Remote grading failed: {e}")
                raise GradingFailedError(str(e)) from e
            logger.warning(f"Remote grading unusable ({e}), using heuristic scorer")
            return self.fallback.evaluate(questions, filled)

    def _invoke_grader(self, questions: List[Question], answers: Dict[str, str]) -> str:
        try:
            chain = self._get_grading_chain()
            result = chain.invoke({
                "question_count": len(questions),
                "questions": format_questions_for_grading(questions, answers)
            })
        except Exception as e:
            transient = is_transient_error(e)
            logger.warning(f"Grading call failed (transient={transient}): {e}")
            raise RemoteUnavailableError(str(e), transient=transient) from e
        return result.get("grading", "") if isinstance(result, dict) else str(result)

    def _evaluate_remote(self, questions: List[Question], answers: Dict[str, str]) -> AggregateResult:
        text = retry_with_backoff(
            lambda: self._invoke_grader(questions, answers),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            sleep=self._sleep
        )
        grading = self.parse_grading(text)

        by_id: Dict[str, RemoteQuestionFeedback] = {}
        for item in grading.per_question:
            by_id.setdefault(item.question_id, item)
        missing = [q.id for q in questions if q.id not in by_id]
        if missing:
            raise MalformedResponseError(f"Grading reply is missing questions: {missing}")

        try:
            results = [self._to_result(q, answers[q.id], by_id[q.id]) for q in questions]
        except ValidationError as e:
            raise MalformedResponseError(f"Grading reply failed validation: {e.error_count()} errors") from e

        correct = sum(1 for r in results if r.is_correct)
        logger.info(f"Remote grading: {correct}/{len(results)} correct, score {grading.overall_score}")
        return AggregateResult(
            overall_score=grading.overall_score,
            summary=grading.overall_feedback or f"Assessment completed with {correct}/{len(results)} correct answers.",
            results=tuple(results),
            focus_areas=tuple(grading.focus_areas),
            recommended_topics=tuple(grading.recommended_topics),
            correct_answers=correct,
            total_questions=len(results),
            category_scores=category_scores(questions, results),
            graded_by="remote"
        )

    def _to_result(self, question: Question, answer: str, item: RemoteQuestionFeedback) -> EvaluationResult:
        score = item.score if item.score is not None else (100 if item.is_correct else 0)
        correct_answer = None
        if not item.is_correct:
            correct_answer = item.correct_answer or question.expected_answer
        return EvaluationResult(
            question_id=question.id,
            user_answer=answer,
            is_correct=item.is_correct,
            score=score,
            feedback=item.feedback,
            correct_answer=correct_answer,
            code_analysis=item.code_analysis if question.kind == QuestionKind.CODING else None,
            voice_analysis=item.voice_analysis
        )

    def parse_grading(self, text: str) -> RemoteGrading:
        """Parse and validate the JSON object in a grading reply."""
        try:
            data = extract_json_block(text, "{")
        except ValueError as e:
            raise MalformedResponseError(str(e)) from e

        try:
            return RemoteGrading.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Grading reply failed validation: {e.error_count()} errors") from e
