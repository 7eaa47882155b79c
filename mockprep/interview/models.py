"""
Domain models for the interview workflow.

Questions and results are immutable pydantic models. Remote JSON is
validated straight into these types, so the aliases below accept the
camelCase field names the generator and grader reply with.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator
)

from ..utils.config import (
    DEFAULT_TOPIC,
    DEFAULT_DIFFICULTY,
    DEFAULT_MCQ_COUNT,
    DEFAULT_CODING_COUNT,
    DEFAULT_VOICE_COUNT,
    DEFAULT_TIME_LIMIT_SECONDS,
    DIFFICULTIES
)
from ..errors import InputValidationError


class QuestionKind(str, Enum):
    """Answer modality of a question."""
    MCQ = "mcq"
    CODING = "coding"
    VOICE = "voice"


_KIND_ALIASES = {
    "theory": "mcq",
    "multiple-choice": "mcq",
    "multiple_choice": "mcq",
    "free-form": "voice",
    "freeform": "voice",
    "spoken": "voice",
}


class Question(BaseModel):
    """A single interview question. Immutable once generated."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    kind: QuestionKind = Field(..., validation_alias=AliasChoices("kind", "type"))
    prompt: str = Field(..., min_length=1, validation_alias=AliasChoices("prompt", "question"))
    choices: Optional[Tuple[str, ...]] = Field(
        None, validation_alias=AliasChoices("choices", "options")
    )
    expected_answer: str = Field(
        ..., validation_alias=AliasChoices("expected_answer", "correctAnswer", "expectedAnswer")
    )
    difficulty: str = "medium"
    topic: str = Field("General", validation_alias=AliasChoices("topic", "category"))
    voice_enabled: bool = Field(False, validation_alias=AliasChoices("voice_enabled", "voiceEnabled"))
    code_template: Optional[str] = Field(
        None, validation_alias=AliasChoices("code_template", "codeTemplate")
    )
    expected_output: Tuple[str, ...] = Field(
        (), validation_alias=AliasChoices("expected_output", "expectedOutput")
    )

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return _KIND_ALIASES.get(value, value)
        return value

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value):
        value = str(value or "medium").strip().lower()
        if value not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {value}")
        return value

    @model_validator(mode="after")
    def _check_choices(self) -> "Question":
        if self.kind == QuestionKind.MCQ:
            if not self.choices or len(self.choices) < 2:
                raise ValueError(f"MCQ question {self.id} needs at least two options")
            if self.expected_answer not in self.choices:
                raise ValueError(f"MCQ question {self.id} answer is not one of its options")
        return self

    def public_view(self) -> Dict:
        """Question as shown to the candidate, without the reference answer."""
        return self.model_dump(mode="json", exclude={"expected_answer"})


class SessionConfig(BaseModel):
    """Interview setup. Created once and read-only during a session."""

    model_config = ConfigDict(frozen=True)

    topic: str = DEFAULT_TOPIC
    difficulty: str = DEFAULT_DIFFICULTY
    mcq_count: int = Field(DEFAULT_MCQ_COUNT, ge=0)
    coding_count: int = Field(DEFAULT_CODING_COUNT, ge=0)
    voice_count: int = Field(DEFAULT_VOICE_COUNT, ge=0)
    time_limit_seconds: int = Field(DEFAULT_TIME_LIMIT_SECONDS, gt=0)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value):
        value = str(value or DEFAULT_DIFFICULTY).strip().lower()
        if value != "all" and value not in DIFFICULTIES:
            raise ValueError(f"Difficulty must be 'all' or one of {DIFFICULTIES}")
        return value

    @model_validator(mode="after")
    def _check_total(self) -> "SessionConfig":
        if self.total_questions == 0:
            raise ValueError("Please select at least one question type")
        return self

    @classmethod
    def build(cls, **data) -> "SessionConfig":
        """Validate setup input, reporting problems as InputValidationError."""
        try:
            return cls(**data)
        except ValidationError as e:
            message = "; ".join(err["msg"] for err in e.errors())
            raise InputValidationError(message) from e

    def counts_by_kind(self) -> Dict[QuestionKind, int]:
        return {
            QuestionKind.MCQ: self.mcq_count,
            QuestionKind.CODING: self.coding_count,
            QuestionKind.VOICE: self.voice_count,
        }

    @property
    def total_questions(self) -> int:
        return self.mcq_count + self.coding_count + self.voice_count


def count_by_kind(questions: List[Question]) -> Dict[QuestionKind, int]:
    """Per-kind question counts, with every kind present."""
    counts = {kind: 0 for kind in QuestionKind}
    for question in questions:
        counts[question.kind] += 1
    return counts


class CodeAnalysis(BaseModel):
    """Structured review of a coding answer."""
    model_config = ConfigDict(frozen=True)

    syntax: bool
    logic: bool
    efficiency: str = ""
    test_cases: bool = Field(False, validation_alias=AliasChoices("test_cases", "testCases"))


class VoiceAnalysis(BaseModel):
    """Review of a spoken (transcribed) answer."""
    model_config = ConfigDict(frozen=True)

    transcription_accuracy: Optional[float] = Field(
        None, validation_alias=AliasChoices("transcription_accuracy", "transcriptionAccuracy")
    )
    content_match: float = Field(0.0, validation_alias=AliasChoices("content_match", "contentMatch"))
    speech_errors: Tuple[str, ...] = Field(
        (), validation_alias=AliasChoices("speech_errors", "speechErrors")
    )


class EvaluationResult(BaseModel):
    """Grade for one question. Produced once after submission."""
    model_config = ConfigDict(frozen=True)

    question_id: str
    user_answer: str = ""
    is_correct: bool
    score: int = Field(..., ge=0, le=100)
    feedback: str = ""
    correct_answer: Optional[str] = None
    code_analysis: Optional[CodeAnalysis] = None
    voice_analysis: Optional[VoiceAnalysis] = None


class AggregateResult(BaseModel):
    """Overall outcome of a submitted session. Kept in memory only."""
    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(..., ge=0, le=100)
    summary: str
    results: Tuple[EvaluationResult, ...]
    focus_areas: Tuple[str, ...] = ()
    recommended_topics: Tuple[str, ...] = ()
    correct_answers: int = 0
    total_questions: int = 0
    category_scores: Dict[str, int] = Field(default_factory=dict)
    graded_by: str = "remote"

    @property
    def performance_message(self) -> str:
        if self.overall_score >= 90:
            return "Outstanding! You're interview-ready!"
        if self.overall_score >= 75:
            return "Great job! You're on the right track."
        if self.overall_score >= 60:
            return "Good effort! Keep practicing."
        return "Keep studying and try again!"
