"""
FastAPI request and response models.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional, Dict, Any

from ..utils.config import (
    DEFAULT_TOPIC,
    DEFAULT_DIFFICULTY,
    DEFAULT_MCQ_COUNT,
    DEFAULT_CODING_COUNT,
    DEFAULT_VOICE_COUNT,
    DEFAULT_TIME_LIMIT_SECONDS
)
from ..voice.capture import CaptureMode


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str = Field(..., description="Service status")
    llm_ready: bool = Field(..., description="Whether the LLM is configured")
    active_sessions: int = Field(..., description="Number of running interview sessions")
    tts_available: bool = Field(..., description="Whether question audio can be synthesized")
    stt_available: bool = Field(..., description="Whether recordings can be transcribed")


# ========== AUTH MODELS ==========

class SignUpRequest(BaseModel):
    """Request model for creating an account."""
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password (at least 6 characters)")
    full_name: str = Field("", description="Display name")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane@example.com",
                "password": "s3cretpass",
                "full_name": "Jane Doe"
            }
        }


class SignInRequest(BaseModel):
    """Request model for signing in."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class UserResponse(BaseModel):
    """Response model for a user."""
    user_id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    full_name: str = Field("", description="Display name")


class TokenResponse(BaseModel):
    """Response model for a successful sign-in."""
    access_token: str = Field(..., description="Bearer token")
    token_type: str = Field("bearer", description="Token type")
    user: UserResponse = Field(..., description="Signed-in user")


# ========== INTERVIEW MODELS ==========

class CreateSessionRequest(BaseModel):
    """Request model for starting an interview session."""
    topic: str = Field(DEFAULT_TOPIC, description="Topic filter, or 'All'")
    difficulty: str = Field(DEFAULT_DIFFICULTY, description="easy, medium, hard or all")
    mcq_count: int = Field(DEFAULT_MCQ_COUNT, description="Number of multiple-choice questions")
    coding_count: int = Field(DEFAULT_CODING_COUNT, description="Number of coding questions")
    voice_count: int = Field(DEFAULT_VOICE_COUNT, description="Number of spoken questions")
    time_limit_seconds: int = Field(DEFAULT_TIME_LIMIT_SECONDS, description="Time budget in seconds")

    class Config:
        json_schema_extra = {
            "example": {
                "topic": "React",
                "difficulty": "easy",
                "mcq_count": 2,
                "coding_count": 1,
                "voice_count": 0,
                "time_limit_seconds": 1800
            }
        }


class AnswerRequest(BaseModel):
    """Request model for recording an answer."""
    question_id: str = Field(..., description="Question ID")
    answer: str = Field(..., description="Answer text, chosen option or code")


class GoToRequest(BaseModel):
    """Request model for jumping to a question."""
    index: int = Field(..., description="Zero-based question index")


class RetakeRequest(BaseModel):
    """Request model for retaking an assessment."""
    fresh: bool = Field(False, description="Forget recently used questions first")


class CaptureRequest(BaseModel):
    """Request model for starting voice capture."""
    mode: CaptureMode = Field(..., description="live or recording")
    question_id: Optional[str] = Field(None, description="Question ID (defaults to the current one)")


class TranscriptRequest(BaseModel):
    """Request model for a live transcription fragment."""
    text: str = Field(..., description="Recognized text")
    is_final: bool = Field(True, description="False for interim results")


class SessionResponse(BaseModel):
    """Snapshot of an interview session."""
    session_id: str = Field(..., description="Interview session ID")
    phase: str = Field(..., description="setup, loading, active, submitting, results or error")
    config: Optional[Dict[str, Any]] = Field(None, description="Session configuration")
    current_index: int = Field(..., description="Index of the current question")
    total_questions: int = Field(..., description="Number of questions")
    current_question: Optional[Dict[str, Any]] = Field(None, description="Current question")
    questions: List[Dict[str, Any]] = Field(default_factory=list, description="All questions")
    answers: Dict[str, str] = Field(default_factory=dict, description="Answers by question ID")
    interim_transcript: str = Field("", description="Unfinished live transcription")
    remaining_seconds: int = Field(..., description="Time left")
    elapsed_seconds: int = Field(..., description="Time taken so far")
    result: Optional[Dict[str, Any]] = Field(None, description="Aggregate result once graded")
    performance_message: Optional[str] = Field(None, description="Performance summary")
    error_message: Optional[str] = Field(None, description="User-facing error message")
    can_resume: bool = Field(False, description="Whether a failed submission can be resumed")
    capture_mode: Optional[str] = Field(None, description="Active capture mode")
    recorded_questions: List[str] = Field(default_factory=list, description="Questions with a recording")


# ========== PRACTICE MODELS ==========

class PracticeAnswerRequest(BaseModel):
    """Request model for answering a practice question."""
    answer: str = Field(..., description="Candidate answer")


class PracticeResponse(BaseModel):
    """Conversation state of a practice interview."""
    conversation_id: str = Field(..., description="Practice conversation ID")
    question_count: int = Field(..., description="Questions asked so far")
    max_questions: int = Field(..., description="Questions in this practice")
    finished: bool = Field(..., description="Whether the practice is over")
    messages: List[Dict[str, Any]] = Field(default_factory=list, description="Conversation transcript")
