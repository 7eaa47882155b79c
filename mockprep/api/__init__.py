"""
FastAPI API modules.
"""
from .models import (
    HealthResponse,
    SignUpRequest,
    SignInRequest,
    UserResponse,
    TokenResponse,
    # Interview models
    CreateSessionRequest,
    AnswerRequest,
    GoToRequest,
    RetakeRequest,
    CaptureRequest,
    TranscriptRequest,
    SessionResponse,
    # Practice models
    PracticeAnswerRequest,
    PracticeResponse
)
from .service import InterviewPracticeService, get_service

__all__ = [
    'HealthResponse',
    'SignUpRequest',
    'SignInRequest',
    'UserResponse',
    'TokenResponse',
    # Interview models
    'CreateSessionRequest',
    'AnswerRequest',
    'GoToRequest',
    'RetakeRequest',
    'CaptureRequest',
    'TranscriptRequest',
    'SessionResponse',
    # Practice models
    'PracticeAnswerRequest',
    'PracticeResponse',
    'InterviewPracticeService',
    'get_service'
]
