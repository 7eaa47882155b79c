"""
FastAPI application for the interview practice system.

Endpoints:
- POST /auth/signup, /auth/signin, /auth/signout, GET /auth/me - Accounts
- POST /sessions - Configure and start a timed assessment
- GET /sessions/{id} - Session snapshot
- POST /sessions/{id}/answers, /next, /previous, /goto - Answer and navigate
- POST /sessions/{id}/submit, /resume, /retake - Grading and recovery
- POST/DELETE /sessions/{id}/capture, POST /transcript, /capture/audio - Voice input
- GET /sessions/{id}/questions/{qid}/speech, /recording - Audio
- POST /practice, GET/DELETE /practice/{id}, POST /practice/{id}/answer, /reset - Conversational practice
- GET /health - Health check
"""
import asyncio
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import uvicorn

from mockprep.api import (
    HealthResponse,
    SignUpRequest,
    SignInRequest,
    UserResponse,
    TokenResponse,
    CreateSessionRequest,
    AnswerRequest,
    GoToRequest,
    RetakeRequest,
    CaptureRequest,
    TranscriptRequest,
    SessionResponse,
    PracticeAnswerRequest,
    PracticeResponse,
    InterviewPracticeService,
    get_service
)
from mockprep.auth import User
from mockprep.errors import (
    AuthenticationError,
    CapabilityUnavailableError,
    GenerationFailedError,
    GradingFailedError,
    InputValidationError,
    InterviewError,
    InvalidTransitionError,
    SessionNotFoundError
)
from mockprep.interview import SessionActor, SessionConfig
from mockprep.interview.session_actor import (
    AudioChunk,
    GetSnapshot,
    GoToQuestion,
    NextQuestion,
    PreviousQuestion,
    RecordAnswer,
    Resume,
    Retake,
    StartCapture,
    StopCapture,
    Submit,
    TranscriptFragment
)
from mockprep.utils.config import LOG_TO_FILE
from mockprep.utils.logger import setup_logger, get_default_log_file

logger = setup_logger("fastapi_app", log_file=get_default_log_file() if LOG_TO_FILE else None)

# Create FastAPI app
app = FastAPI(
    title="MockPrep API",
    description="AI-assisted interview practice: generated questions, timed sessions and graded feedback",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

bearer_scheme = HTTPBearer(auto_error=False)

_STATUS_BY_ERROR = [
    (InputValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (CapabilityUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GenerationFailedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GradingFailedError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def http_error(error: InterviewError) -> HTTPException:
    """Map a workflow error to an HTTP error carrying its user-facing message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.user_message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.user_message)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: InterviewPracticeService = Depends(get_service)
) -> User:
    """Authentication gate: a signed-in user must be present."""
    user = service.auth.current_user(credentials.credentials if credentials else None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AuthenticationError.user_message,
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


def get_actor(
    session_id: str,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
) -> SessionActor:
    try:
        return service.get_session(session_id, user)
    except SessionNotFoundError as e:
        raise http_error(e)


async def run_event(actor: SessionActor, event: Any) -> SessionResponse:
    """Send an event to the session and wait for the resulting state."""
    try:
        await actor.ask(event)
    except InterviewError as e:
        raise http_error(e)
    await actor.settle()
    return SessionResponse(**actor.snapshot())


@app.on_event("startup")
async def startup_event():
    """Initialize service on startup."""
    logger.info("Starting MockPrep API...")
    llm_ready = get_service().initialize()
    if not llm_ready:
        logger.warning("LLM not available - sessions will use fallback questions and offline grading")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop all running sessions."""
    await get_service().shutdown()


@app.get("/", tags=["General"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "MockPrep API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse, tags=["General"])
async def health_check(service: InterviewPracticeService = Depends(get_service)):
    """
    Health check endpoint.

    Returns the status of the service and its components.
    """
    return HealthResponse(
        status="healthy" if service.is_ready() else "not ready",
        llm_ready=service.llm_ready,
        active_sessions=service.sessions.active_count,
        tts_available=bool(service.tts and service.tts.available),
        stt_available=bool(service.stt and service.stt.available)
    )


# ========== AUTH ENDPOINTS ==========

@app.post("/auth/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED, tags=["Auth"])
async def sign_up(request: SignUpRequest, service: InterviewPracticeService = Depends(get_service)):
    """Create an account."""
    try:
        user = await asyncio.to_thread(service.auth.sign_up, request.email, request.password, request.full_name)
    except InterviewError as e:
        raise http_error(e)
    return UserResponse(user_id=user.user_id, email=user.email, full_name=user.full_name)


@app.post("/auth/signin", response_model=TokenResponse, tags=["Auth"])
async def sign_in(request: SignInRequest, service: InterviewPracticeService = Depends(get_service)):
    """Sign in and receive a bearer token."""
    try:
        token = await asyncio.to_thread(service.auth.sign_in, request.email, request.password)
    except InterviewError as e:
        raise http_error(e)
    user = service.auth.current_user(token)
    return TokenResponse(
        access_token=token,
        user=UserResponse(user_id=user.user_id, email=user.email, full_name=user.full_name)
    )


@app.post("/auth/signout", tags=["Auth"])
async def sign_out(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Invalidate the current bearer token."""
    service.auth.sign_out(credentials.credentials)
    return {"message": "Signed out"}


@app.get("/auth/me", response_model=UserResponse, tags=["Auth"])
async def current_user(user: User = Depends(get_current_user)):
    """Return the signed-in user."""
    return UserResponse(user_id=user.user_id, email=user.email, full_name=user.full_name)


# ========== INTERVIEW SESSION ENDPOINTS ==========

@app.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, tags=["Interview"])
async def create_session(
    request: CreateSessionRequest,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """
    Configure and start an interview session.

    The response reflects the session after question generation: "active"
    with the first question, or "error" with a retry-friendly message.
    """
    try:
        config = SessionConfig.build(**request.model_dump())
        actor = await service.create_session(user, config)
    except InterviewError as e:
        raise http_error(e)
    await actor.settle()
    return SessionResponse(**actor.snapshot())


@app.get("/sessions/{session_id}", response_model=SessionResponse, tags=["Interview"])
async def get_session(actor: SessionActor = Depends(get_actor)):
    """Get the current session snapshot."""
    return await run_event(actor, GetSnapshot())


@app.post("/sessions/{session_id}/answers", response_model=SessionResponse, tags=["Interview"])
async def record_answer(request: AnswerRequest, actor: SessionActor = Depends(get_actor)):
    """Record (or replace) the answer to a question."""
    return await run_event(actor, RecordAnswer(request.question_id, request.answer))


@app.post("/sessions/{session_id}/next", response_model=SessionResponse, tags=["Interview"])
async def next_question(actor: SessionActor = Depends(get_actor)):
    """Move to the next question."""
    return await run_event(actor, NextQuestion())


@app.post("/sessions/{session_id}/previous", response_model=SessionResponse, tags=["Interview"])
async def previous_question(actor: SessionActor = Depends(get_actor)):
    """Move to the previous question."""
    return await run_event(actor, PreviousQuestion())


@app.post("/sessions/{session_id}/goto", response_model=SessionResponse, tags=["Interview"])
async def go_to_question(request: GoToRequest, actor: SessionActor = Depends(get_actor)):
    """Jump to a question by index."""
    return await run_event(actor, GoToQuestion(request.index))


@app.post("/sessions/{session_id}/submit", response_model=SessionResponse, tags=["Interview"])
async def submit_session(actor: SessionActor = Depends(get_actor)):
    """Submit answers for grading (from the last question)."""
    return await run_event(actor, Submit())


@app.post("/sessions/{session_id}/resume", response_model=SessionResponse, tags=["Interview"])
async def resume_session(actor: SessionActor = Depends(get_actor)):
    """Return to the questions after a failed submission."""
    return await run_event(actor, Resume())


@app.post("/sessions/{session_id}/retake", response_model=SessionResponse, tags=["Interview"])
async def retake_session(request: Optional[RetakeRequest] = None, actor: SessionActor = Depends(get_actor)):
    """Start over with new questions; fresh=true forgets recently used questions."""
    fresh = request.fresh if request else False
    return await run_event(actor, Retake(fresh=fresh))


@app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Interview"])
async def close_session(
    session_id: str,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Close a session, stopping its timer and voice capture."""
    try:
        await service.close_session(session_id, user)
    except InterviewError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== VOICE ENDPOINTS ==========

@app.post("/sessions/{session_id}/capture", response_model=SessionResponse, tags=["Voice"])
async def start_capture(request: CaptureRequest, actor: SessionActor = Depends(get_actor)):
    """Start live transcription or recording; the other mode is stopped first."""
    return await run_event(actor, StartCapture(request.mode, request.question_id))


@app.delete("/sessions/{session_id}/capture", response_model=SessionResponse, tags=["Voice"])
async def stop_capture(transcribe: bool = False, actor: SessionActor = Depends(get_actor)):
    """Stop voice capture; transcribe=true transcribes a finished recording into the answer."""
    return await run_event(actor, StopCapture(transcribe=transcribe))


@app.post("/sessions/{session_id}/transcript", response_model=SessionResponse, tags=["Voice"])
async def add_transcript(request: TranscriptRequest, actor: SessionActor = Depends(get_actor)):
    """Feed a live transcription fragment into the current capture."""
    return await run_event(actor, TranscriptFragment(request.text, request.is_final))


@app.post("/sessions/{session_id}/capture/audio", response_model=SessionResponse, tags=["Voice"])
async def add_audio_chunk(http_request: Request, actor: SessionActor = Depends(get_actor)):
    """Append raw audio bytes to the current recording."""
    return await run_event(actor, AudioChunk(await http_request.body()))


@app.get("/sessions/{session_id}/questions/{question_id}/speech", tags=["Voice"])
async def question_speech(
    question_id: str,
    actor: SessionActor = Depends(get_actor),
    service: InterviewPracticeService = Depends(get_service)
):
    """Synthesized audio (MP3) of a question prompt."""
    question = next((q for q in actor.session.questions if q.id == question_id), None)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    audio = await asyncio.to_thread(service.speak, question.prompt)
    if not audio:
        raise http_error(CapabilityUnavailableError("No text-to-speech engine produced audio"))
    return Response(content=audio, media_type="audio/mpeg")


@app.get("/sessions/{session_id}/questions/{question_id}/recording", tags=["Voice"])
async def question_recording(question_id: str, actor: SessionActor = Depends(get_actor)):
    """Playback of the last recording made for a question."""
    audio = actor.capture.last_recording(question_id)
    if audio is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No recording for this question")
    return Response(content=audio, media_type="audio/webm")


# ========== PRACTICE ENDPOINTS ==========

@app.post("/practice", response_model=PracticeResponse, status_code=status.HTTP_201_CREATED, tags=["Practice"])
async def start_practice(
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Start a conversational practice interview."""
    conversation = service.start_practice(user)
    return PracticeResponse(**conversation.to_dict())


@app.get("/practice/{conversation_id}", response_model=PracticeResponse, tags=["Practice"])
async def get_practice(
    conversation_id: str,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Get a practice conversation."""
    try:
        conversation = service.get_practice(conversation_id, user)
    except InterviewError as e:
        raise http_error(e)
    return PracticeResponse(**conversation.to_dict())


@app.post("/practice/{conversation_id}/answer", response_model=PracticeResponse, tags=["Practice"])
async def answer_practice(
    conversation_id: str,
    request: PracticeAnswerRequest,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Answer the current practice question and receive the interviewer's reply."""
    try:
        conversation = service.get_practice(conversation_id, user)
        conversation.answer(request.answer)
    except InterviewError as e:
        raise http_error(e)
    return PracticeResponse(**conversation.to_dict())


@app.post("/practice/{conversation_id}/reset", response_model=PracticeResponse, tags=["Practice"])
async def reset_practice(
    conversation_id: str,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Clear the conversation and start again from the first question."""
    try:
        conversation = service.get_practice(conversation_id, user)
    except InterviewError as e:
        raise http_error(e)
    conversation.reset()
    conversation.start()
    return PracticeResponse(**conversation.to_dict())


@app.delete("/practice/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Practice"])
async def close_practice(
    conversation_id: str,
    user: User = Depends(get_current_user),
    service: InterviewPracticeService = Depends(get_service)
):
    """Discard a practice conversation."""
    try:
        service.close_practice(conversation_id, user)
    except InterviewError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
