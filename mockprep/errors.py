"""
Error taxonomy for the interview workflow.

Every error carries a short, non-technical ``user_message`` that the
HTTP layer can show as-is; ``str(error)`` keeps the technical detail
for the logs.
"""
from typing import Dict, Optional


class InterviewError(Exception):
    """Base class for all interview workflow errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


class RemoteServiceError(InterviewError):
    """The remote generator or grader could not be used."""

    transient = False


class RemoteUnavailableError(RemoteServiceError):
    """Network failure, overload or other service-side error."""

    user_message = "The AI service is temporarily unavailable. Please try again in a few moments."

    def __init__(self, message: str = "", transient: bool = False):
        super().__init__(message)
        self.transient = transient


class MalformedResponseError(RemoteServiceError):
    """The remote reply could not be parsed into the expected shape."""

    user_message = "The AI service returned an unexpected answer. Please try again."


class DistributionMismatchError(MalformedResponseError):
    """The generator returned the wrong number of questions per kind."""

    def __init__(self, expected: Dict[str, int], actual: Dict[str, int]):
        super().__init__(f"Expected question distribution {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class GenerationFailedError(InterviewError):
    """Questions could not be produced, neither remotely nor from the fallback bank."""

    user_message = "We couldn't prepare your questions right now. Please try again."


class GradingFailedError(InterviewError):
    """Answers could not be graded."""

    user_message = "We couldn't grade your answers right now. Your answers are safe, please try submitting again."


class InputValidationError(InterviewError):
    """User input rejected locally, before any network call."""

    user_message = "Please check your input."

    def __init__(self, message: str = ""):
        super().__init__(message, user_message=message or None)


class CapabilityUnavailableError(InterviewError):
    """A speech or audio capability is missing; text input still works."""

    user_message = "Voice input isn't available here. Please type your answer instead."


class InvalidTransitionError(InterviewError):
    """The requested action is not allowed in the current session phase."""

    user_message = "That action isn't available right now."


class AuthenticationError(InterviewError):
    """Sign-in, sign-up or token verification failed."""

    user_message = "Please sign in to continue."


class SessionNotFoundError(InterviewError):
    """No session (or practice conversation) with the given id belongs to the caller."""

    user_message = "This session no longer exists. Please start a new one."
