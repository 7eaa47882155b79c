"""
Authentication collaborator.

The interview workflow only asks one question of it: is a user present?
AuthProvider is the interface; InMemoryAuthProvider keeps accounts and
session tokens in process memory, with bcrypt password hashes.
"""
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext

from ..errors import AuthenticationError, InputValidationError
from ..utils.config import BCRYPT_ROUNDS, MIN_PASSWORD_LENGTH
from ..utils.logger import setup_logger

logger = setup_logger("auth")


@dataclass(frozen=True)
class User:
    user_id: str
    email: str
    full_name: str
    created_at: datetime


class AuthProvider:
    """Interface of the authentication collaborator."""

    def sign_up(self, email: str, password: str, full_name: str = "") -> User:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> str:
        raise NotImplementedError

    def sign_out(self, token: str) -> None:
        raise NotImplementedError

    def current_user(self, token: Optional[str]) -> Optional[User]:
        raise NotImplementedError


def normalize_email(email: str) -> str:
    """
    Validate an email address and return its normalized, lower-cased form.

    Raises:
        InputValidationError: Malformed address
    """
    try:
        return validate_email((email or "").strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise InputValidationError(f"Please enter a valid email address ({e})") from e


class InMemoryAuthProvider(AuthProvider):
    """Accounts and bearer tokens kept in memory for the life of the process."""

    def __init__(self, bcrypt_rounds: int = BCRYPT_ROUNDS):
        """
        Args:
            bcrypt_rounds: bcrypt cost factor (tests lower it to stay fast)
        """
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=bcrypt_rounds)
        self._users: Dict[str, User] = {}
        self._password_hashes: Dict[str, str] = {}
        self._tokens: Dict[str, str] = {}
        self._lock = threading.Lock()

    def sign_up(self, email: str, password: str, full_name: str = "") -> User:
        """
        Create an account.

        Raises:
            InputValidationError: Malformed email or short password
            AuthenticationError: Email already registered
        """
        email = normalize_email(email)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise InputValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        password_hash = self.pwd_context.hash(password)
        with self._lock:
            if email in self._users:
                raise AuthenticationError(
                    f"Email already registered: {email}",
                    user_message="An account with this email already exists."
                )
            user = User(
                user_id=secrets.token_hex(8),
                email=email,
                full_name=full_name.strip(),
                created_at=datetime.now()
            )
            self._users[email] = user
            self._password_hashes[email] = password_hash

        logger.info(f"User signed up: {user.user_id}")
        return user

    def sign_in(self, email: str, password: str) -> str:
        """
        Verify credentials and issue a bearer token.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        email = (email or "").strip().lower()
        password_hash = self._password_hashes.get(email)
        if password_hash is None or not self.pwd_context.verify(password or "", password_hash):
            raise AuthenticationError(
                f"Invalid credentials for {email}",
                user_message="Invalid email or password."
            )

        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[token] = email
        logger.info(f"User signed in: {self._users[email].user_id}")
        return token

    def sign_out(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    def current_user(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        email = self._tokens.get(token)
        return self._users.get(email) if email else None
