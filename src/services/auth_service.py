"""Identity provider: email/password accounts and the current-user session."""

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable

from src.core import db_client
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.errors import AuthenticationError
from src.core.logging import span
from src.domain.user import User


logger = logging.getLogger(__name__)

IdentityListener = Callable[[User | None], None]


def hash_password(password: str, *, salt: str | None = None) -> tuple[str, str]:
    """Hash a password with PBKDF2-SHA256.

    Returns:
        Tuple of (hex digest, hex salt)
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        constants.PASSWORD_HASH_ITERATIONS,
    )
    return digest.hex(), salt


def verify_password(password: str, *, password_hash: str, salt: str) -> bool:
    """Check a password against a stored hash in constant time."""
    candidate, _ = hash_password(password, salt=salt)
    return hmac.compare_digest(candidate, password_hash)


async def sign_up(*, email: str, password: str) -> User:
    """Create an account and return its identity.

    Raises:
        AuthenticationError: If the email is taken or the password is too short
        ValueError: If the email is malformed
        db_client.DatabaseError: If database operation fails
    """
    with span("auth_service.sign_up"):
        email = email.strip().lower()
        if len(password) < constants.PASSWORD_MIN_LENGTH:
            raise AuthenticationError(f"Password must be at least {constants.PASSWORD_MIN_LENGTH} characters")

        existing = await db_client.get_first_record(
            collection=constants.USERS_COLLECTION,
            filter_query=f'email = "{sanitize_param(email)}"',
        )
        if existing:
            raise AuthenticationError("An account with this email already exists")

        # Validate before writing so a bad address never reaches the database
        User(id="pending", email=email)

        password_hash, salt = hash_password(password)
        record = await db_client.create_record(
            collection=constants.USERS_COLLECTION,
            data={"email": email, "password_hash": password_hash, "password_salt": salt},
        )

        logger.info("Registered user", extra={"user_id": record["id"]})
        return User(id=record["id"], email=record["email"])


async def sign_in(*, email: str, password: str) -> User:
    """Authenticate with email and password.

    Raises:
        AuthenticationError: If the credentials do not match an account
    """
    with span("auth_service.sign_in"):
        record = await db_client.get_first_record(
            collection=constants.USERS_COLLECTION,
            filter_query=f'email = "{sanitize_param(email.strip().lower())}"',
        )
        if record is None or not verify_password(
            password, password_hash=record["password_hash"], salt=record["password_salt"]
        ):
            logger.warning("sign_in_failed")
            raise AuthenticationError("Invalid email or password")

        logger.info("Signed in", extra={"user_id": record["id"]})
        return User(id=record["id"], email=record["email"])


class AuthSession:
    """Holds the current user and tells listeners whenever it changes."""

    def __init__(self, user: User | None = None) -> None:
        self._user = user
        self._listeners: list[IdentityListener] = []

    @property
    def current_user(self) -> User | None:
        return self._user

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def sign_in(self, user: User) -> None:
        self._set_user(user)

    def sign_out(self) -> None:
        self._set_user(None)

    def _set_user(self, user: User | None) -> None:
        if user == self._user:
            return
        self._user = user
        for listener in list(self._listeners):
            listener(user)
