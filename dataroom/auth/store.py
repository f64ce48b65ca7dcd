"""Local user registry.

Users live in a dict-like storage (NiceGUI's `app.storage.general` in the
app, a plain dict in tests) under the `users` key. This is advisory
authentication for a single deployment, not a credential service.
"""

import logging
import time
from collections.abc import MutableMapping
from typing import Any

import bcrypt
from pydantic import BaseModel

logger = logging.getLogger(__name__)

USERS_KEY = "users"
# bcrypt only reads the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


class AuthError(Exception):
    """Raised when registration or sign-in is refused."""


class User(BaseModel):
    """Public profile of a registered user."""

    id: str
    first_name: str
    last_name: str
    email: str

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with bcrypt and a fresh salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, stored: str) -> bool:
    if not stored:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), stored.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a bcrypt hash")
        return False


class UserStore:
    """Registers and authenticates users against a dict-like storage."""

    def __init__(self, storage: MutableMapping[str, Any]) -> None:
        self._storage = storage

    def _records(self) -> list[dict[str, Any]]:
        records = self._storage.get(USERS_KEY)
        return list(records) if isinstance(records, list) else []

    def _find(self, email: str) -> dict[str, Any] | None:
        email = normalize_email(email)
        for record in self._records():
            if record.get("email") == email:
                return record
        return None

    def register(self, first_name: str, last_name: str, email: str, password: str) -> User:
        """Add a user.

        Raises:
            AuthError: If the email is already registered.
        """
        if self._find(email) is not None:
            raise AuthError("User already exists")

        user = User(
            id=str(time.time_ns() // 1_000_000),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=normalize_email(email),
        )
        record = {**user.model_dump(), "password_hash": hash_password(password)}
        # Reassign rather than mutate so persistent storages notice the change
        self._storage[USERS_KEY] = [*self._records(), record]
        logger.info(f"Registered user {user.email}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials.

        Raises:
            AuthError: If the email is unknown or the password is wrong.
        """
        record = self._find(email)
        if record is None or not verify_password(password, record.get("password_hash", "")):
            logger.warning(f"Failed sign-in for {normalize_email(email)}")
            raise AuthError("Invalid email or password")
        return User.model_validate(record)
