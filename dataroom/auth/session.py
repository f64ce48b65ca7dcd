"""Browser-session auth state.

`AuthSession` keeps the signed-in user in a per-browser storage (NiceGUI's
`app.storage.user`) and exposes the transitions the pages drive: start,
success, failure, logout, and the restore-on-load check.
"""

import logging
import re
from collections.abc import MutableMapping
from typing import Any

from pydantic import BaseModel, ValidationError

from dataroom.auth.store import AuthError, User, UserStore

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
SESSION_TOKEN = "local-session-token"
MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthState(BaseModel):
    """Current authentication state for one browser session."""

    user: User | None = None
    is_authenticated: bool = False
    loading: bool = False
    error: str | None = None
    initialized: bool = False


class SignupForm(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    agree_to_terms: bool = False


def validate_signup(form: SignupForm) -> str | None:
    """Check a sign-up form.

    Returns:
        The first validation error, or None if the form is valid.
    """
    if not form.first_name.strip() or not form.last_name.strip():
        return "First and last name are required"
    if not _EMAIL_RE.match(form.email.strip()):
        return "Enter a valid email address"
    if len(form.password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if form.password != form.confirm_password:
        return "Passwords don't match"
    if not form.agree_to_terms:
        return "You must agree to the terms and conditions"
    return None


class AuthSession:
    """Auth state bound to a session storage and the user registry."""

    def __init__(self, session_storage: MutableMapping[str, Any], users: UserStore) -> None:
        self._session = session_storage
        self._users = users
        self.state = AuthState()

    def login_start(self) -> None:
        self.state = self.state.model_copy(update={"loading": True, "error": None})

    def login_success(self, user: User) -> None:
        self._session[USER_KEY] = user.model_dump()
        self.state = self.state.model_copy(
            update={"loading": False, "is_authenticated": True, "user": user, "error": None}
        )

    def login_failure(self, message: str) -> None:
        self.state = self.state.model_copy(update={"loading": False, "error": message})

    def logout(self) -> None:
        self._session.pop(TOKEN_KEY, None)
        self._session.pop(USER_KEY, None)
        self.state = self.state.model_copy(
            update={"is_authenticated": False, "user": None, "error": None}
        )
        logger.info("Signed out")

    def initialize_auth(self) -> None:
        self.state = self.state.model_copy(update={"initialized": True})

    def login(self, email: str, password: str) -> User:
        """Sign in with email and password.

        Raises:
            AuthError: If the credentials are rejected.
        """
        self.login_start()
        try:
            user = self._users.authenticate(email, password)
        except AuthError as e:
            self.login_failure(str(e) or "Login failed")
            raise
        self._session[TOKEN_KEY] = SESSION_TOKEN
        self.login_success(user)
        logger.info(f"Signed in {user.email}")
        return user

    def register(self, first_name: str, last_name: str, email: str, password: str) -> User:
        """Register a new user and sign them in.

        Raises:
            AuthError: If the email is already registered.
        """
        user = self._users.register(first_name, last_name, email, password)
        self._session[TOKEN_KEY] = SESSION_TOKEN
        self.login_success(user)
        return user

    def check_auth(self) -> AuthState:
        """Restore the signed-in user from session storage, if any."""
        if self._session.get(TOKEN_KEY):
            try:
                stored = self._session.get(USER_KEY)
                if stored:
                    self.login_success(User.model_validate(stored))
            except ValidationError as e:
                logger.error(f"Failed to load user from session storage: {e}")
                self._session.pop(TOKEN_KEY, None)
                self._session.pop(USER_KEY, None)
        self.initialize_auth()
        return self.state
