"""Local email/password authentication.

Responsibilities:
    - User registry with hashed passwords (`UserStore`)
    - Per-browser session state and sign-in flows (`AuthSession`)
    - Sign-up form validation
"""

from dataroom.auth.session import AuthSession, AuthState, SignupForm, validate_signup
from dataroom.auth.store import AuthError, User, UserStore

__all__ = [
    "AuthError",
    "AuthSession",
    "AuthState",
    "SignupForm",
    "User",
    "UserStore",
    "validate_signup",
]
