"""
auth.py — Accounts and the per-request user session

The signed-in user travels through the app as an explicit UserSession that
route guards build once per request and hand to whatever needs it (wishlist,
checkout, admin). Nothing reads "the current user" from a module global.

Admin rights come from one place only: the admins table (see db.is_admin_email).
"""

import logging

from werkzeug.security import generate_password_hash, check_password_hash

from yewa.core import db
from yewa.core.validators import ValidationError, is_valid_email

log = logging.getLogger("yewa.auth")

SESSION_USER_KEY = "user_id"
MIN_PASSWORD_LENGTH = 6


class UserSession:
    """Who is making the request. Anonymous when user_id is None."""

    def __init__(self, user_id=None, email=None, full_name=None, is_admin=False):
        self.user_id = user_id
        self.email = email
        self.full_name = full_name
        self.is_admin = is_admin

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def anonymous(cls) -> "UserSession":
        return cls()

    @classmethod
    def from_profile(cls, profile: dict) -> "UserSession":
        return cls(
            user_id=profile["id"],
            email=profile.get("email"),
            full_name=profile.get("full_name"),
            is_admin=db.is_admin_email(profile.get("email")),
        )

    @classmethod
    def from_request(cls, cookie) -> "UserSession":
        return load_user_session(cookie)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "is_admin": self.is_admin,
            "is_authenticated": self.is_authenticated,
        }

    def __repr__(self):
        return f"<UserSession {self.email or 'anonymous'}>"


def load_user_session(cookie) -> UserSession:
    """Build the UserSession for a request from its signed session cookie."""
    user_id = cookie.get(SESSION_USER_KEY)
    if not user_id:
        return UserSession.anonymous()
    profile = db.get_profile(user_id)
    if not profile:
        # Stale cookie for a deleted account
        return UserSession.anonymous()
    return UserSession.from_profile(profile)


def sign_up(email: str, password: str, full_name: str | None = None) -> UserSession:
    """Create an account + profile row. Raises ValidationError on bad input."""
    email = (email or "").strip().lower()
    errors = {}
    if not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not errors and db.get_profile_by_email(email):
        errors["email"] = "An account with this email already exists"
    if errors:
        raise ValidationError(errors)

    profile = db.insert_profile(email, full_name=(full_name or "").strip() or None,
                                password_hash=generate_password_hash(password))
    log.info("New account %s", email, extra={"user": profile["id"]})
    return UserSession.from_profile(profile)


def sign_in(email: str, password: str) -> UserSession | None:
    """Return the session for valid credentials, else None."""
    profile = db.get_profile_by_email(email or "")
    if not profile or not profile.get("password_hash"):
        return None
    if not check_password_hash(profile["password_hash"], password or ""):
        log.info("Failed sign-in for %s", email)
        return None
    return UserSession.from_profile(profile)


def ensure_profile(user_id: str, email: str, full_name: str | None = None) -> dict:
    """Return the profile row for user_id, creating it when missing.

    Accounts created outside sign_up() (seed scripts, imported users) get
    their profile row on first use.
    """
    profile = db.get_profile(user_id)
    if profile:
        return profile
    log.info("Creating missing profile for %s", email, extra={"user": user_id})
    return db.insert_profile(email, full_name=full_name, user_id=user_id)


def sign_out(cookie):
    """Forget the signed-in user; the cart stays with the browser."""
    cookie.pop(SESSION_USER_KEY, None)
