"""
Login gate for the Streamlit app.

A single configured credential keeps casual visitors out of the UI.
It is NOT a security mechanism: there are no user accounts, sessions
live in Streamlit's session state, and the hash is unsalted SHA-256.
"""

import hashlib
import hmac
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.config import AppSettings, get_settings


class AuthUser(BaseModel):
    """The logged-in user shown in the sidebar."""

    username: str
    display_name: str = "Administrator"
    role: str = "ADMIN"
    logged_in_at: datetime = Field(default_factory=datetime.now)


def hash_password(password: str) -> str:
    """Hex SHA-256 digest, the format stored in APP_ADMIN_PASSWORD_HASH."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_credentials(
    username: str,
    password: str,
    settings: Optional[AppSettings] = None,
) -> Optional[AuthUser]:
    """
    Check a login attempt.

    The username is compared case-insensitively.

    Returns:
        AuthUser on success, None otherwise
    """
    settings = settings or get_settings().app

    user_ok = username.strip().lower() == settings.admin_username.lower()
    password_ok = hmac.compare_digest(
        hash_password(password),
        settings.admin_password_hash.lower(),
    )
    if user_ok and password_ok:
        return AuthUser(username=settings.admin_username)
    return None
