"""
Session authenticator consumed by the gateway.

Only the boolean "is authenticated" signal and the raw session token are
exposed; the gateway never inspects user details.
"""

from typing import Optional

from flask import current_app
from flask_login import current_user


def is_authenticated(request) -> bool:
    """True if ``request`` carries a valid logged-in session."""
    try:
        return bool(current_user.is_authenticated)
    except Exception:
        current_app.logger.warning(f"Could not resolve session for {request.path}", exc_info=True)
        return False


def token(request) -> Optional[str]:
    """Raw session cookie value, if any."""
    cookie_name = current_app.config.get("SESSION_COOKIE_NAME", "session")
    return request.cookies.get(cookie_name)
