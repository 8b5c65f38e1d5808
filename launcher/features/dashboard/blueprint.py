"""
Dashboard blueprint and route registration.

Everything under /dashboard is gated by the gateway and by login_required.
"""

from flask import Blueprint, jsonify

bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


@bp.errorhandler(ValueError)
def handle_invalid_input(e):
    """Registry validation errors become 400 responses."""
    return jsonify({"success": False, "error": str(e)}), 400


# Import route modules for side-effects (decorators attach to bp).
from .routes import apps_api, pages  # noqa: E402,F401
