"""
Auth blueprint and route registration.
"""

from flask import Blueprint

bp = Blueprint("auth", __name__)

# Import route modules for side-effects (decorators attach to bp).
from .routes import login, profile  # noqa: E402,F401
