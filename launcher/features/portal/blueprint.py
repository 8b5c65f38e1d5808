"""
Portal blueprint and route registration.
"""

from flask import Blueprint

bp = Blueprint("portal", __name__)

from .routes import pages  # noqa: E402,F401
