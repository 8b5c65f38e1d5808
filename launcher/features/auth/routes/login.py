"""
Sign-in entry point (login/logout).
"""

from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from launcher.features.gateway.services.urls import is_safe_local_path
from launcher.models.user import User

from ..blueprint import bp


def _next_url():
    target = request.values.get("next")
    if is_safe_local_path(target):
        return target
    return url_for("dashboard.index")


@bp.route("/login", methods=["GET", "POST"])
def login():
    """Admin login page."""
    if current_user.is_authenticated and request.method == "GET":
        return redirect(_next_url())

    if request.method == "POST":
        username = (request.form.get("username") or "").strip()
        password = request.form.get("password")

        user = User.get_by_username(username)
        if user and user.check_password(password):
            login_user(user, remember=bool(request.form.get("remember")))
            current_app.logger.info(f"User {username} signed in")
            return redirect(_next_url())

        current_app.logger.warning(f"Failed sign-in attempt for '{username}' from {request.remote_addr}")
        flash("Invalid username or password.", "error")
        return render_template("auth/login.html", next=request.values.get("next", "")), 401

    return render_template("auth/login.html", next=request.args.get("next", ""))


@bp.route("/logout")
@login_required
def logout():
    """Logout admin."""
    logout_user()
    return redirect(url_for("portal.catalog"))
