"""
Profile page: account details and password change.
"""

from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from launcher.models.user import User

from ..blueprint import bp

MIN_PASSWORD_LENGTH = 8


@bp.route("/profile", methods=["GET", "POST"])
@login_required
def profile():
    if request.method == "POST":
        current_password = request.form.get("current_password")
        new_password = request.form.get("new_password") or ""
        confirm_password = request.form.get("confirm_password") or ""

        if not current_user.check_password(current_password):
            flash("Current password is incorrect.", "error")
        elif len(new_password) < MIN_PASSWORD_LENGTH:
            flash(f"New password must be at least {MIN_PASSWORD_LENGTH} characters.", "error")
        elif new_password != confirm_password:
            flash("New passwords do not match.", "error")
        else:
            User.update_password(current_user.username, new_password)
            flash("Password updated.", "success")
            return redirect(url_for("auth.profile"))

    return render_template("profile.html", user=current_user)
