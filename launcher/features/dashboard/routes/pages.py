"""
Dashboard HTML pages.
"""

from flask import render_template, request
from flask_login import current_user, login_required

from launcher.models.application import AppStatus, categories_of, filter_records, get_registry

from ..blueprint import bp


def registry_stats(apps) -> dict:
    """Counts shown on the dashboard stat cards."""
    active = sum(1 for app in apps if app.active)
    running = sum(1 for app in apps if app.status is AppStatus.RUNNING)
    return {
        "total": len(apps),
        "active": active,
        "inactive": len(apps) - active,
        "running": running,
        "maintenance": len(apps) - running,
    }


@bp.route("")
@bp.route("/")
@login_required
def index():
    """Dashboard overview."""
    apps = get_registry().list()
    recent = sorted(apps, key=lambda app: app.updated_at, reverse=True)[:5]
    return render_template("dashboard/index.html", stats=registry_stats(apps), recent=recent, user=current_user)


@bp.route("/apps")
@login_required
def apps():
    """All registered apps, active or not, with search and category filters."""
    everything = get_registry().list()
    query = request.args.get("q", "")
    category = request.args.get("category", "")
    return render_template(
        "dashboard/apps.html",
        apps=filter_records(everything, query, category),
        total=len(everything),
        all_categories=categories_of(everything),
        query=query,
        selected_category=category,
        statuses=list(AppStatus),
    )
