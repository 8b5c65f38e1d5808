"""
Dashboard app-management API routes.
"""

from flask import current_app, jsonify, request
from flask_login import login_required

from launcher.features.gateway import get_gateway
from launcher.models.application import filter_records, get_registry

from ..blueprint import bp

_BOOLEAN_TRUE = {"1", "true", "on", "yes"}


def _payload() -> dict:
    """Request body as a dict, from JSON or a submitted form."""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object.")
        return data

    data = request.form.to_dict()
    tags = request.form.getlist("tags")
    if len(tags) > 1:
        data["tags"] = tags
    if "active" in data:
        data["active"] = str(data["active"]).lower() in _BOOLEAN_TRUE
    return data


def _normalize_tags(tags):
    if tags is None:
        return None
    if isinstance(tags, str):
        return [tag.strip() for tag in tags.split(",") if tag.strip()]
    return [str(tag).strip() for tag in tags if str(tag).strip()]


def _not_found():
    return jsonify({"success": False, "error": "App not found"}), 404


@bp.route("/api/apps", methods=["GET"])
@login_required
def list_apps():
    """Get all apps, optionally narrowed by ``?q=`` and ``?category=``."""
    apps = filter_records(get_registry().list(), request.args.get("q", ""), request.args.get("category", ""))
    return jsonify({"success": True, "apps": [app.to_dict() for app in apps]})


@bp.route("/api/apps", methods=["POST"])
@login_required
def create_app():
    """Register a new app."""
    data = _payload()
    name = (data.get("name") or "").strip()
    app_url = (data.get("app_url") or "").strip()

    if not name or not app_url:
        return jsonify({"success": False, "error": "Name and app URL are required"}), 400

    app = get_registry().register(
        name=name,
        slug=(data.get("slug") or "").strip() or None,
        app_url=app_url,
        category=data.get("category", ""),
        department=data.get("department", ""),
        description=data.get("description") or None,
        tags=_normalize_tags(data.get("tags")),
        status=data.get("status", "running"),
        active=data.get("active", True),
    )
    current_app.logger.info(f"Registered app '{app.slug}' ({app.app_url})")
    return jsonify({"success": True, "app": app.to_dict()}), 201


@bp.route("/api/apps/<app_id>", methods=["GET"])
@login_required
def get_app(app_id):
    app = get_registry().get(app_id)
    if app is None:
        return _not_found()
    return jsonify({"success": True, "app": app.to_dict()})


@bp.route("/api/apps/<app_id>", methods=["PUT", "PATCH"])
@login_required
def update_app(app_id):
    """Update an existing app. Only the fields present in the body change."""
    data = _payload()
    changes = {key: data[key] for key in data if key in ("name", "slug", "app_url", "category", "department", "description", "tags", "status", "active")}
    if "tags" in changes:
        changes["tags"] = _normalize_tags(changes["tags"])

    app = get_registry().update(app_id, **changes)
    if app is None:
        return _not_found()
    return jsonify({"success": True, "app": app.to_dict()})


@bp.route("/api/apps/<app_id>", methods=["DELETE"])
@login_required
def delete_app(app_id):
    if not get_registry().delete(app_id):
        return _not_found()
    current_app.logger.info(f"Deleted app {app_id}")
    return jsonify({"success": True})


@bp.route("/api/apps/<app_id>/toggle", methods=["POST"])
@login_required
def toggle_app(app_id):
    """Toggle whether an app is listed and routable."""
    app = get_registry().toggle_active(app_id)
    if app is None:
        return _not_found()
    return jsonify({"success": True, "app": app.to_dict()})


@bp.route("/api/apps/<app_id>/health", methods=["GET"])
@login_required
def app_health(app_id):
    """Probe the app now and report it next to its declared status."""
    app = get_registry().get(app_id)
    if app is None:
        return _not_found()

    result = get_gateway().prober.probe(app.app_url)
    return jsonify(
        {
            "success": True,
            "app_id": app.id,
            "slug": app.slug,
            "app_url": app.app_url,
            "declared_status": app.status.value,
            "probe": result.to_dict(),
        }
    )
