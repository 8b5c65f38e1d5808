"""
Portal routes.

/apps (exact) is the catalog; anything below /apps/ belongs to the gateway.
"""

from flask import current_app, redirect, render_template, request, url_for

from launcher.models.application import categories_of, filter_records, get_registry

from ..blueprint import bp


@bp.route("/")
def root():
    return redirect(url_for("portal.catalog"))


@bp.route("/apps")
def catalog():
    """Active apps, grouped by category. ``?q=`` searches, ``?category=`` narrows."""
    active = get_registry().list_active()
    query = request.args.get("q", "")
    category = request.args.get("category", "")
    apps = filter_records(active, query, category)
    categories = {}
    for app in apps:
        categories.setdefault(app.category or "Other", []).append(app)
    return render_template(
        "catalog.html",
        apps=apps,
        categories=dict(sorted(categories.items())),
        all_categories=categories_of(active),
        query=query,
        selected_category=category,
        filtered=bool(query or category),
    )


@bp.route("/view/<slug>")
def viewer(slug):
    """
    Embedded viewer. The iframe points at /apps/<slug>/ so every load goes
    through the gateway (health check included).
    """
    app = get_registry().lookup(slug)
    if app is None or not app.active:
        return render_template("app_not_found.html", slug=slug), 404
    prefix = current_app.config.get("APP_PREFIX", "/apps").rstrip("/")
    return render_template("viewer.html", app=app, frame_src=f"{prefix}/{app.slug}/")


@bp.route("/app-down")
def app_down():
    """Static page shown when an upstream fails its health probe."""
    return render_template("app_down.html"), 503


@bp.route("/404")
def not_found():
    return render_template("app_not_found.html", slug=None), 404
