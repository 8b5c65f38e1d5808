"""
Launcher - authenticated portal and routing gateway for internal apps
"""
import os
from pathlib import Path

from flask import Flask
from flask_login import LoginManager

# Initialize Flask-Login
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please sign in to access the dashboard."


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def create_app(config_overrides=None, prober=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Configuration
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    app.config["SERVER_DOMAIN"] = os.environ.get("SERVER_DOMAIN", "localhost")

    # Gateway
    app.config["PROTECTED_PREFIXES"] = os.environ.get("PROTECTED_PREFIXES", "/dashboard")
    app.config["APP_PREFIX"] = os.environ.get("APP_PREFIX", "/apps")
    # Whether /apps/* also requires a session. Off by default: only /dashboard is gated.
    app.config["GATEWAY_PROTECT_APPS"] = _env_flag("GATEWAY_PROTECT_APPS")
    app.config["LOGIN_URL"] = os.environ.get("LOGIN_URL", "/login")
    app.config["APP_DOWN_URL"] = os.environ.get("APP_DOWN_URL", "/app-down")
    app.config["NOT_FOUND_URL"] = os.environ.get("NOT_FOUND_URL", "/404")

    # Health probes
    app.config["PROBE_TIMEOUT_MS"] = int(os.environ.get("PROBE_TIMEOUT_MS", 3000))
    app.config["PROBE_CACHE_SECONDS"] = float(os.environ.get("PROBE_CACHE_SECONDS", 0))

    # Forwarded upstream traffic (connect, read) in seconds
    app.config["FORWARD_CONNECT_TIMEOUT"] = float(os.environ.get("FORWARD_CONNECT_TIMEOUT", 10))
    app.config["FORWARD_READ_TIMEOUT"] = float(os.environ.get("FORWARD_READ_TIMEOUT", 300))

    # Storage and admin bootstrap
    app.config["REGISTRY_PATH"] = os.environ.get("REGISTRY_PATH")
    app.config["ADMIN_CONFIG_PATH"] = os.environ.get("ADMIN_CONFIG_PATH")
    app.config["ADMIN_USERNAME"] = os.environ.get("LAUNCHER_ADMIN_USERNAME", "admin")
    app.config["ADMIN_PASSWORD"] = os.environ.get("LAUNCHER_ADMIN_PASSWORD")
    app.config["ADMIN_PASSWORD_HASH"] = os.environ.get("LAUNCHER_ADMIN_PASSWORD_HASH")

    if config_overrides:
        app.config.update(config_overrides)

    # Ensure Flask knows it's behind a proxy (for HTTPS detection)
    from werkzeug.middleware.proxy_fix import ProxyFix

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)

    # Ensure instance folder exists for the registry and admin config
    instance_path = Path(app.instance_path)
    instance_path.mkdir(parents=True, exist_ok=True)

    from launcher.models.application import REGISTRY_EXTENSION_KEY, AppRegistry
    from launcher.models.user import User

    registry = AppRegistry(app.config["REGISTRY_PATH"] or instance_path / "apps_registry.json")
    app.extensions[REGISTRY_EXTENSION_KEY] = registry

    User.configure(
        app.config["ADMIN_CONFIG_PATH"] or instance_path / "admin_config.json",
        username=app.config["ADMIN_USERNAME"],
        password=app.config["ADMIN_PASSWORD"],
        password_hash=app.config["ADMIN_PASSWORD_HASH"],
    )

    # Initialize Flask-Login
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        """Load user by user_id (which is the username in this app)"""
        if not user_id:
            return None
        try:
            return User.get_by_username(str(user_id))
        except (ValueError, TypeError, AttributeError):
            return None

    @login_manager.unauthorized_handler
    def unauthorized():
        """Handle unauthorized access - return JSON for API routes, redirect for pages"""
        from flask import jsonify, redirect, request, url_for

        if "/api/" in request.path or request.accept_mimetypes.best_match(["application/json", "text/html"]) == "application/json":
            return jsonify({"success": False, "error": "Authentication required", "login_required": True}), 401
        return redirect(url_for("auth.login", next=request.full_path.rstrip("?")))

    # The gateway runs before any view, including for paths no blueprint owns (/apps/<slug>/...)
    from launcher.features import gateway

    gateway.init_app(app, registry, prober=prober)

    # Register blueprints
    from launcher.features.auth.blueprint import bp as auth_bp
    from launcher.features.dashboard.blueprint import bp as dashboard_bp
    from launcher.features.portal.blueprint import bp as portal_bp

    app.register_blueprint(portal_bp)  # /, /apps, /view/<slug>, /app-down, /404
    app.register_blueprint(auth_bp)  # /login, /logout, /profile
    app.register_blueprint(dashboard_bp)  # /dashboard/

    app.logger.info(
        "Launcher ready: registry=%s probe_timeout=%sms protect_apps=%s",
        registry.path,
        app.config["PROBE_TIMEOUT_MS"],
        app.config["GATEWAY_PROTECT_APPS"],
    )
    return app
