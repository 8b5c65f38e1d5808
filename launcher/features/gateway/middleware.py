"""
Gateway hook: every request passes through here before reaching a view.

IMPORTANT: The hook must never raise. Unexpected failures are logged and
normalized into a disposition.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app, redirect, request

from launcher.features.auth import session as session_authenticator

from .decisions import Continue, GatewayRequest, GatewaySettings, Redirect, RedirectReason, Rewrite, decide
from .forwarding import forward
from .health import HealthProber, ProbeCache
from .services.urls import raw_request_path, split_app_path

logger = logging.getLogger(__name__)

EXTENSION_KEY = "launcher.gateway"


class Gateway:
    """Holds the gateway's collaborators for one Flask app."""

    def __init__(self, registry, prober: HealthProber, settings: GatewaySettings):
        self.registry = registry
        self.prober = prober
        self.settings = settings

    def describe(self) -> GatewayRequest:
        return GatewayRequest(
            method=request.method,
            path=raw_request_path(
                request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI"),
                request.path,
                request.script_root,
            ),
            query_string=request.query_string.decode("latin-1"),
            is_authenticated=session_authenticator.is_authenticated(request),
        )

    def evaluate(self, descriptor: GatewayRequest):
        try:
            return decide(descriptor, self.registry, self.prober, self.settings)
        except Exception:
            logger.exception(f"Gateway evaluation failed for {descriptor.path}")
            if split_app_path(descriptor.path, self.settings.app_prefix) is not None:
                return Redirect(RedirectReason.NOT_FOUND, self.settings.not_found_url)
            return Continue()

    def handle(self):
        """before_request hook. Returning None lets Flask continue to the view."""
        if request.endpoint == "static":
            return None

        try:
            descriptor = self.describe()
        except Exception:
            logger.exception(f"Could not build gateway request for {request.path}")
            descriptor = GatewayRequest(method=request.method, path=request.path)

        disposition = self.evaluate(descriptor)

        if isinstance(disposition, Continue):
            return None
        if isinstance(disposition, Redirect):
            return redirect(disposition.location)
        if isinstance(disposition, Rewrite):
            try:
                return forward(disposition, self.settings.app_prefix, self.settings.unavailable_url)
            except Exception:
                logger.exception(f"Unexpected error forwarding {request.path} to {disposition.target}")
                return redirect(self.settings.unavailable_url)
        return None


def settings_from_config(config) -> GatewaySettings:
    prefixes = config.get("PROTECTED_PREFIXES", ("/dashboard",))
    if isinstance(prefixes, str):
        prefixes = [p.strip() for p in prefixes.split(",") if p.strip()]
    return GatewaySettings(
        protected_prefixes=tuple(prefixes),
        app_prefix=config.get("APP_PREFIX", "/apps"),
        protect_apps=bool(config.get("GATEWAY_PROTECT_APPS", False)),
        login_url=config.get("LOGIN_URL", "/login"),
        unavailable_url=config.get("APP_DOWN_URL", "/app-down"),
        not_found_url=config.get("NOT_FOUND_URL", "/404"),
    )


def init_app(app: Flask, registry, prober: HealthProber = None) -> Gateway:
    """Attach the gateway to ``app`` as a before_request hook."""
    if prober is None:
        prober = HealthProber(
            timeout_ms=int(app.config.get("PROBE_TIMEOUT_MS", 3000)),
            cache=ProbeCache(float(app.config.get("PROBE_CACHE_SECONDS", 0))),
        )
    gateway = Gateway(registry, prober, settings_from_config(app.config))
    app.extensions[EXTENSION_KEY] = gateway
    app.before_request(gateway.handle)
    return gateway


def get_gateway() -> Gateway:
    return current_app.extensions[EXTENSION_KEY]
