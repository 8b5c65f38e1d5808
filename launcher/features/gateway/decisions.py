"""
Routing decisions for the gateway.

``decide`` is a pure function of the request descriptor, the registry contents
and the probe outcome. It never raises: every path ends in one disposition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Tuple, Union
from urllib.parse import unquote, urlencode

from .services.urls import build_upstream_url, matches_any_prefix, split_app_path

logger = logging.getLogger(__name__)


class RedirectReason(str, Enum):
    LOGIN = "login"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Continue:
    """Let the request reach its original destination unchanged."""


@dataclass(frozen=True)
class Redirect:
    reason: RedirectReason
    location: str


@dataclass(frozen=True)
class Rewrite:
    target: str
    slug: str
    app_url: str


Disposition = Union[Continue, Redirect, Rewrite]


@dataclass(frozen=True)
class GatewayRequest:
    """What the gateway needs to know about an inbound request."""

    method: str
    path: str
    query_string: str = ""
    is_authenticated: bool = False


@dataclass(frozen=True)
class GatewaySettings:
    protected_prefixes: Tuple[str, ...] = ("/dashboard",)
    app_prefix: str = "/apps"
    protect_apps: bool = False
    login_url: str = "/login"
    unavailable_url: str = "/app-down"
    not_found_url: str = "/404"
    login_next_param: Optional[str] = "next"


class Registry(Protocol):
    def lookup(self, slug: str): ...


class Prober(Protocol):
    def is_reachable(self, url: str) -> bool: ...


def _login_redirect(request: GatewayRequest, settings: GatewaySettings) -> Redirect:
    location = settings.login_url
    if settings.login_next_param:
        original = request.path + (f"?{request.query_string}" if request.query_string else "")
        separator = "&" if "?" in location else "?"
        location += separator + urlencode({settings.login_next_param: original})
    return Redirect(RedirectReason.LOGIN, location)


def _safe_lookup(registry: Registry, slug: str):
    try:
        return registry.lookup(slug)
    except Exception:
        logger.exception("Registry lookup failed for slug '%s'; treating it as not found", slug)
        return None


def _safe_probe(prober: Prober, url: str) -> bool:
    try:
        return bool(prober.is_reachable(url))
    except Exception:
        logger.exception("Health probe raised for %s; treating upstream as unreachable", url)
        return False


def decide(request: GatewayRequest, registry: Registry, prober: Prober, settings: GatewaySettings) -> Disposition:
    """Evaluate the gateway rules in order and return the first matching disposition."""
    protected = settings.protected_prefixes
    if settings.protect_apps:
        protected = protected + (settings.app_prefix,)

    # Authentication takes priority over all app routing. The path may still be
    # percent-encoded, so the gate matches its decoded form.
    if not request.is_authenticated and matches_any_prefix(unquote(request.path), protected):
        logger.info(f"Unauthenticated request to {request.path}; redirecting to sign-in")
        return _login_redirect(request, settings)

    parts = split_app_path(request.path, settings.app_prefix)
    if parts is None:
        return Continue()

    slug, remainder = parts
    record = _safe_lookup(registry, slug) if slug else None

    if record is None or not record.active:
        logger.info(f"App not found for slug '{slug}' (path was: {request.path})")
        return Redirect(RedirectReason.NOT_FOUND, settings.not_found_url)

    # Declared status is informational; only the live probe gates routing.
    if not _safe_probe(prober, record.app_url):
        declared = getattr(record.status, "value", record.status)
        logger.info(f"App '{slug}' is down (declared status: {declared}); redirecting to {settings.unavailable_url}")
        return Redirect(RedirectReason.UNAVAILABLE, settings.unavailable_url)

    target = build_upstream_url(record.app_url, remainder, request.query_string)
    logger.debug(f"Rewriting {request.path} -> {target}")
    return Rewrite(target=target, slug=slug, app_url=record.app_url)
