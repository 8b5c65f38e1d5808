"""
Executes a Rewrite disposition: forwards the inbound request to the upstream
target and streams the upstream response back.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests
from flask import Response, current_app, redirect, request
from urllib3.exceptions import MaxRetryError, ResponseError

from .decisions import Rewrite
from .http_session import _SESSION
from .services.cookies import strip_cookies
from .services.urls import rewrite_location

logger = logging.getLogger(__name__)

# Hop-by-hop headers plus the ones the gateway sets itself.
EXCLUDED_REQUEST_HEADERS = {
    "host",
    "connection",
    "keep-alive",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "content-length",
    "x-forwarded-for",
    "x-real-ip",
    "x-forwarded-proto",
    "x-forwarded-host",
    "x-forwarded-port",
    "x-forwarded-prefix",
}

EXCLUDED_RESPONSE_HEADERS = {"content-encoding", "content-length", "transfer-encoding", "connection", "keep-alive"}


def _client_ip() -> Optional[str]:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return request.headers.get("X-Real-IP") or request.remote_addr


def build_forward_headers(rewrite: Rewrite, app_prefix: str) -> dict:
    """Copy inbound headers for the upstream, adding X-Forwarded-* context."""
    session_cookie = current_app.config.get("SESSION_COOKIE_NAME", "session")
    remember_cookie = current_app.config.get("REMEMBER_COOKIE_NAME", "remember_token")

    headers = {}
    for name, value in request.headers:
        name_lower = name.lower()
        if name_lower in EXCLUDED_REQUEST_HEADERS:
            continue
        if name_lower == "cookie":
            value = strip_cookies(value, (session_cookie, remember_cookie))
            if not value:
                continue
        headers[name] = value

    client_ip = _client_ip()
    if client_ip:
        headers["X-Forwarded-For"] = client_ip
        headers["X-Real-IP"] = client_ip
    headers["X-Forwarded-Proto"] = "https" if request.is_secure else "http"
    headers["X-Forwarded-Host"] = request.host
    headers["X-Forwarded-Prefix"] = "/" + app_prefix.strip("/") + "/" + rewrite.slug
    return headers


def forward(rewrite: Rewrite, app_prefix: str, unavailable_url: str, session: Optional[requests.Session] = None) -> Response:
    """Send the current request to ``rewrite.target`` and relay the response."""
    session = session or _SESSION
    connect_timeout = current_app.config.get("FORWARD_CONNECT_TIMEOUT", 10)
    read_timeout = current_app.config.get("FORWARD_READ_TIMEOUT", 300)

    request_kwargs = {
        "method": request.method,
        "url": rewrite.target,
        "headers": build_forward_headers(rewrite, app_prefix),
        "allow_redirects": False,
        "stream": True,
        "timeout": (connect_timeout, read_timeout),
    }
    data = request.get_data()
    if data:
        request_kwargs["data"] = data

    try:
        resp = session.request(**request_kwargs)
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
        logger.error(f"Upstream {rewrite.app_url} failed while forwarding {request.path}: {e}")
        return redirect(unavailable_url)
    except (ResponseError, MaxRetryError, requests.exceptions.RequestException) as e:
        logger.error(f"Error forwarding {request.path} to {rewrite.target}: {e}")
        return redirect(unavailable_url)

    response_headers = []
    for name, value in resp.raw.headers.items():
        name_lower = name.lower()
        if name_lower in EXCLUDED_RESPONSE_HEADERS:
            continue
        if name_lower == "location":
            value = rewrite_location(value, rewrite.app_url, rewrite.slug, app_prefix)
        response_headers.append((name, value))

    def generate():
        try:
            for chunk in resp.iter_content(chunk_size=8192):
                if chunk:
                    yield chunk
        except requests.exceptions.RequestException as e:
            logger.error(f"Error streaming content from {rewrite.target}: {e}")
        finally:
            resp.close()

    return Response(generate(), status=resp.status_code, headers=response_headers)
