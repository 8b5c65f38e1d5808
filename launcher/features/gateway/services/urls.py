"""
URL helpers for the gateway: prefix matching, slug extraction, upstream targets.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple
from urllib.parse import quote, unquote, urlparse


def matches_prefix(path: str, prefix: str) -> bool:
    """Return True if ``path`` is ``prefix`` itself or lies underneath it."""
    prefix = "/" + prefix.strip("/")
    return path == prefix or path.startswith(prefix + "/")


def matches_any_prefix(path: str, prefixes: Iterable[str]) -> bool:
    return any(matches_prefix(path, prefix) for prefix in prefixes)


def split_app_path(path: str, app_prefix: str) -> Optional[Tuple[str, str]]:
    """
    Split ``/apps/{slug}/rest`` into ``(slug, "/rest")``.

    Returns None when the path is not under the app prefix. The slug is the
    segment right after the prefix and may be empty (``/apps/``). The remainder
    keeps its leading slash and any trailing slash; it is empty for ``/apps/{slug}``.
    """
    base = "/" + app_prefix.strip("/") + "/"
    if not path.startswith(base):
        return None

    tail = path[len(base):]
    slug, sep, rest = tail.partition("/")
    return slug, (sep + rest)


def build_upstream_url(app_url: str, remainder: str, query_string: str = "") -> str:
    """
    Build the rewrite target: ``app_url`` + path remainder + original query string.

    ``https://host/base`` + ``/sub/page`` + ``x=1`` -> ``https://host/base/sub/page?x=1``
    """
    target = app_url
    if remainder:
        target = app_url.rstrip("/") + remainder
    if query_string:
        target += f"?{query_string}"
    return target


def rewrite_location(location: str, app_url: str, app_slug: str, app_prefix: str = "/apps") -> str:
    """
    Map a Location header issued by an upstream back under ``/apps/{slug}``.

    Absolute URLs on the upstream origin and root-relative paths are prefixed;
    anything pointing elsewhere is returned unchanged.
    """
    if not location or not isinstance(location, str):
        return location

    public_base = "/" + app_prefix.strip("/") + "/" + app_slug
    upstream = urlparse(app_url)
    upstream_path = upstream.path.rstrip("/")

    if location.startswith(("http://", "https://")):
        parsed = urlparse(location)
        if parsed.netloc != upstream.netloc:
            return location
        path = parsed.path or "/"
    elif location.startswith("//"):
        return location
    elif location.startswith("/"):
        parsed = urlparse(location)
        path = parsed.path
    else:
        # Relative to the current document, the browser resolves it correctly already.
        return location

    if upstream_path and (path == upstream_path or path.startswith(upstream_path + "/")):
        path = path[len(upstream_path):] or "/"

    if path == public_base or path.startswith(public_base + "/"):
        new_location = path
    else:
        new_location = public_base + path

    if parsed.query:
        new_location += f"?{parsed.query}"
    if parsed.fragment:
        new_location += f"#{parsed.fragment}"
    return new_location


def is_safe_local_path(target: Optional[str]) -> bool:
    """True if ``target`` is a path on this site (used for ``next`` redirects)."""
    if not target:
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc and target.startswith("/") and not target.startswith("//")


def raw_request_path(raw_uri: Optional[str], decoded_path: str, script_root: str = "") -> str:
    """
    Return the request path exactly as the client encoded it.

    The WSGI server decodes ``PATH_INFO``, which folds ``%2F`` into ``/``. The
    raw request URI keeps the original encoding; it is used when it decodes
    back to ``decoded_path``. Otherwise the decoded path is re-quoted.
    """
    if raw_uri and raw_uri.startswith("/") and not raw_uri.startswith("//"):
        raw_path = raw_uri.split("?", 1)[0].split("#", 1)[0]
        root = quote(script_root.rstrip("/"))
        if root and (raw_path == root or raw_path.startswith(root + "/")):
            raw_path = raw_path[len(root):]
        if unquote(raw_path) == decoded_path:
            return raw_path
    return quote(decoded_path, safe="/:@!$&'()*+,;=")
