"""
Health prober: bounded-latency liveness checks against upstream app URLs.

Every failure mode (timeout, DNS, refused connection, TLS, non-2xx status)
collapses into ``reachable=False``. Nothing raises to the caller.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

import requests

from .http_session import create_probe_session

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT_MS = 3000


@dataclass(frozen=True)
class ProbeResult:
    reachable: bool
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status_code: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "reachable": self.reachable,
            "checked_at": self.checked_at.isoformat(),
            "status_code": self.status_code,
            "error": self.error,
        }


class ProbeCache:
    """Short-lived probe results keyed by upstream URL. A TTL of 0 disables caching."""

    def __init__(self, ttl_seconds: float = 0):
        self.ttl_seconds = float(ttl_seconds)
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, ProbeResult]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, url: str) -> Optional[ProbeResult]:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            expires_at, result = entry
            if time.monotonic() >= expires_at:
                del self._entries[url]
                return None
            return result

    def put(self, url: str, result: ProbeResult):
        if not self.enabled:
            return
        with self._lock:
            self._entries[url] = (time.monotonic() + self.ttl_seconds, result)

    def clear(self):
        with self._lock:
            self._entries.clear()


class ProbeDeadlineExceeded(Exception):
    """The HEAD request did not finish within the probe budget."""


class HealthProber:
    """Answers "is this upstream serving traffic right now?" within ``timeout_ms``."""

    def __init__(self, timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS, session: Optional[requests.Session] = None,
                 cache: Optional[ProbeCache] = None):
        self.timeout = timeout_ms / 1000.0
        self.cache = cache or ProbeCache(0)
        self._session = session or create_probe_session()

    def _head(self, url: str) -> int:
        resp = self._session.head(url, timeout=self.timeout, allow_redirects=True)
        try:
            return resp.status_code
        finally:
            resp.close()

    def _head_within_deadline(self, url: str) -> int:
        """
        Run the HEAD request on its own thread and wait at most ``self.timeout``.

        Each probe gets a dedicated worker, so a slow upstream never delays a
        probe for another one. A worker still blocked past the deadline is
        abandoned; the HTTP client's per-step timeout ends it later.
        """
        outcome = {}

        def run():
            try:
                outcome["status_code"] = self._head(url)
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=run, name=f"health-probe {url}", daemon=True)
        worker.start()
        worker.join(self.timeout)
        if worker.is_alive():
            raise ProbeDeadlineExceeded(url)
        if "error" in outcome:
            raise outcome["error"]
        return outcome["status_code"]

    def probe(self, url: str) -> ProbeResult:
        """Probe ``url`` once. Returns within the timeout budget regardless of upstream behavior."""
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug("Probe cache hit for %s (reachable=%s)", url, cached.reachable)
            return cached

        started = time.monotonic()
        try:
            status_code = self._head_within_deadline(url)
        except ProbeDeadlineExceeded:
            result = ProbeResult(False, error=f"timed out after {self.timeout * 1000:.0f} ms")
        except requests.exceptions.Timeout as e:
            result = ProbeResult(False, error=f"timeout: {e}")
        except requests.exceptions.ConnectionError as e:
            result = ProbeResult(False, error=f"connection error: {e}")
        except requests.exceptions.RequestException as e:
            result = ProbeResult(False, error=f"request error: {e}")
        except Exception as e:
            result = ProbeResult(False, error=f"unexpected error: {e!r}")
        else:
            if 200 <= status_code < 300:
                result = ProbeResult(True, status_code=status_code)
            else:
                result = ProbeResult(False, status_code=status_code, error=f"HTTP {status_code}")

        elapsed_ms = (time.monotonic() - started) * 1000
        if result.reachable:
            logger.debug(f"Upstream {url} is up (HTTP {result.status_code}, {elapsed_ms:.0f} ms)")
        else:
            logger.warning(f"Upstream {url} is down: {result.error} ({elapsed_ms:.0f} ms)")

        self.cache.put(url, result)
        return result

    def is_reachable(self, url: str) -> bool:
        return self.probe(url).reachable
