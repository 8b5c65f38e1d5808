"""
Tests for the health prober: failure normalization, timeout bound, caching.

The requests session is replaced with a mock so no real network is used.
"""
import os
import sys
import threading
import time
import unittest
from unittest.mock import Mock, patch

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from launcher.features.gateway.health import HealthProber, ProbeCache, ProbeResult
from launcher.features.gateway.http_session import create_forward_session, create_probe_session


def response(status_code):
    resp = Mock()
    resp.status_code = status_code
    return resp


class TestHealthProber(unittest.TestCase):

    def setUp(self):
        self.session = Mock()
        self.prober = HealthProber(timeout_ms=3000, session=self.session)

    def test_2xx_is_reachable(self):
        for status in (200, 204, 299):
            with self.subTest(status=status):
                self.session.head.return_value = response(status)
                result = self.prober.probe("https://crm.internal")
                self.assertTrue(result.reachable)
                self.assertEqual(result.status_code, status)
                self.assertIsNone(result.error)

    def test_head_request_with_timeout_budget(self):
        self.session.head.return_value = response(200)
        self.assertTrue(self.prober.is_reachable("https://crm.internal"))
        self.session.head.assert_called_once_with("https://crm.internal", timeout=3.0, allow_redirects=True)
        self.session.head.return_value.close.assert_called_once()

    def test_non_2xx_is_unreachable(self):
        for status in (301, 404, 500, 503):
            with self.subTest(status=status):
                self.session.head.return_value = response(status)
                result = self.prober.probe("https://crm.internal")
                self.assertFalse(result.reachable)
                self.assertEqual(result.status_code, status)
                self.assertEqual(result.error, f"HTTP {status}")

    def test_every_failure_mode_yields_false(self):
        failures = [
            requests.exceptions.ConnectionError("Failed to resolve 'nowhere.invalid' (Name or service not known)"),
            requests.exceptions.ConnectionError("[Errno 111] Connection refused"),
            requests.exceptions.ConnectTimeout("connect timed out"),
            requests.exceptions.ReadTimeout("read timed out"),
            requests.exceptions.SSLError("certificate verify failed"),
            requests.exceptions.InvalidURL("bad url"),
            requests.exceptions.TooManyRedirects("loop"),
            ValueError("unexpected"),
        ]
        for exc in failures:
            with self.subTest(exc=exc):
                self.session.head.side_effect = exc
                self.assertIs(self.prober.is_reachable("https://crm.internal"), False)

    def test_dns_refused_and_500_are_indistinguishable_at_boolean_level(self):
        outcomes = []
        self.session.head.side_effect = requests.exceptions.ConnectionError("Name or service not known")
        outcomes.append(self.prober.is_reachable("https://a.invalid"))
        self.session.head.side_effect = requests.exceptions.ConnectionError("Connection refused")
        outcomes.append(self.prober.is_reachable("http://127.0.0.1:1"))
        self.session.head.side_effect = None
        self.session.head.return_value = response(500)
        outcomes.append(self.prober.is_reachable("https://crm.internal"))
        self.assertEqual(outcomes, [False, False, False])

    def test_failure_is_logged_with_cause(self):
        self.session.head.side_effect = requests.exceptions.ConnectionError("Connection refused")
        with self.assertLogs("launcher.features.gateway.health", level="WARNING") as logs:
            self.prober.probe("https://crm.internal")
        self.assertIn("Connection refused", logs.output[0])

    def test_every_probe_is_fresh_without_cache(self):
        self.session.head.return_value = response(200)
        self.prober.probe("https://crm.internal")
        self.prober.probe("https://crm.internal")
        self.assertEqual(self.session.head.call_count, 2)


class TestProbeTimeoutBound(unittest.TestCase):

    def test_hanging_upstream_returns_unreachable_within_budget(self):
        release = threading.Event()

        def hang(*args, **kwargs):
            release.wait(5)
            return response(200)

        session = Mock()
        session.head.side_effect = hang
        prober = HealthProber(timeout_ms=200, session=session)
        try:
            started = time.monotonic()
            result = prober.probe("https://never.responds")
            elapsed = time.monotonic() - started
        finally:
            release.set()

        self.assertFalse(result.reachable)
        self.assertIn("timed out", result.error)
        self.assertLess(elapsed, 1.0)

    def test_timeout_budget_is_passed_to_http_client(self):
        session = Mock()
        session.head.return_value = response(200)
        prober = HealthProber(timeout_ms=1500, session=session)
        prober.probe("https://crm.internal")
        self.assertEqual(session.head.call_args.kwargs["timeout"], 1.5)

    def test_hung_upstreams_do_not_delay_a_healthy_one(self):
        release = threading.Event()
        hung_count = 24
        all_hung = threading.Barrier(hung_count + 1)

        def head(url, **kwargs):
            if url.startswith("https://dead"):
                all_hung.wait(5)
                release.wait(10)
            return response(200)

        session = Mock()
        session.head.side_effect = head
        prober = HealthProber(timeout_ms=1000, session=session)
        callers = [
            threading.Thread(target=prober.probe, args=(f"https://dead{n}.internal",), daemon=True)
            for n in range(hung_count)
        ]
        try:
            for caller in callers:
                caller.start()
            # Every hung upstream is holding a HEAD request before the healthy one is checked.
            all_hung.wait(5)

            started = time.monotonic()
            result = prober.probe("https://healthy.internal")
            elapsed = time.monotonic() - started
        finally:
            release.set()
            for caller in callers:
                caller.join(5)

        self.assertTrue(result.reachable)
        self.assertEqual(result.status_code, 200)
        self.assertLess(elapsed, 0.5)


class TestProbeCache(unittest.TestCase):

    def test_disabled_cache_stores_nothing(self):
        cache = ProbeCache(0)
        cache.put("https://a", ProbeResult(True))
        self.assertFalse(cache.enabled)
        self.assertIsNone(cache.get("https://a"))

    def test_entries_expire(self):
        cache = ProbeCache(5)
        with patch("launcher.features.gateway.health.time.monotonic", return_value=100.0):
            cache.put("https://a", ProbeResult(True))
        with patch("launcher.features.gateway.health.time.monotonic", return_value=104.0):
            self.assertTrue(cache.get("https://a").reachable)
        with patch("launcher.features.gateway.health.time.monotonic", return_value=105.0):
            self.assertIsNone(cache.get("https://a"))

    def test_prober_uses_cache_per_url(self):
        session = Mock()
        session.head.return_value = response(200)
        prober = HealthProber(timeout_ms=3000, session=session, cache=ProbeCache(60))
        prober.probe("https://a.internal")
        prober.probe("https://a.internal")
        prober.probe("https://b.internal")
        self.assertEqual(session.head.call_count, 2)


class TestSessions(unittest.TestCase):

    def test_probe_session_never_retries(self):
        adapter = create_probe_session().get_adapter("https://crm.internal")
        self.assertEqual(adapter.max_retries.total, 0)

    def test_forward_session_retries_idempotent_gateway_errors_once(self):
        retry = create_forward_session().get_adapter("http://crm.internal").max_retries
        self.assertEqual(retry.total, 1)
        self.assertIn(503, retry.status_forcelist)
        self.assertNotIn("POST", retry.allowed_methods)


if __name__ == '__main__':
    unittest.main()
