"""
Pooled requests sessions for the gateway.

Forwarded traffic gets a short urllib3 retry on idempotent methods; health
probes get exactly one attempt.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

FORWARD_RETRY = Retry(
    total=1,
    backoff_factor=0.1,
    status_forcelist=[502, 503, 504],
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,
)


def create_session(max_retries=0, pool_maxsize: int = 20) -> requests.Session:
    """Create a session whose http and https adapters share ``max_retries``."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=10, pool_maxsize=pool_maxsize, max_retries=max_retries)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def create_forward_session() -> requests.Session:
    return create_session(max_retries=FORWARD_RETRY)


def create_probe_session() -> requests.Session:
    return create_session(max_retries=0)


_SESSION = create_forward_session()
