"""
Routing gateway: auth gate, slug resolution, health-gated rewrite to upstream apps.
"""

from .decisions import Continue, GatewayRequest, GatewaySettings, Redirect, RedirectReason, Rewrite, decide  # noqa: F401
from .health import HealthProber, ProbeCache, ProbeResult  # noqa: F401
from .middleware import get_gateway, init_app  # noqa: F401
