"""HTTP server infrastructure module.

This module provides the FastAPI application factory and HTTP-related utilities:
- Application factory (``platform.server.app``)
- Route handlers
- FastAPI dependencies
- Health checks
- JSON error responses
"""

from assistant_relay.platform.server.health import HealthCheck

__all__ = [
    "HealthCheck",
]
