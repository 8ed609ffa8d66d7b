"""
Health and build metadata for the relay.
"""

import datetime
import os
import platform
import socket
import threading
import time

from assistant_relay.platform.constants import SERVICE_NAME, SERVICE_VERSION

__all__ = ["HealthCheck", "MetadataManager", "metadata"]


class HealthCheck:
    """Thread-safe health check state manager.

    Uses a threading.Event so the service can be drained during shutdown:
    ``/health`` answers 404 while disabled.
    """

    _health_check_enabled = threading.Event()

    @staticmethod
    def enable() -> None:
        HealthCheck._health_check_enabled.set()

    @staticmethod
    def disable() -> None:
        HealthCheck._health_check_enabled.clear()

    @staticmethod
    def status() -> bool:
        return HealthCheck._health_check_enabled.is_set()


class MetadataManager:
    """
    Static build and host metadata served by ``/info``, plus uptime.

    Build fields come from the environment (set by the image build); service
    name and version fall back to the package constants.
    """

    ENV_INFO_KEYS = [
        "BUILD_DATE",
        "BUILD_URL",
        "BUILD_VERSION",
        "GIT_COMMIT",
        "GIT_COMMIT_DATE",
        "IMAGE_NAME",
        "SERVICE_ID",
        "SERVICE_NAME",
        "PYTHON_VERSION",
    ]
    HOSTNAME_KEY = "HOSTNAME"
    OS_VERSION_KEY = "OS_VERSION"

    def __init__(self, environ=None):
        environ = os.environ if environ is None else environ
        self._started_at = datetime.datetime.now(tz=datetime.UTC).isoformat()
        self._started_ts = time.monotonic()

        values = {key: environ.get(key) for key in self.ENV_INFO_KEYS}
        values["SERVICE_NAME"] = values["SERVICE_NAME"] or SERVICE_NAME
        values["BUILD_VERSION"] = values["BUILD_VERSION"] or SERVICE_VERSION
        values[self.HOSTNAME_KEY] = socket.gethostname()
        values[self.OS_VERSION_KEY] = platform.platform()
        self.metadata = {key.lower(): value for key, value in values.items()}

    def info(self):
        return {
            **self.metadata,
            "started": self._started_at,
            "uptime_seconds": round(time.monotonic() - self._started_ts, 3),
        }


metadata = MetadataManager()
