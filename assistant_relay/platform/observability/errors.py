"""Bugsnag error reporting integration.

Errors logged at ERROR level (including ``logger.exception`` calls made when
an assistant turn fails mid-stream) are forwarded to Bugsnag.
"""

import logging

import bugsnag
from bugsnag.handlers import BugsnagHandler

from assistant_relay.platform.constants import SERVICE_VERSION


async def initialize_bugsnag(api_key: str, release_stage: str) -> bool:
    """Initialize Bugsnag error reporting.

    Args:
        api_key: Bugsnag project API key
        release_stage: Environment identifier ("production", "development", "local")

    Returns:
        True if a handler was attached to the root logger.

    Note:
        No-op when release_stage is "local" or no API key is configured.
    """
    if release_stage == "local" or not api_key:
        return False
    logger = logging.getLogger()
    bugsnag.configure(
        api_key=api_key,
        release_stage=release_stage,
        app_version=SERVICE_VERSION,
        auto_notify=True,
    )
    handler = BugsnagHandler()
    handler.setLevel(logging.ERROR)
    logger.addHandler(handler)
    return True
