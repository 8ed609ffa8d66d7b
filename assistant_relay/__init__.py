"""assistant-relay - Streams answers from a hosted assistant to a chat UI, serving web search tool calls mid-run."""

from .platform.server.app import create_app
from .platform.settings import Settings


def app():
    """Create the FastAPI application instance."""
    settings = Settings()
    return create_app(settings)
