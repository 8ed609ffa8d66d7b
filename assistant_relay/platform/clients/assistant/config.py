"""Configuration for the assistant client."""

from dataclasses import dataclass

from assistant_relay.platform.settings import AssistantSettings


@dataclass(frozen=True)
class AssistantClientConfig:
    """Configuration for an assistant client instance.

    Attributes:
        api_key: Bearer token for the assistant service.
        base_url: Base URL of the assistant REST API.
        beta_header: Value of the OpenAI-Beta header sent on every call.
        timeout_seconds: Timeout for regular requests (default: 60s).
        stream_read_timeout_seconds: Read timeout between chunks of a streamed run (default: 300s).
        messages_page_limit: Page size when listing thread messages (default: 100).
    """

    api_key: str | None = None
    base_url: str = "https://api.openai.com/v1"
    beta_header: str = "assistants=v2"
    timeout_seconds: float = 60.0
    stream_read_timeout_seconds: float = 300.0
    messages_page_limit: int = 100

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_settings(cls, settings: AssistantSettings) -> "AssistantClientConfig":
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            beta_header=settings.beta_header,
            timeout_seconds=settings.timeout_seconds,
            stream_read_timeout_seconds=settings.stream_read_timeout_seconds,
            messages_page_limit=settings.messages_page_limit,
        )
