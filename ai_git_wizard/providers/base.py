from __future__ import annotations

from abc import ABC, abstractmethod

from ..config import Config


class BaseDriver(ABC):
    """Abstract base for provider-specific chat completion calls.

    A driver owns the HTTP/client call pattern of one provider. Prompt
    building, concurrency limits and reply decoding stay in LLMClient.
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    @abstractmethod
    async def complete(self, messages: list[dict[str, str]]) -> str:
        """Return the text of the first completion choice.

        Must raise LLMError on transport failures and non-success statuses.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release any pooled connections."""
