from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
import openai

from ..config import Config
from ..exceptions import LLMError
from .base import BaseDriver

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_HEADERS = {
    "HTTP-Referer": "https://github.com/fluentai-pro/ai-git-wizard",
    "X-Title": "AI Git CLI",
}

API_KEY_MISSING = (
    "OpenRouter API key not configured. Use "
    '"ai-git-wizard config set --key openRouterApiKey --value YOUR_KEY"'
)


def _content_text(content: Any) -> str:
    """Flatten string or list-of-fragments message content."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        fragments: list[str] = []
        for part in content:
            if isinstance(part, dict):
                fragments.append(str(part.get("text") or part.get("content") or ""))
            else:
                fragments.append(str(getattr(part, "text", "") or ""))
        return "".join(fragments)
    return ""


class OpenRouterDriver(BaseDriver):
    """Chat completions against OpenRouter's OpenAI-compatible endpoint.

    The OpenAI SDK is built lazily so a missing key surfaces as LLMError at
    call time rather than at construction. SDK retries are disabled: a
    failed request fails the step.
    """

    def __init__(
        self,
        config: Config,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = OPENROUTER_BASE_URL,
    ) -> None:
        super().__init__(config)
        self._http_client = http_client
        self._base_url = base_url
        self._client: Optional[openai.AsyncOpenAI] = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            api_key = self.config.open_router_api_key
            if not api_key:
                raise LLMError(API_KEY_MISSING)
            kwargs: dict[str, Any] = {
                "api_key": api_key,
                "base_url": self._base_url,
                "default_headers": DEFAULT_HEADERS,
                "max_retries": 0,
            }
            if self._http_client is not None:
                kwargs["http_client"] = self._http_client
            self._client = openai.AsyncOpenAI(**kwargs)
        return self._client

    async def complete(self, messages: list[dict[str, str]]) -> str:
        client = self._get_client()
        model = self.config.model
        logger.debug("openrouter.request model=%s messages=%d", model, len(messages))
        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=messages,  # type: ignore[arg-type]
            )
        except openai.APIStatusError as e:
            reason = e.response.reason_phrase if e.response is not None else ""
            raise LLMError(
                f"OpenRouter API error: {e.status_code} {reason}".rstrip()
            ) from e
        except openai.APIError as e:
            raise LLMError(f"OpenRouter request failed: {e}") from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            logger.debug("openrouter.response without choices")
            return ""
        message = getattr(choices[0], "message", None)
        content = _content_text(getattr(message, "content", None))
        logger.debug("openrouter.response length=%d", len(content))
        return content.strip()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
