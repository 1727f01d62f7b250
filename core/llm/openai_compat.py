"""Core LLM client with OpenAI-compatible interface."""
import logging
from typing import List, Dict, Any, Optional

import httpx
import openai
from openai import OpenAI

from core.config import Settings, get_settings
from core.llm.errors import (
    CompletionError,
    NotConfigured,
    BackendUnavailable,
    MalformedBackendResponse,
    UnknownBackendError,
    classify_backend_error,
)

logger = logging.getLogger(__name__)


class LLMClient:
    """OpenAI-compatible completion client. One attempt per call, no retries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-3.5-turbo",
        http_client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model

        # without a key the SDK refuses to build; fail at call time instead
        self.client: Optional[OpenAI] = None
        if self.api_key:
            self.client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                http_client=http_client,
            )

    @classmethod
    def from_settings(cls, settings: Settings, http_client: Optional[httpx.Client] = None) -> "LLMClient":
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.model,
            http_client=http_client,
        )

    @property
    def configured(self) -> bool:
        return self.client is not None

    def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float = 30.0,
    ) -> str:
        """Send a chat completion request and return the reply text.

        Raises:
            CompletionError: a typed subclass describing why no text came back.
        """
        if self.client is None:
            raise NotConfigured()

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except openai.APIStatusError as e:
            message = _backend_message(e.body)
            logger.error(f"[LLM] backend returned {e.status_code}: code={e.code} message={message}")
            raise classify_backend_error(e.code, message) from e
        except openai.APITimeoutError as e:
            logger.error(f"[LLM] request timed out after {timeout}s")
            raise BackendUnavailable(f"OpenAI request timed out after {timeout:g} seconds.") from e
        except openai.APIConnectionError as e:
            logger.error(f"[LLM] connection failed: {e}")
            raise BackendUnavailable() from e
        except openai.OpenAIError as e:
            logger.error(f"[LLM] unexpected client error: {e}")
            raise UnknownBackendError(f"OpenAI API error: {e}") from e

        content = _first_content(response)
        if content is None:
            logger.error("[LLM] success response without choices[0].message.content")
            raise MalformedBackendResponse()
        return content


def _backend_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("message")
        if message is None and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
        return message
    return None


def _first_content(response: Any) -> Optional[str]:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


# Global LLM client instance
_llm_client = None


def get_llm_client() -> LLMClient:
    """Get or create global LLM client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient.from_settings(get_settings())
    return _llm_client


__all__ = ["LLMClient", "get_llm_client", "CompletionError"]
