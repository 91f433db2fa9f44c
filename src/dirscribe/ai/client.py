"""HTTP clients for the LLM providers dirscribe can summarize with.

Every provider exposes the same ``chat(messages)`` coroutine. A client
sends exactly one request per call and never retries; retrying and
response validation belong to :mod:`dirscribe.ai.retry`.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from dirscribe.config import ConfigurationError, DirscribeError, ProviderName, Settings
from dirscribe.models import (
    AnthropicRequest,
    AnthropicResponse,
    ChatMessage,
    DeepseekRequest,
    DeepseekResponse,
    OllamaRequest,
    OllamaResponse,
    UnifiedResult,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 512
ANTHROPIC_TEMPERATURE = 0.1
REASONING_END_TAG = "</think>"


class ProviderError(DirscribeError):
    """Base exception for provider request failures."""

    """Raised when the request could not be completed, such as on a timeout."""
class ProviderTransportError(ProviderError):
    """Raised when the request could not be delivered (connection, timeout)."""


class ProviderHTTPError(ProviderError):
    """Raised when the provider answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class ProviderParseError(ProviderError):
    """Raised when a response body does not match the provider's schema."""


class ProviderClient(ABC):
    """Base class for provider clients.

    Subclasses supply the headers, the request payload and the response
    projection; transport and error mapping live here.
    """

    provider: ProviderName

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Run settings (model, endpoint, key, timeout)
            http_client: Optional shared HTTP client; one is created lazily otherwise
        """
        self.settings = settings
        self.model = settings.model
        self.base_url = settings.base_url
        self.api_key = settings.api_key
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @abstractmethod
    def build_headers(self) -> dict[str, str]:
        """Provider-specific request headers."""

    @abstractmethod
    def build_payload(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        """Provider-specific JSON request body."""

    @abstractmethod
    def parse_response(self, body: str) -> UnifiedResult:
        """Decode a successful response body.

        Raises:
            ProviderParseError: If the body does not match the schema
        """

    async def chat(self, messages: Sequence[ChatMessage]) -> UnifiedResult:
        """Send one chat request and decode the reply.

        Args:
            messages: Messages to send

        Returns:
            The decoded reply

        Raises:
            ProviderTransportError: If the request could not be completed
            ProviderHTTPError: If the provider returned a non-2xx status
            ProviderParseError: If the reply could not be decoded
        """
        payload = self.build_payload(messages)
        headers = self.build_headers()

        try:
            response = await self._get_http_client().post(
                self.base_url, headers=headers, json=payload
            )
        except httpx.RequestError as e:
            raise ProviderTransportError(
                f"Request to {self.provider.value} failed: {type(e).__name__}: {e}"
            ) from e

        if not response.is_success:
            raise ProviderHTTPError(response.status_code, response.text)

        return self.parse_response(response.text)

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._http_client

    def _decode(self, schema: type[BaseModel], body: str) -> Any:
        try:
            return schema.model_validate_json(body)
        except ValidationError as e:
            raise ProviderParseError(
                f"Unexpected {self.provider.value} response: {e.error_count()} validation error(s): {body[:200]}"
            ) from e

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ProviderClient":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit with cleanup."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(model='{self.model}', base_url='{self.base_url}')>"


class DeepseekClient(ProviderClient):
    """Bearer-token chat-completions provider."""

    provider = ProviderName.DEEPSEEK

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        return DeepseekRequest(
            model=self.model,
            messages=list(messages),
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            stream=False,
        ).model_dump()

    def parse_response(self, body: str) -> UnifiedResult:
        response: DeepseekResponse = self._decode(DeepseekResponse, body)
        return UnifiedResult(
            content=response.choices[0].message.content,
            total_tokens=response.usage.total_tokens if response.usage else None,
        )


class AnthropicClient(ProviderClient):
    """API-key header messages provider."""

    provider = ProviderName.ANTHROPIC

    def build_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def build_payload(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        return AnthropicRequest(
            model=self.model,
            messages=list(messages),
            max_tokens=ANTHROPIC_MAX_TOKENS,
            temperature=ANTHROPIC_TEMPERATURE,
        ).model_dump()

    def parse_response(self, body: str) -> UnifiedResult:
        response: AnthropicResponse = self._decode(AnthropicResponse, body)
        usage = response.usage
        return UnifiedResult(
            content=response.content[0].text,
            total_tokens=usage.input_tokens + usage.output_tokens if usage else None,
        )


class OllamaClient(ProviderClient):
    """Local, unauthenticated single-prompt provider."""

    provider = ProviderName.OLLAMA

    def build_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def build_payload(self, messages: Sequence[ChatMessage]) -> dict[str, Any]:
        prompt = "\n".join(f"{m.role}: {m.content}" for m in messages)
        return OllamaRequest(model=self.model, prompt=prompt, stream=False).model_dump()

    def parse_response(self, body: str) -> UnifiedResult:
        response: OllamaResponse = self._decode(OllamaResponse, body)
        return UnifiedResult(content=strip_reasoning(response.response))


def strip_reasoning(text: str) -> str:
    """Drop a reasoning preamble that ends with ``</think>``."""
    if REASONING_END_TAG not in text:
        return text
    return text.split(REASONING_END_TAG)[1].strip()


PROVIDER_CLIENTS: dict[ProviderName, type[ProviderClient]] = {
    ProviderName.DEEPSEEK: DeepseekClient,
    ProviderName.ANTHROPIC: AnthropicClient,
    ProviderName.OLLAMA: OllamaClient,
}


def create_client(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> ProviderClient:
    """Construct the client for the configured provider.

    Args:
        settings: Run settings
        http_client: Optional shared HTTP client

    Returns:
        A ready-to-use provider client

    Raises:
        ConfigurationError: If a key-based provider has no API key
    """
    client_cls = PROVIDER_CLIENTS[settings.provider]
    if client_cls is not OllamaClient and not settings.api_key:
        env_var = f"{settings.provider.value.upper()}_API_KEY"
        raise ConfigurationError(
            f"{env_var} not set. Export it or run 'dirscribe ai-auth {settings.provider.value}'."
        )

    logger.info(
        f"Initialized {settings.provider.value} client with model: {settings.model}"
    )
    return client_cls(settings, http_client=http_client)
