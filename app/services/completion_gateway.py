"""Gateway to an OpenAI-compatible chat completions API."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import (
    ConfigurationError,
    IncompleteResponse,
    RateLimited,
    UpstreamError,
)
from app.core.logging import logger

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000


@dataclass(frozen=True)
class Completion:
    """Generated text plus the upstream token accounting."""

    text: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str


class CompletionGateway:
    """
    Thin wrapper around the chat completions endpoint.

    One instance is created at startup and shared by all requests. The HTTP
    client is created on first use so a missing API key only fails AI calls,
    not application startup. No retries: a 429 surfaces as `RateLimited`.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls) -> "CompletionGateway":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.AI_REQUEST_TIMEOUT,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Return the cached HTTP client, creating it on first use."""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set. Add it to your .env file.")
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> Completion:
        """
        Run one chat completion.

        Raises:
            ConfigurationError: no API key configured.
            RateLimited: upstream answered 429.
            UpstreamError: any other upstream failure, including timeouts and
                malformed response bodies.
            IncompleteResponse: upstream succeeded without usable usage accounting.
        """
        client = self._get_client()
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = await client.post("/chat/completions", json=payload)
        except httpx.TimeoutException:
            logger.error(f"Completion request timed out after {self.timeout}s ({model})")
            raise UpstreamError(f"request timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.error(f"Completion request failed ({model}): {e}")
            raise UpstreamError(str(e) or e.__class__.__name__)

        if response.status_code == 429:
            logger.warning(f"Completion API rate limited ({model})")
            raise RateLimited()

        if response.status_code != 200:
            error_detail = _error_message(response)
            logger.error(f"Completion API error ({response.status_code}): {error_detail}")
            raise UpstreamError(error_detail)

        try:
            data = response.json()
        except ValueError:
            raise UpstreamError("completion API returned invalid JSON")

        return _parse_completion(data, model)


def _parse_completion(data: Any, model: str) -> Completion:
    if not isinstance(data, dict):
        raise UpstreamError("completion API returned an unexpected payload")

    usage = data.get("usage")
    if not isinstance(usage, dict) or usage.get("total_tokens") is None:
        raise IncompleteResponse()

    total_tokens = _token_count(usage["total_tokens"])
    prompt_tokens = _token_count(usage.get("prompt_tokens") or 0)
    completion_tokens = _token_count(usage.get("completion_tokens") or 0)
    if total_tokens is None or prompt_tokens is None or completion_tokens is None:
        logger.error(f"Completion API returned malformed usage ({model}): {usage}")
        raise IncompleteResponse()

    choices = data.get("choices") or []
    if not isinstance(choices, list):
        raise UpstreamError("completion API returned malformed choices")

    text = ""
    if choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise UpstreamError("completion API returned a malformed choice")
        content = message.get("content")
        text = content if isinstance(content, str) else ""

    upstream_model = data.get("model")
    return Completion(
        text=text,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
        model=upstream_model if isinstance(upstream_model, str) and upstream_model else model,
    )


def _token_count(value: Any) -> Optional[int]:
    """Non-negative integer token count, or None if the value is unusable."""
    if isinstance(value, bool):
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


def _error_message(response: httpx.Response) -> str:
    """Pull the upstream error message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return error
    return response.text or f"HTTP {response.status_code}"
