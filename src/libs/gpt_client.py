"""
Chat completion client used for transcript analysis.

Async HTTP client for the OpenAI chat completions endpoint with retry on
rate limits, server errors and timeouts (exponential backoff).
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
import structlog
from src.core.config import get_settings

logger = structlog.get_logger()

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class GPTClientError(Exception):
    """Base exception for GPT client errors."""


class GPTRateLimitError(GPTClientError):
    """Raised when rate limited by OpenAI."""


class GPTTimeoutError(GPTClientError):
    """Raised when request times out."""


class GPTAPIError(GPTClientError):
    """Raised for non-retryable API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GPTResponseFormatError(GPTClientError):
    """Raised when a JSON reply was requested but the content is not JSON."""


@dataclass(slots=True)
class GPTResponse:
    """Parsed chat completion."""

    content: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    latency_ms: int
    finish_reason: str

    def json(self) -> Any:
        try:
            return json.loads(self.content)
        except json.JSONDecodeError as exc:
            raise GPTResponseFormatError(f"Model reply is not valid JSON: {exc}") from exc


class GPTClientProtocol(Protocol):
    """Protocol for GPT client (allows mocking)."""

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.0,
        max_tokens: int = 1000,
        response_format: str | None = None,
    ) -> GPTResponse:
        """Send chat completion request."""
        ...


class OpenAIClient:
    """Async OpenAI API client with retry logic."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        max_retries: int | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.openai_api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.model = model or settings.openai_model
        self.max_retries = max_retries if max_retries is not None else settings.gpt_max_retries
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.gpt_timeout_seconds
        )
        self.transport = transport

        if not self.api_key:
            logger.warning("openai_api_key_missing", msg="OPENAI_API_KEY not configured")

    async def chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.0,
        max_tokens: int = 1000,
        response_format: str | None = None,
    ) -> GPTResponse:
        """
        Send chat completion request with retry logic.

        ``response_format="json_object"`` asks the model for a JSON reply.
        Retries back off 1s, 2s, 4s; 4xx errors other than 429 fail at once.
        """
        if not self.api_key:
            raise GPTClientError("OPENAI_API_KEY not configured")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format:
            payload["response_format"] = {"type": response_format}

        last_error: GPTClientError | None = None
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self.transport,
        ) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    return await self._attempt(client, payload)
                except (GPTRateLimitError, GPTTimeoutError) as exc:
                    last_error = exc
                except GPTAPIError as exc:
                    if exc.status_code not in _RETRYABLE_STATUS:
                        raise
                    last_error = exc
                except httpx.RequestError as exc:
                    last_error = GPTClientError(f"Request failed: {exc}")

                await logger.awarning(
                    "gpt_attempt_failed",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(last_error),
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(2 ** (attempt - 1))

        raise last_error or GPTClientError("All retries exhausted")

    async def _attempt(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> GPTResponse:
        started = datetime.now(UTC)
        try:
            response = await client.post("/chat/completions", json=payload)
        except httpx.TimeoutException as exc:
            raise GPTTimeoutError(f"Request timed out after {self.timeout}s") from exc
        latency_ms = int((datetime.now(UTC) - started).total_seconds() * 1000)

        if response.status_code == 429:
            raise GPTRateLimitError("Rate limited")
        if response.status_code != 200:
            raise GPTAPIError(
                f"API error {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )
        return self._parse_response(response.json(), latency_ms)

    def _parse_response(self, data: dict[str, Any], latency_ms: int) -> GPTResponse:
        """Parse OpenAI API response."""
        choice = data["choices"][0]
        usage = data.get("usage", {})

        return GPTResponse(
            content=choice["message"]["content"] or "",
            model=data.get("model", self.model),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
            finish_reason=choice.get("finish_reason", "unknown"),
        )
