# backend/src/campus/llm/client.py
"""LiteLLM-based LLM client."""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    APIResponseValidationError,
    AuthenticationError,
    BadGatewayError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
    UnprocessableEntityError,
)

from campus.config import load_settings
from campus.errors import ProviderUnavailable

logger = logging.getLogger(__name__)

# Used when settings cannot be loaded; same values as CONFIG_SCHEMA
_DEFAULT_TEMPERATURE = 0.7
_DEFAULT_MAX_TOKENS = 8192
_DEFAULT_JSON_TEMPERATURE = 0.3

JSON_INSTRUCTION = "Respond with valid JSON only."

_LOGGED_HEADERS = frozenset(
    {
        "x-ratelimit-limit-requests",
        "x-ratelimit-limit-tokens",
        "x-ratelimit-remaining-requests",
        "x-ratelimit-remaining-tokens",
        "x-ratelimit-reset-requests",
        "x-ratelimit-reset-tokens",
        "retry-after",
        "x-request-id",
        "cf-ray",
    }
)


class LLMError(ProviderUnavailable):
    """The completion provider failed."""


class LLMConnectionError(LLMError):
    """The provider could not be reached."""


class LLMAuthenticationError(LLMError):
    """The provider rejected the credentials."""


class LLMRateLimitError(LLMError):
    """The provider is throttling requests."""


# Checked in order. The LiteLLM classes do not share a base more specific
# than openai.OpenAIError, so each one is listed; APIError comes last.
_ERROR_MAP: tuple[tuple[type[Exception], type[LLMError], str], ...] = (
    (AuthenticationError, LLMAuthenticationError, "Authentication failed"),
    (PermissionDeniedError, LLMAuthenticationError, "Permission denied"),
    (RateLimitError, LLMRateLimitError, "Rate limit exceeded"),
    (Timeout, LLMConnectionError, "Request timed out"),
    (APIConnectionError, LLMConnectionError, "Connection failed"),
    (ServiceUnavailableError, LLMConnectionError, "Service unavailable"),
    (BadGatewayError, LLMConnectionError, "Bad gateway"),
    (InternalServerError, LLMError, "Provider error"),
    (BadRequestError, LLMError, "Request rejected"),
    (NotFoundError, LLMError, "Model not found"),
    (UnprocessableEntityError, LLMError, "Request rejected"),
    (APIResponseValidationError, LLMError, "Invalid provider response"),
    (APIError, LLMError, "LLM API error"),
)

# Every LiteLLM failure a provider call can raise; shared with the embeddings provider
PROVIDER_ERRORS = tuple(source for source, _, _ in _ERROR_MAP)


def get_model_string(provider: str, model: str) -> str:
    """LiteLLM model name: bare for OpenAI, otherwise prefixed with the provider."""
    if provider == "openai":
        return model
    prefix = "gemini" if provider == "google" else provider
    return f"{prefix}/{model}"


def extract_error_details(e: Exception) -> dict | None:
    """HTTP status, rate-limit headers and provider from a LiteLLM exception, if any."""
    details: dict[str, Any] = {}
    response = getattr(e, "response", None)

    status_code = getattr(response, "status_code", None) or getattr(e, "status_code", None)
    if status_code is not None:
        details["status_code"] = status_code

    headers = getattr(response, "headers", None)
    if headers is not None:
        kept = {k: v for k, v in dict(headers).items() if k.lower() in _LOGGED_HEADERS}
        if kept:
            details["response_headers"] = kept

    for attr in ("llm_provider", "message"):
        if hasattr(e, attr):
            details[attr] = str(getattr(e, attr))

    return details or None


def _translate(e: Exception) -> LLMError:
    for source, target, prefix in _ERROR_MAP:
        if isinstance(e, source):
            return target(f"{prefix}: {e}")
    return LLMError(str(e))


class LLMClient:
    """Chat completions for any LiteLLM provider.

    Every request is appended to a JSONL query log when ``log_path`` is set.
    Provider failures surface as LLMError subclasses, which callers treat as
    ProviderUnavailable.
    """

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str | None = None,
        endpoint: str | None = None,
        log_path: Path | None = None,
    ):
        self.provider = provider
        self.model = model
        self.api_key = api_key
        self.endpoint = endpoint
        self.log_path = log_path

    def _write_log(self, entry: dict[str, Any]) -> None:
        if not self.log_path:
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            **entry,
        }
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.warning("Could not write LLM query log %s: %s", self.log_path, e)

    def _request_kwargs(
        self, messages: list[dict[str, str]], temperature: float | None, max_tokens: int | None
    ) -> dict[str, Any]:
        try:
            llm_settings = load_settings().llm
            default_temperature, default_max_tokens = (
                llm_settings.default_temperature,
                llm_settings.max_tokens,
            )
        except (ValueError, OSError):
            default_temperature, default_max_tokens = _DEFAULT_TEMPERATURE, _DEFAULT_MAX_TOKENS

        kwargs: dict[str, Any] = {
            "model": get_model_string(self.provider, self.model),
            "messages": messages,
            "temperature": default_temperature if temperature is None else temperature,
            "max_tokens": default_max_tokens if max_tokens is None else max_tokens,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.endpoint and self.provider == "ollama":
            kwargs["api_base"] = self.endpoint
        return kwargs

    async def complete(
        self,
        turns: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate the next assistant turn of a conversation.

        Args:
            turns: Ordered chat messages with "role" and "content" keys.
            temperature: Sampling temperature. Defaults to the configured value.
            max_tokens: Maximum response tokens. Defaults to the configured value.

        Returns:
            The generated text, possibly empty.

        Raises:
            LLMError: If the provider call fails.
        """
        kwargs = self._request_kwargs(list(turns), temperature, max_tokens)
        request = {
            "messages": kwargs["messages"],
            "temperature": kwargs["temperature"],
            "max_tokens": kwargs["max_tokens"],
        }

        started = time.perf_counter()
        try:
            response = await acompletion(**kwargs)
        except PROVIDER_ERRORS as e:
            logger.warning("LLM request to %s failed: %s", self.provider, e)
            self._write_log(
                {
                    "request": request,
                    "response": None,
                    "duration_ms": int((time.perf_counter() - started) * 1000),
                    "error": str(e),
                    "error_details": extract_error_details(e),
                }
            )
            raise _translate(e) from e

        text = str(response.choices[0].message.content or "")
        self._write_log(
            {
                "request": request,
                "response": text,
                "duration_ms": int((time.perf_counter() - started) * 1000),
                "error": None,
            }
        )
        return text

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Single-prompt completion, optionally behind a system prompt."""
        messages = [{"role": "user", "content": prompt}]
        if system_prompt:
            messages.insert(0, {"role": "system", "content": system_prompt})
        return await self.complete(messages, temperature, max_tokens)

    async def generate_with_json(self, prompt: str, system_prompt: str | None = None) -> str:
        """Completion asking for JSON only, at the lower structured-output temperature.

        The reply is returned as text; callers parse it.
        """
        try:
            temperature = load_settings().llm.json_temperature
        except (ValueError, OSError):
            temperature = _DEFAULT_JSON_TEMPERATURE
        system = f"{system_prompt}\n\n{JSON_INSTRUCTION}" if system_prompt else JSON_INSTRUCTION
        return await self.generate(prompt, system_prompt=system, temperature=temperature)
