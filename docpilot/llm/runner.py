"""Adapter around the Anthropic Messages API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

import anthropic

from ..config import DEFAULT_MODEL
from ..errors import ConfigError, LLMAuthenticationError, LLMError, MissingCredentialsError, RateLimitError

_AUTO_API_KEY = object()

EXPECTED_KEY_PREFIX = "sk-ant-api03-"
PLACEHOLDER_MARKERS = ("your-key-here", "your_key")
MIN_KEY_LENGTH = 20


@dataclass
class LLMRequest:
    """A single text-generation request."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: int
    api_key: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Executes prompts against the configured text-generation service."""

    ENV_API_KEY_KEYS = ("ANTHROPIC_API_KEY",)
    ENV_MODEL_KEYS = ("DOCPILOT_AI_MODEL",)

    def __init__(
        self,
        model: str | None = None,
        *,
        temperature: Optional[float] = 0.3,
        max_tokens: int = 4000,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = self._resolve_model(model)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = self._resolve_api_key(api_key)
        self.request_timeout = request_timeout
        self._client: anthropic.Anthropic | None = None
        self._runner = runner if runner is not None else self._anthropic_runner

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def require_credentials(self) -> None:
        if not self.api_key:
            raise MissingCredentialsError(
                "ANTHROPIC_API_KEY is required for AI enhancement. "
                "Create a key at https://console.anthropic.com/settings/keys"
            )

    def run(
        self,
        prompt: str,
        *,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send the prompt and return the response text.

        Raises :class:`RateLimitError` on HTTP 429, :class:`LLMAuthenticationError`
        on HTTP 401 and :class:`LLMError` for every other failure. No retries are
        performed here.
        """
        request = LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=self.temperature if temperature is None else temperature,
            max_tokens=max_tokens or self.max_tokens,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
        )
        return self._runner(request)

    def _anthropic_runner(self, request: LLMRequest) -> str:
        if not request.api_key:
            raise MissingCredentialsError("ANTHROPIC_API_KEY is not set")
        client = self._get_client(request)
        kwargs: dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system:
            kwargs["system"] = request.system
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature

        try:
            response = client.messages.create(**kwargs)
        except anthropic.RateLimitError as exc:
            raise RateLimitError(f"Rate limited by the API: {exc}") from exc
        except anthropic.AuthenticationError as exc:
            raise LLMAuthenticationError(
                "API key is invalid. Check your key at https://console.anthropic.com/settings/keys"
            ) from exc
        except anthropic.APIStatusError as exc:
            raise LLMError(f"API call failed with status {exc.status_code}: {exc.message}") from exc
        except anthropic.APIError as exc:
            raise LLMError(f"API call failed: {exc}") from exc

        content = self._extract_content(response)
        if not content:
            raise LLMError("API returned an empty response")
        return content.strip()

    def _get_client(self, request: LLMRequest) -> anthropic.Anthropic:
        if self._client is None:
            # Retries are owned by the enhancer's bounded loop, not the SDK.
            self._client = anthropic.Anthropic(
                api_key=request.api_key,
                timeout=request.request_timeout,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def _extract_content(response: Any) -> str:
        blocks = getattr(response, "content", None)
        if not blocks:
            return ""
        texts = [
            block.text
            for block in blocks
            if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str)
        ]
        return "".join(texts)

    def _resolve_model(self, model: str | None) -> str:
        if model:
            return model
        return self._first_env_value(self.ENV_MODEL_KEYS) or DEFAULT_MODEL

    def _resolve_api_key(self, api_key: str | None | object) -> str | None:
        if api_key is _AUTO_API_KEY:
            return self._first_env_value(self.ENV_API_KEY_KEYS)
        return api_key  # type: ignore[return-value]

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


def check_api_key(api_key: str | None) -> List[str]:
    """Sanity-check an API key without calling the service.

    Raises :class:`MissingCredentialsError` when no key is set and
    :class:`ConfigError` for obvious placeholders; returns non-fatal warnings.
    """
    if not api_key:
        raise MissingCredentialsError("ANTHROPIC_API_KEY environment variable not set")
    if any(marker in api_key for marker in PLACEHOLDER_MARKERS) or len(api_key) < MIN_KEY_LENGTH:
        raise ConfigError("ANTHROPIC_API_KEY looks like a placeholder; set your real key in .env")
    warnings: List[str] = []
    if not api_key.startswith(EXPECTED_KEY_PREFIX):
        warnings.append(f"API key format looks unusual (expected {EXPECTED_KEY_PREFIX}...)")
    return warnings


__all__ = ["LLMRequest", "LLMRunner", "check_api_key"]
