"""Exception hierarchy shared by the docpilot pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class ConfigError(RuntimeError):
    """Raised when configuration or a required resource is missing or invalid."""


class MissingCredentialsError(ConfigError):
    """Raised when the enhancer runs without an API key."""


@dataclass(frozen=True)
class PageWriteError:
    """A single documentation page that could not be written."""

    path: str
    detail: str


class GenerationError(RuntimeError):
    """Raised when deterministic generation cannot complete."""

    def __init__(self, message: str, failures: Sequence[PageWriteError] = ()) -> None:
        super().__init__(message)
        self.failures = list(failures)


class LLMError(RuntimeError):
    """Raised when a text-generation call fails."""


class RateLimitError(LLMError):
    """The provider answered with HTTP 429."""


class LLMAuthenticationError(LLMError):
    """The provider rejected the credential (HTTP 401)."""


class ConnectionCheckError(LLMError):
    """The connectivity check failed; no enhancement should run."""


__all__ = [
    "ConfigError",
    "ConnectionCheckError",
    "GenerationError",
    "LLMAuthenticationError",
    "LLMError",
    "MissingCredentialsError",
    "PageWriteError",
    "RateLimitError",
]
