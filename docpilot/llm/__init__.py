"""Text-generation adapters."""

from .runner import LLMRequest, LLMRunner, check_api_key

__all__ = ["LLMRequest", "LLMRunner", "check_api_key"]
