"""Post-processing helpers for generated and enhanced pages."""

from .lint import MarkdownLinter
from .markers import ManagedBlock, MarkerManager

__all__ = ["ManagedBlock", "MarkdownLinter", "MarkerManager"]
