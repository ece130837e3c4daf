"""Deterministic documentation generation."""

from .core import DocGenerator, GenerationResult
from .pages import PageRenderer

__all__ = ["DocGenerator", "GenerationResult", "PageRenderer"]
