"""Optional AI enhancement of generated documentation."""

from .core import AIEnhancer, EnhancementReport

__all__ = ["AIEnhancer", "EnhancementReport"]
