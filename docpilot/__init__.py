"""Change-driven documentation regeneration with optional AI enhancement."""

__version__ = "0.1.0"
