"""Jinja2 environments for page and prompt templates."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined


def create_environment(templates_dir: Path) -> Environment:
    """Plain-text environment: no autoescaping, block tags leave no blank lines."""
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
        undefined=StrictUndefined,
    )


__all__ = ["create_environment"]
