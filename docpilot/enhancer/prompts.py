"""Prompt construction for documentation enhancement."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict

from jinja2 import Environment

from ..config import ProjectConfig
from ..models import ModuleSummary
from ..templating import create_environment

CONNECTION_CHECK_PROMPT = 'Hello! Just testing the connection. Respond with "Connection successful!"'
CONNECTION_CHECK_MAX_TOKENS = 100

TEMPLATES_DIR = Path(__file__).with_name("templates")

INSIGHT_FOCUS = (
    "Emerging architectural patterns",
    "Concrete improvement opportunities",
    "Good practices observed",
    "Scalability concerns",
)

PERFORMANCE_TOPICS = (
    "Frontend bundle optimisation and lazy loading",
    "Caching patterns for API data",
    "Entity relationship loading and query optimisation",
    "Monitoring and observability",
)


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return create_environment(TEMPLATES_DIR)


def _render(template_name: str, **context: object) -> str:
    return _environment().get_template(template_name).render(**context).strip()


def system_role(project: ProjectConfig) -> str:
    return _render("system.j2", project_name=project.name)


def module_prompt(module: str, summary: ModuleSummary, current_doc: str) -> str:
    return _render(
        "module.j2",
        module=module,
        analysis=json.dumps(summary.to_dict(), indent=2, sort_keys=True),
        current_doc=current_doc,
    )


def insights_prompt(codebase: Dict[str, object]) -> str:
    return _render(
        "insights.j2",
        codebase=json.dumps(codebase, indent=2, sort_keys=True),
        focus=INSIGHT_FOCUS,
    )


def performance_prompt() -> str:
    return _render("performance.j2", topics=PERFORMANCE_TOPICS)


__all__ = [
    "CONNECTION_CHECK_MAX_TOKENS",
    "CONNECTION_CHECK_PROMPT",
    "insights_prompt",
    "module_prompt",
    "performance_prompt",
    "system_role",
]
