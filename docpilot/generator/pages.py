"""Deterministic page rendering for the documentation site.

Page bodies live in ``templates/*.mdx.j2``; :class:`PageRenderer` decides
which pages exist for a catalog and feeds each template. Output depends
only on the project settings and the catalog, never on time or the
environment, so re-rendering an unchanged configuration yields
byte-identical pages.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from ..config import ProjectConfig
from ..models import GeneratedPage, ModuleCatalog
from ..postproc.markers import ManagedBlock, MarkerManager
from ..templating import create_environment

PAGE_SUFFIX = ".mdx"
TEMPLATES_DIR = Path(__file__).with_name("templates")

ARCHITECTURE_OVERVIEW = "architecture/overview"
ENTITY_SYSTEM = "architecture/entity-system"
DEPENDENCY_INJECTION = "architecture/dependency-injection"
PERFORMANCE = "architecture/performance"
MODULES_OVERVIEW = "modules/overview"
COMPONENTS_OVERVIEW = "components/overview"
API_INTRODUCTION = "api-reference/introduction"

PERFORMANCE_BLOCK = "performance"
PERFORMANCE_PLACEHOLDER = "_Recommendations appear here after the next AI-enhanced update._"

MODULE_ICONS: Dict[str, str] = {
    "authorization": "lock",
    "financial": "credit-card",
    "identity": "user",
    "sales": "shopping-cart",
    "school": "graduation-cap",
}
DEFAULT_ICON = "puzzle-piece"


def module_page(name: str) -> str:
    return f"modules/{name}"


def api_page(module: str, entity: str) -> str:
    return f"api-reference/{module}/{entity}"


def page_file(reference: str) -> str:
    return f"{reference}{PAGE_SUFFIX}"


def display_name(entity: str) -> str:
    """``shop-item-category`` -> ``Shop Item Category``."""
    return " ".join(word[:1].upper() + word[1:] for word in entity.split("-") if word)


def module_icon(name: str) -> str:
    return MODULE_ICONS.get(name, DEFAULT_ICON)


class PageRenderer:
    """Renders the full documentation tree for a module catalog."""

    def __init__(
        self,
        project: ProjectConfig,
        marker_manager: MarkerManager | None = None,
        *,
        templates_dir: Path | None = None,
    ) -> None:
        self.project = project
        self.marker_manager = marker_manager or MarkerManager()
        self.env = create_environment(templates_dir or TEMPLATES_DIR)
        self.env.globals.update(
            api_page=api_page,
            display_name=display_name,
            module_icon=module_icon,
            module_page=module_page,
        )

    def render(self, catalog: ModuleCatalog) -> List[GeneratedPage]:
        pages = [
            self._page(ARCHITECTURE_OVERVIEW, "architecture_overview.mdx.j2", catalog=catalog),
            self._page(ENTITY_SYSTEM, "entity_system.mdx.j2", catalog=catalog),
            self._page(DEPENDENCY_INJECTION, "dependency_injection.mdx.j2"),
            self._page(
                PERFORMANCE,
                "performance.mdx.j2",
                recommendations_block=self.marker_manager.wrap(
                    ManagedBlock(key=PERFORMANCE_BLOCK, body=PERFORMANCE_PLACEHOLDER)
                ),
            ),
            self._page(MODULES_OVERVIEW, "modules_overview.mdx.j2", catalog=catalog),
        ]
        for module in catalog:
            pages.append(self._page(module_page(module.name), "module.mdx.j2", module=module))
        pages.append(self._page(COMPONENTS_OVERVIEW, "components_overview.mdx.j2"))
        pages.append(self._page(API_INTRODUCTION, "api_introduction.mdx.j2", catalog=catalog))
        base_url = self.project.api_base_url.rstrip("/")
        for module in catalog:
            for entity in module.entities:
                pages.append(
                    self._page(
                        api_page(module.name, entity),
                        "entity_api.mdx.j2",
                        module=module,
                        entity=entity,
                        base_url=base_url,
                    )
                )
        return pages

    def _page(self, reference: str, template_name: str, **context: object) -> GeneratedPage:
        content = self.env.get_template(template_name).render(project=self.project, **context)
        return GeneratedPage(path=page_file(reference), content=content.rstrip() + "\n")


__all__ = [
    "API_INTRODUCTION",
    "ARCHITECTURE_OVERVIEW",
    "COMPONENTS_OVERVIEW",
    "DEPENDENCY_INJECTION",
    "ENTITY_SYSTEM",
    "MODULES_OVERVIEW",
    "PERFORMANCE",
    "PERFORMANCE_BLOCK",
    "PageRenderer",
    "api_page",
    "display_name",
    "module_icon",
    "module_page",
    "page_file",
]
