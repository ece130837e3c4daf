"""docs.json navigation manifest maintenance."""

from __future__ import annotations

import copy
import json
from collections import Counter
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Set

from ..models import GeneratedPage, ModuleCatalog
from . import pages as page_refs

MANIFEST_FILENAME = "docs.json"
GUIDES_TAB = "Guides"
API_TAB = "API Reference"
OWNED_TABS = (GUIDES_TAB, API_TAB)
API_PREFIX = "api-reference/"


def default_manifest(project_name: str) -> Dict[str, Any]:
    return {
        "$schema": "https://mintlify.com/docs.json",
        "theme": "mint",
        "name": project_name,
        "navigation": {"tabs": []},
    }


def build_tabs(catalog: ModuleCatalog) -> List[Dict[str, Any]]:
    """Return the generator-owned tabs for the catalog, in a stable order."""
    guides = {
        "tab": GUIDES_TAB,
        "groups": [
            {
                "group": "Architecture",
                "pages": [
                    page_refs.ARCHITECTURE_OVERVIEW,
                    page_refs.ENTITY_SYSTEM,
                    page_refs.DEPENDENCY_INJECTION,
                    page_refs.PERFORMANCE,
                ],
            },
            {
                "group": "Modules",
                "pages": [page_refs.MODULES_OVERVIEW]
                + [page_refs.module_page(module.name) for module in catalog],
            },
            {"group": "Components", "pages": [page_refs.COMPONENTS_OVERVIEW]},
        ],
    }
    api_groups: List[Dict[str, Any]] = [
        {"group": "API Documentation", "pages": [page_refs.API_INTRODUCTION]}
    ]
    for module in catalog:
        if not module.entities:
            continue
        api_groups.append(
            {
                "group": module.title,
                "pages": [page_refs.api_page(module.name, entity) for entity in module.entities],
            }
        )
    api = {"tab": API_TAB, "groups": api_groups}
    return [guides, api]


def apply_tabs(manifest: Dict[str, Any], tabs: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Replace owned tabs in place, appending any that are missing.

    Keys and tabs the generator does not own are preserved as-is.
    """
    updated = copy.deepcopy(manifest)
    navigation = updated.get("navigation")
    if not isinstance(navigation, dict):
        navigation = {}
        updated["navigation"] = navigation
    existing = navigation.get("tabs")
    if not isinstance(existing, list):
        existing = []

    replacements = {tab["tab"]: tab for tab in tabs}
    merged: List[Any] = []
    placed: Set[str] = set()
    for tab in existing:
        name = tab.get("tab") if isinstance(tab, dict) else None
        if name in replacements:
            if name not in placed:
                merged.append(copy.deepcopy(replacements[name]))
                placed.add(name)
            continue
        merged.append(tab)
    for tab in tabs:
        if tab["tab"] not in placed:
            merged.append(copy.deepcopy(tab))
    navigation["tabs"] = merged
    return updated


def iter_page_refs(node: Any) -> Iterator[str]:
    """Yield every page reference below a tab, group or page list."""
    if isinstance(node, str):
        yield node
    elif isinstance(node, list):
        for item in node:
            yield from iter_page_refs(item)
    elif isinstance(node, dict):
        for key in ("tabs", "groups", "pages"):
            if key in node:
                yield from iter_page_refs(node[key])


def validate_manifest(manifest: Dict[str, Any], pages: Iterable[GeneratedPage]) -> List[str]:
    """Return consistency problems between the manifest and the generated pages.

    Owned tabs may only reference generated pages, and every generated
    API-reference page must be referenced exactly once across the manifest.
    """
    generated = {page.reference for page in pages}
    problems: List[str] = []
    tabs = manifest.get("navigation", {}).get("tabs", [])

    for tab in tabs:
        if not isinstance(tab, dict) or tab.get("tab") not in OWNED_TABS:
            continue
        for ref in iter_page_refs(tab):
            if ref not in generated:
                problems.append(f"{tab['tab']} tab references missing page '{ref}'")

    counts = Counter(iter_page_refs(manifest.get("navigation", {})))
    for ref in sorted(generated):
        if not _is_entity_api_page(ref):
            continue
        seen = counts.get(ref, 0)
        if seen != 1:
            problems.append(f"API page '{ref}' appears {seen} times in the navigation")
    return problems


def foreign_refs(manifest: Dict[str, Any]) -> List[str]:
    """References held by tabs the generator does not own."""
    refs: List[str] = []
    for tab in manifest.get("navigation", {}).get("tabs", []):
        if isinstance(tab, dict) and tab.get("tab") in OWNED_TABS:
            continue
        refs.extend(iter_page_refs(tab))
    return refs


def dump_manifest(manifest: Dict[str, Any]) -> str:
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def _is_entity_api_page(ref: str) -> bool:
    return ref.startswith(API_PREFIX) and ref.count("/") == 2


__all__ = [
    "API_TAB",
    "GUIDES_TAB",
    "MANIFEST_FILENAME",
    "OWNED_TABS",
    "apply_tabs",
    "build_tabs",
    "default_manifest",
    "dump_manifest",
    "foreign_refs",
    "iter_page_refs",
    "validate_manifest",
]
