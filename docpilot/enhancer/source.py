"""Shallow inspection of the source application for enhancement prompts."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List

from ..config import PathsConfig
from ..models import EntitySummary, ModuleSummary

ENTITY_SUFFIXES = (".tsx", ".ts")
_FIELDS_BLOCK = re.compile(r"fields:\s*\{([^}]+)\}", re.DOTALL)
_TYPE_NAMESPACE = re.compile(r"declare namespace Modules\.Contracts\.Contracts\.(\w+)")


def count_fields(content: str) -> int:
    """Count comma-separated entries in the first ``fields: { ... }`` block."""
    match = _FIELDS_BLOCK.search(content)
    if not match:
        return 0
    return len(match.group(1).split(","))


def extract_type_modules(types_content: str) -> List[str]:
    """Module names declared as contract namespaces in the generated types file."""
    modules: List[str] = []
    for match in _TYPE_NAMESPACE.finditer(types_content):
        name = match.group(1).lower()
        if name not in modules:
            modules.append(name)
    return modules


class SourceInspector:
    """Reads entity files and directory listings from the source tree."""

    def __init__(self, paths: PathsConfig) -> None:
        self.paths = paths

    def summarize_module(self, name: str) -> ModuleSummary:
        module_dir = self.paths.modules_root / name
        if not module_dir.is_dir():
            return ModuleSummary(name=name, found=False)

        summary = ModuleSummary(name=name)
        entities_dir = module_dir / "entities"
        if entities_dir.is_dir():
            for path in sorted(entities_dir.iterdir()):
                if not path.is_file() or path.suffix not in ENTITY_SUFFIXES:
                    continue
                content = path.read_text(encoding="utf-8", errors="ignore")
                summary.entities.append(
                    EntitySummary(
                        name=path.stem,
                        has_relationships="relationships:" in content,
                        field_count=count_fields(content),
                    )
                )
        summary.services = _list_names(module_dir / "services")
        summary.tests = _list_names(module_dir / "__tests__")
        summary.i18n = _list_names(module_dir / "i18n" / "entities")
        return summary

    def summarize_codebase(self) -> Dict[str, object]:
        root = self.paths.source_root
        modules_root = self.paths.modules_root
        modules = (
            sorted(path.name for path in modules_root.iterdir() if path.is_dir())
            if modules_root.is_dir()
            else []
        )
        return {
            "modules": modules,
            "components": _count_sources(root / "components"),
            "hooks": _count_sources(root / "lib" / "hooks"),
            "services": _count_sources(root / "lib" / "api" / "services"),
        }

    def read_types(self) -> str:
        source = self.paths.types_source
        if not source.is_file():
            return ""
        return source.read_text(encoding="utf-8", errors="ignore")


def _list_names(directory: Path) -> List[str]:
    if not directory.is_dir():
        return []
    return sorted(path.name for path in directory.iterdir())


def _count_sources(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    return sum(1 for path in directory.iterdir() if path.suffix in ENTITY_SUFFIXES)


__all__ = ["SourceInspector", "count_fields", "extract_type_modules"]
