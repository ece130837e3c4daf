"""Deterministic regeneration of the documentation tree."""

from __future__ import annotations

import json
import os
import shutil
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import PathsConfig, ProjectConfig
from ..errors import GenerationError, PageWriteError
from ..logging import get_logger
from ..models import GeneratedPage, ModuleCatalog
from ..postproc.markers import ManagedBlock, MarkerManager
from . import navigation
from .pages import PageRenderer

BASE_DIRECTORIES = ("architecture", "modules", "components", "api-reference", "types")


@dataclass
class GenerationResult:
    """What a generator run produced."""

    pages: List[GeneratedPage]
    written: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    types_synced: bool = False
    manifest_written: bool = False


class DocGenerator:
    """Materialises pages and the navigation manifest for a module catalog.

    Pages are rendered in memory before anything touches the disk; each file
    is then replaced atomically and unchanged files are left alone. The first
    write failure aborts the run with :class:`GenerationError` and the manifest
    is only written once every page is in place. Managed marker blocks found
    in the previous version of a page are carried over into the new one.
    """

    def __init__(
        self,
        paths: PathsConfig,
        project: ProjectConfig | None = None,
        renderer: PageRenderer | None = None,
        marker_manager: MarkerManager | None = None,
    ) -> None:
        self.paths = paths
        self.project = project or ProjectConfig()
        self.marker_manager = marker_manager or MarkerManager()
        self.renderer = renderer or PageRenderer(self.project, self.marker_manager)
        self.logger = get_logger("generator")

    @property
    def docs_root(self) -> Path:
        return self.paths.docs_root

    def generate(self, catalog: ModuleCatalog) -> GenerationResult:
        self.logger.info(
            "Generating documentation for %d modules / %d entities in %s",
            catalog.module_count,
            catalog.entity_count,
            self.docs_root,
        )
        pages = self.renderer.render(catalog)
        _reject_duplicate_paths(pages)
        result = GenerationResult(pages=pages)

        self._create_directories(catalog)
        result.types_synced = self.sync_types()

        for page in pages:
            target = self.docs_root / page.path
            try:
                changed = write_if_changed(target, self._carry_managed_blocks(target, page.content))
            except (OSError, UnicodeDecodeError) as exc:
                failure = PageWriteError(path=page.path, detail=str(exc))
                self.logger.error("Failed to write %s: %s", page.path, exc)
                raise GenerationError(
                    f"Documentation generation aborted while writing {page.path}",
                    [failure],
                ) from exc
            if changed:
                result.written.append(page.path)
            else:
                result.unchanged.append(page.path)

        result.manifest_written = self._update_manifest(catalog, pages)
        self.logger.info(
            "Generation complete: %d pages written, %d unchanged",
            len(result.written),
            len(result.unchanged),
        )
        return result

    def sync_types(self) -> bool:
        """Copy the source type declarations into ``types/``; skip when absent."""
        source = self.paths.types_source
        if not source.is_file():
            self.logger.warning("Types file not found at %s; skipping type sync", source)
            return False
        target = self.docs_root / "types" / source.name
        try:
            if target.is_file() and target.read_bytes() == source.read_bytes():
                self.logger.debug("Types already in sync")
                return True
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise GenerationError(f"Unable to sync types into {target}: {exc}") from exc
        self.logger.info("Synced types from %s", source)
        return True

    # ------------------------------------------------------------------
    # Internals

    def _carry_managed_blocks(self, target: Path, content: str) -> str:
        """Keep enhancer-owned marker blocks from the previous version of a page."""
        if not target.is_file():
            return content
        previous = target.read_text(encoding="utf-8")
        for key, body in self.marker_manager.extract(previous).items():
            content = self.marker_manager.upsert(content, ManagedBlock(key=key, body=body))
        return content

    def _create_directories(self, catalog: ModuleCatalog) -> None:
        directories = [self.docs_root / name for name in BASE_DIRECTORIES]
        directories += [self.docs_root / "api-reference" / module.name for module in catalog]
        for directory in directories:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise GenerationError(f"Unable to create directory {directory}: {exc}") from exc

    def _update_manifest(self, catalog: ModuleCatalog, pages: List[GeneratedPage]) -> bool:
        manifest_path = self.docs_root / navigation.MANIFEST_FILENAME
        current = self._read_manifest(manifest_path)
        updated = navigation.apply_tabs(
            current or navigation.default_manifest(self.project.name),
            navigation.build_tabs(catalog),
        )

        problems = navigation.validate_manifest(updated, pages)
        if problems:
            for problem in problems:
                self.logger.error("Navigation inconsistency: %s", problem)
            raise GenerationError("Navigation manifest is inconsistent with generated pages")
        for ref in navigation.foreign_refs(updated):
            if not self._page_exists(ref):
                self.logger.warning("Navigation references page '%s' which does not exist", ref)

        try:
            return write_if_changed(manifest_path, navigation.dump_manifest(updated))
        except OSError as exc:
            raise GenerationError(
                f"Unable to write {navigation.MANIFEST_FILENAME}",
                [PageWriteError(path=navigation.MANIFEST_FILENAME, detail=str(exc))],
            ) from exc

    def _read_manifest(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise GenerationError(f"Could not read {path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise GenerationError(f"{path.name} must contain a JSON object")
        return data

    def _page_exists(self, ref: str) -> bool:
        return any((self.docs_root / f"{ref}{suffix}").exists() for suffix in (".mdx", ".md"))


def _reject_duplicate_paths(pages: List[GeneratedPage]) -> None:
    counts = Counter(page.path for page in pages)
    duplicates = sorted(path for path, count in counts.items() if count > 1)
    if duplicates:
        raise GenerationError(
            "Several pages render to the same path",
            [PageWriteError(path=path, detail="rendered more than once") for path in duplicates],
        )


def write_if_changed(target: Path, content: str) -> bool:
    """Atomically replace ``target`` with ``content``; return False when identical."""
    encoded = content.encode("utf-8")
    if target.is_file() and target.read_bytes() == encoded:
        return False
    target.parent.mkdir(parents=True, exist_ok=True)
    temp = target.with_name(f".{target.name}.tmp")
    try:
        temp.write_bytes(encoded)
        os.replace(temp, target)
    except OSError:
        temp.unlink(missing_ok=True)
        raise
    return True


__all__ = ["DocGenerator", "GenerationResult", "write_if_changed"]
