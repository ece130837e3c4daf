"""AI enhancement of already-generated documentation pages."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..config import PathsConfig, ProjectConfig
from ..errors import ConnectionCheckError, LLMError, RateLimitError
from ..generator import pages as page_refs
from ..generator.core import write_if_changed
from ..llm.runner import LLMRunner
from ..logging import get_logger
from ..models import ChangeSet
from ..postproc.lint import MarkdownLinter
from ..postproc.markers import ManagedBlock, MarkerManager
from . import prompts
from .source import SourceInspector, extract_type_modules

INSIGHTS_BLOCK = "ai-insights"
INSIGHTS_HEADING = "## AI-Generated Insights"

# One initial call plus exactly one retry after a rate limit.
MAX_ATTEMPTS = 2


@dataclass
class EnhancementReport:
    """Outcome of one enhancement run, per documentation item."""

    enhanced: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    api_pages: List[str] = field(default_factory=list)
    retries: int = 0


class AIEnhancer:
    """Enriches generator output through the text-generation service.

    The enhancer never creates pages. Module pages are overwritten with the
    service's full replacement; generator-owned pages only receive managed
    marker blocks. Failures are contained to the item being enhanced.
    """

    def __init__(
        self,
        paths: PathsConfig,
        runner: LLMRunner,
        *,
        project: ProjectConfig | None = None,
        backoff_seconds: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        source: SourceInspector | None = None,
        marker_manager: MarkerManager | None = None,
        linter: MarkdownLinter | None = None,
    ) -> None:
        self.paths = paths
        self.runner = runner
        self.project = project or ProjectConfig()
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self.source = source or SourceInspector(paths)
        self.marker_manager = marker_manager or MarkerManager()
        self.linter = linter or MarkdownLinter()
        self.logger = get_logger("enhancer")

    @property
    def docs_root(self) -> Path:
        return self.paths.docs_root

    def test_connection(self) -> str:
        """Issue a minimal request; raise :class:`ConnectionCheckError` on failure."""
        self.runner.require_credentials()
        self.logger.info("Testing text-generation API connection...")
        try:
            reply = self.runner.run(prompts.CONNECTION_CHECK_PROMPT, max_tokens=prompts.CONNECTION_CHECK_MAX_TOKENS)
        except LLMError as exc:
            self.logger.error("API connection failed: %s", exc)
            raise ConnectionCheckError(f"Unable to connect to the text-generation API: {exc}") from exc
        self.logger.info("API connection successful")
        self.logger.debug("Connection check response: %s", reply)
        return reply

    def enhance(self, changes: ChangeSet, *, include_overview: bool = True) -> EnhancementReport:
        """Run every enhancement the change set calls for.

        Raises :class:`MissingCredentialsError` or :class:`ConnectionCheckError`
        before touching any file; everything after the check is best effort.
        """
        self.test_connection()
        report = EnhancementReport()
        self.logger.info("Starting AI enhancement (%s)", changes.describe())

        if changes.types_changed:
            report.api_pages = self.review_api_pages()

        for module in changes.sorted_modules():
            self.enhance_module(module, report)

        if include_overview:
            self.update_overview_pages(report)

        self.logger.info(
            "AI enhancement finished: %d enhanced, %d skipped, %d failed",
            len(report.enhanced),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def enhance_module(self, module: str, report: EnhancementReport) -> None:
        page_path = page_refs.page_file(page_refs.module_page(module))
        target = self.docs_root / page_path
        if not target.is_file():
            self.logger.info("No existing documentation for module %s; skipping", module)
            report.skipped.append(page_path)
            return

        current = self._read(target)
        if current is None:
            report.failed.append(page_path)
            return
        summary = self.source.summarize_module(module)
        self.logger.info("Enhancing %s module documentation...", module)
        response = self._call(
            page_path,
            prompts.module_prompt(module, summary, current),
            report,
        )
        if response is None:
            report.failed.append(page_path)
            return
        if not self._write(target, self.linter.lint(response)):
            report.failed.append(page_path)
            return
        report.enhanced.append(page_path)
        self.logger.info("Enhanced %s module documentation", module)

    def review_api_pages(self) -> List[str]:
        """List API pages for modules whose contract types changed.

        API pages are generator-owned, so they are reported rather than rewritten.
        """
        types_content = self.source.read_types()
        if not types_content:
            self.logger.info("No types file available; skipping API review")
            return []
        pages: List[str] = []
        for module in extract_type_modules(types_content):
            directory = self.docs_root / "api-reference" / module
            if not directory.is_dir():
                continue
            found = sorted(
                f"api-reference/{module}/{path.name}"
                for path in directory.iterdir()
                if path.suffix == page_refs.PAGE_SUFFIX
            )
            self.logger.info("Types changed for %s: %d API pages affected", module, len(found))
            pages.extend(found)
        return pages

    def update_overview_pages(self, report: EnhancementReport) -> None:
        overview_path = page_refs.page_file(page_refs.ARCHITECTURE_OVERVIEW)
        overview = self.docs_root / overview_path
        content = self._read(overview) if overview.is_file() else None
        if not overview.is_file():
            report.skipped.append(overview_path)
        elif content is None:
            report.failed.append(overview_path)
        else:
            insights = self._call(
                overview_path,
                prompts.insights_prompt(self.source.summarize_codebase()),
                report,
            )
            if insights is None:
                report.failed.append(overview_path)
            else:
                block = ManagedBlock(
                    key=INSIGHTS_BLOCK,
                    heading=INSIGHTS_HEADING,
                    body=self.linter.lint(insights, fragment=True),
                )
                if self._write(overview, self.marker_manager.upsert(content, block)):
                    report.enhanced.append(overview_path)
                    self.logger.info("Enhanced architecture overview with AI insights")
                else:
                    report.failed.append(overview_path)

        performance_path = page_refs.page_file(page_refs.PERFORMANCE)
        performance = self.docs_root / performance_path
        if not performance.is_file():
            report.skipped.append(performance_path)
            return
        content = self._read(performance)
        if content is None:
            report.failed.append(performance_path)
            return
        if not self.marker_manager.contains(content, page_refs.PERFORMANCE_BLOCK):
            self.logger.info("Performance page has no managed block; skipping")
            report.skipped.append(performance_path)
            return
        recommendations = self._call(performance_path, prompts.performance_prompt(), report)
        if recommendations is None:
            report.failed.append(performance_path)
            return
        block = ManagedBlock(
            key=page_refs.PERFORMANCE_BLOCK,
            body=self.linter.lint(recommendations, fragment=True),
        )
        if not self._write(performance, self.marker_manager.replace(content, block)):
            report.failed.append(performance_path)
            return
        report.enhanced.append(performance_path)
        self.logger.info("Updated performance recommendations")

    # ------------------------------------------------------------------
    # Internals

    def _call(self, item: str, prompt: str, report: EnhancementReport) -> Optional[str]:
        """Call the service with at most one retry after a rate limit.

        Returns ``None`` when the item could not be enhanced; never raises for
        service failures.
        """
        system = prompts.system_role(self.project)
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return self.runner.run(prompt, system=system)
            except RateLimitError as exc:
                if attempt == MAX_ATTEMPTS:
                    self.logger.error("Still rate limited for %s after retry; skipping: %s", item, exc)
                    return None
                self.logger.warning(
                    "Rate limited for %s; waiting %.0f seconds before retrying",
                    item,
                    self.backoff_seconds,
                )
                report.retries += 1
                self._sleep(self.backoff_seconds)
            except LLMError as exc:
                self.logger.error("Enhancement call failed for %s: %s", item, exc)
                return None
        return None

    def _read(self, target: Path) -> Optional[str]:
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.error("Failed to read %s: %s", target, exc)
            return None

    def _write(self, target: Path, content: str) -> bool:
        try:
            write_if_changed(target, content)
        except OSError as exc:
            self.logger.error("Failed to write %s: %s", target, exc)
            return False
        return True


__all__ = ["AIEnhancer", "EnhancementReport", "INSIGHTS_BLOCK", "INSIGHTS_HEADING"]
