"""Pipeline orchestration for generate/enhance/update/watch flows."""

from __future__ import annotations

import asyncio
import functools
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from .config import DocPilotConfig
from .enhancer import AIEnhancer, EnhancementReport
from .errors import ConfigError, ConnectionCheckError, MissingCredentialsError
from .generator import DocGenerator, GenerationResult
from .git.diff import ChangeDetector, DiffAnalyzer
from .git.publisher import Publisher
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import ChangeSet
from .scheduler import Batch, ChangeAggregator, Timers
from .watcher import FileWatcher

QUICK_UPDATE_TITLE = "docs: quick documentation update"
ENHANCED_UPDATE_TITLE = "docs: AI-enhanced documentation update"

# Either key counts as "AI configured" when deciding whether to attempt enhancement.
AI_KEY_ENV_VARS = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY")


@dataclass
class UpdateOutcome:
    """Result of one update run."""

    changes: ChangeSet
    generation: Optional[GenerationResult] = None
    enhancement: Optional[EnhancementReport] = None
    enhancement_skipped: Optional[str] = None
    committed: bool = False


class Orchestrator:
    """Coordinates generation, enhancement and publishing for one docs tree."""

    def __init__(
        self,
        config: DocPilotConfig,
        *,
        generator: DocGenerator | None = None,
        enhancer: AIEnhancer | None = None,
        llm_runner: LLMRunner | None = None,
        publisher: Publisher | None = None,
        diff_analyzer: DiffAnalyzer | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self._env = env
        self.detector = ChangeDetector(
            types_file=config.paths.types_file,
            modules_segment=config.watch.modules_segment,
            components_segment=config.watch.components_segment,
            services_segment=config.watch.services_segment,
        )
        self.generator = generator or DocGenerator(config.paths, config.project)
        self._enhancer = enhancer
        self._llm_runner = llm_runner
        self.publisher = publisher or Publisher(
            author_name=config.publish.author_name,
            author_email=config.publish.author_email,
        )
        self.diff_analyzer = diff_analyzer or DiffAnalyzer(self.detector)
        self.logger = get_logger("orchestrator")

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._env is None else self._env

    @property
    def docs_root(self) -> Path:
        return self.config.paths.docs_root

    @property
    def enhancer(self) -> AIEnhancer:
        if self._enhancer is None:
            self._enhancer = AIEnhancer(
                self.config.paths,
                self.llm_runner,
                project=self.config.project,
                backoff_seconds=self.config.ai.rate_limit_backoff,
            )
        return self._enhancer

    @property
    def llm_runner(self) -> LLMRunner:
        if self._llm_runner is None:
            ai = self.config.ai
            self._llm_runner = LLMRunner(
                ai.model,
                temperature=ai.temperature,
                max_tokens=ai.max_tokens,
                api_key=ai.api_key,
                request_timeout=ai.request_timeout,
            )
        return self._llm_runner

    # ------------------------------------------------------------------
    # Change sources

    def changes_from_paths(self, paths: List[str]) -> ChangeSet:
        return self.detector.classify(paths)

    def changes_from_diff(self, source_repo: str, diff_base: str) -> ChangeSet:
        result = self.diff_analyzer.compute(source_repo, diff_base)
        self.logger.info(
            "Detected %d changed files since %s (%s)",
            len(result.changed_files),
            diff_base,
            result.changes.describe(),
        )
        return result.changes

    def changes_from_env(self) -> ChangeSet:
        """Read ``CHANGED_MODULES`` (newline or comma separated) and ``TYPES_CHANGED``."""
        raw = self.environ.get("CHANGED_MODULES", "")
        modules = [item.strip() for item in raw.replace(",", "\n").splitlines() if item.strip()]
        return ChangeSet.of(modules, types_changed=bool(self.environ.get("TYPES_CHANGED", "").strip()))

    def ai_key_available(self) -> bool:
        return bool(self.config.ai.api_key) or any(self.environ.get(key) for key in AI_KEY_ENV_VARS)

    # ------------------------------------------------------------------
    # Pipelines

    def run_generate(self) -> GenerationResult:
        catalog = self.config.catalog
        if not len(catalog):
            self.logger.warning("No modules configured; only overview pages will be generated")
        return self.generator.generate(catalog)

    def run_enhance(self, changes: ChangeSet) -> EnhancementReport:
        return self.enhancer.enhance(changes)

    def run_update(
        self,
        changes: ChangeSet,
        *,
        enhance: bool = True,
        commit: bool | None = None,
        push: bool | None = None,
    ) -> UpdateOutcome:
        """Regenerate, optionally enhance, then commit.

        A :class:`GenerationError` propagates before anything is committed.
        Enhancement is skipped with a warning when no key is configured or
        the connectivity check fails.
        """
        self.logger.info("Starting update run (%s)", changes.describe())
        outcome = UpdateOutcome(changes=changes)
        outcome.generation = self.run_generate()

        if enhance and changes.requires_enhancement:
            outcome.enhancement, outcome.enhancement_skipped = self._try_enhance(changes)
        elif enhance:
            outcome.enhancement_skipped = "no module or type changes"

        title = ENHANCED_UPDATE_TITLE if outcome.enhancement is not None else QUICK_UPDATE_TITLE
        outcome.committed = self._publish(changes, title=title, commit=commit, push=push)
        return outcome

    async def process_batch(self, batch: Batch) -> UpdateOutcome:
        """Handle one aggregator batch: quick update, then enhancement when flagged.

        Each synchronous step runs in the loop's default executor, one after
        the other.
        """
        loop = asyncio.get_running_loop()
        self.logger.info("Running quick documentation update")
        outcome = await loop.run_in_executor(
            None, functools.partial(self.run_update, batch.changes, enhance=False)
        )
        if not batch.enhance:
            return outcome

        self.logger.info("Running AI-enhanced documentation update")
        report, reason = await loop.run_in_executor(None, self._try_enhance, batch.changes)
        outcome.enhancement, outcome.enhancement_skipped = report, reason
        if report is not None:
            committed = await loop.run_in_executor(
                None,
                functools.partial(self._publish, batch.changes, title=ENHANCED_UPDATE_TITLE),
            )
            outcome.committed = outcome.committed or committed
        return outcome

    def create_aggregator(self, timers: Timers | None = None) -> ChangeAggregator:
        watch = self.config.watch
        return ChangeAggregator(
            self.process_batch,
            detector=self.detector,
            debounce_seconds=watch.debounce_seconds,
            flush_interval=watch.flush_interval,
            ai_threshold=watch.ai_threshold,
            timers=timers,
        )

    async def run_watch(self, stop: asyncio.Event | None = None) -> None:
        """Watch the source tree until ``stop`` is set (or the task is cancelled)."""
        source_root = self.config.paths.source_root
        if not source_root.is_dir():
            raise ConfigError(f"Source root {source_root} does not exist")
        stop = stop or asyncio.Event()
        aggregator = self.create_aggregator()
        watcher = FileWatcher(
            source_root,
            aggregator,
            globs=self.config.watch.globs,
            loop=asyncio.get_running_loop(),
        )
        aggregator.start()
        watcher.start()
        try:
            await stop.wait()
        finally:
            watcher.stop()
            aggregator.close()
            await aggregator.drain()
            if aggregator.pending_paths:
                self.logger.warning(
                    "Stopped with %d unprocessed changes: %s",
                    len(aggregator.pending_paths),
                    ", ".join(aggregator.pending_paths),
                )

    # ------------------------------------------------------------------
    # Internals

    def _try_enhance(self, changes: ChangeSet) -> tuple[Optional[EnhancementReport], Optional[str]]:
        if not self.ai_key_available():
            self.logger.warning("No AI API key found; skipping AI enhancement")
            return None, "no API key configured"
        try:
            return self.run_enhance(changes), None
        except MissingCredentialsError as exc:
            self.logger.warning("Skipping AI enhancement: %s", exc)
            return None, str(exc)
        except ConnectionCheckError as exc:
            self.logger.warning("Skipping AI enhancement: %s", exc)
            return None, str(exc)

    def _publish(
        self,
        changes: ChangeSet,
        *,
        title: str,
        commit: bool | None = None,
        push: bool | None = None,
    ) -> bool:
        publish = self.config.publish
        if not (publish.enabled if commit is None else commit):
            self.logger.info("Commit disabled; leaving changes in the working tree")
            return False
        try:
            return self.publisher.publish(
                str(self.docs_root),
                changes,
                title=title,
                push=publish.push if push is None else push,
            )
        except subprocess.CalledProcessError as exc:
            raise RuntimeError(f"Publishing documentation failed: {exc}") from exc


__all__ = [
    "ENHANCED_UPDATE_TITLE",
    "Orchestrator",
    "QUICK_UPDATE_TITLE",
    "UpdateOutcome",
]
