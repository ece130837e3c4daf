"""Git publishing for regenerated documentation."""

from __future__ import annotations

import os
import subprocess
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Iterable

from ..logging import get_logger
from ..models import ChangeSet
from .hooks import find_git_root


def build_commit_message(title: str, changes: ChangeSet, *, timestamp: datetime) -> str:
    """Render the commit message body describing the triggering changes."""
    modules = ", ".join(changes.sorted_modules()) or "none"
    generated_at = timestamp.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    lines = [
        title,
        "",
        f"Modules updated: {modules}",
        f"Types updated: {_yes_no(changes.types_changed)}",
        f"Components updated: {_yes_no(changes.components_changed)}",
        f"Services updated: {_yes_no(changes.services_changed)}",
        "",
        f"Auto-generated at: {generated_at}",
    ]
    return "\n".join(lines)


class Publisher:
    """Stages changes under the docs directory, commits them and optionally pushes."""

    def __init__(
        self,
        runner: Callable[..., str] | None = None,
        *,
        author_name: str = "Documentation Bot",
        author_email: str = "bot@example.com",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._runner = runner or self._default_runner
        self.author_name = author_name
        self.author_email = author_email
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger("publisher")

    def has_changes(self, repo: Path, scope: str = ".") -> bool:
        status = self._run(
            ["git", "status", "--porcelain", "--", scope], cwd=repo, capture_output=True
        )
        return bool(status.strip())

    def publish(
        self,
        docs_path: str,
        changes: ChangeSet,
        *,
        title: str = "docs: regenerate documentation",
        push: bool = False,
    ) -> bool:
        """Commit pending changes under ``docs_path``; return ``False`` when there was nothing to commit.

        ``docs_path`` may be the repository root or any directory inside it;
        only paths below it are staged and committed.
        """
        docs = Path(docs_path).resolve()
        repo = find_git_root(docs)
        if repo is None:
            self.logger.warning("%s is not inside a Git repository; skipping commit", docs)
            return False
        scope = docs.relative_to(repo).as_posix()

        if not self.has_changes(repo, scope):
            self.logger.info("Documentation tree is clean; nothing to commit")
            return False

        env = os.environ.copy()
        env.setdefault("GIT_AUTHOR_NAME", self.author_name)
        env.setdefault("GIT_AUTHOR_EMAIL", self.author_email)
        env.setdefault("GIT_COMMITTER_NAME", env["GIT_AUTHOR_NAME"])
        env.setdefault("GIT_COMMITTER_EMAIL", env["GIT_AUTHOR_EMAIL"])

        message = build_commit_message(title, changes, timestamp=self._clock())
        self._run(["git", "add", "-A", "--", scope], cwd=repo)
        self._run(["git", "commit", "-m", message, "--", scope], cwd=repo, env=env)
        self.logger.info("Committed documentation changes (%s)", changes.describe())

        if push:
            self._run(["git", "push"], cwd=repo, env=env)
            self.logger.info("Pushed documentation commit")
        return True

    # ------------------------------------------------------------------
    # Helpers

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        return self._runner(args, cwd=cwd, env=env, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            env=env,
            check=True,
            text=True,
            capture_output=capture_output,
        )
        if capture_output:
            return completed.stdout
        return ""


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


__all__ = ["Publisher", "build_commit_message"]
