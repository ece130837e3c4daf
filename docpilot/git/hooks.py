"""Git hook installation for the source repository."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Optional

HOOK_NAME = "pre-commit"
HOOK_MODE = 0o755


def find_git_root(start: Path) -> Optional[Path]:
    """Walk up from ``start`` to the first directory containing ``.git`` (a directory, or a file for worktrees)."""
    current = start.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def build_pre_commit_hook(docs_root: Path) -> str:
    docs = shlex.quote(str(docs_root))
    return "\n".join(
        [
            "#!/bin/sh",
            "# Regenerate documentation before each commit",
            f"cd {docs} || exit 1",
            f"docpilot generate --config {docs} || exit 1",
            "git add -A .",
            "",
        ]
    )


def install_pre_commit_hook(repo_path: Path, docs_root: Path) -> Path:
    """Write an executable pre-commit hook into ``repo_path``; returns its path."""
    hooks_dir = repo_path / ".git" / "hooks"
    if not hooks_dir.parent.is_dir():
        raise RuntimeError(f"{repo_path} is not a Git repository")
    hooks_dir.mkdir(parents=True, exist_ok=True)
    hook = hooks_dir / HOOK_NAME
    hook.write_text(build_pre_commit_hook(docs_root), encoding="utf-8")
    hook.chmod(HOOK_MODE)
    return hook


__all__ = ["build_pre_commit_hook", "find_git_root", "install_pre_commit_hook"]
