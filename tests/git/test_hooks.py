"""Tests for pre-commit hook installation."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from docpilot.git.hooks import build_pre_commit_hook, find_git_root, install_pre_commit_hook


def test_install_pre_commit_hook_writes_executable_script(tmp_path: Path) -> None:
    repo = tmp_path / "app"
    (repo / ".git").mkdir(parents=True)
    docs = tmp_path / "docs"

    hook = install_pre_commit_hook(repo, docs)

    assert hook == repo / ".git" / "hooks" / "pre-commit"
    content = hook.read_text(encoding="utf-8")
    assert content.startswith("#!/bin/sh\n")
    assert "docpilot generate" in content
    assert str(docs) in content
    assert os.access(hook, os.X_OK)


def test_install_pre_commit_hook_requires_git_repository(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        install_pre_commit_hook(tmp_path, tmp_path / "docs")


def test_find_git_root_walks_up(tmp_path: Path) -> None:
    repo = tmp_path / "app"
    (repo / ".git").mkdir(parents=True)
    nested = repo / "src" / "modules"
    nested.mkdir(parents=True)

    assert find_git_root(nested) == repo.resolve()


def test_build_pre_commit_hook_quotes_paths() -> None:
    content = build_pre_commit_hook(Path("/tmp/my docs"))
    assert "cd '/tmp/my docs'" in content
