"""Change detection from file paths and git diffs."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..models import ChangeSet


@dataclass(frozen=True)
class DiffResult:
    """Changed files between a base ref and HEAD, classified."""

    base: str
    changed_files: Sequence[str]
    changes: ChangeSet


class ChangeDetector:
    """Classifies file paths into a :class:`ChangeSet`.

    Classification is lenient: paths that match no rule are ignored. The
    detector holds no state, so ``classify`` is a pure function of its input.
    """

    def __init__(
        self,
        *,
        types_file: str = "generated.d.ts",
        modules_segment: str = "modules",
        components_segment: str = "components",
        services_segment: str = "services",
    ) -> None:
        self.types_file = types_file
        self.modules_segment = modules_segment
        self.components_segment = components_segment
        self.services_segment = services_segment

    def classify(self, paths: Iterable[str]) -> ChangeSet:
        modules: List[str] = []
        types_changed = False
        components_changed = False
        services_changed = False
        for path in paths:
            parts = _segments(path)
            if not parts:
                continue
            module = self._module_name(parts)
            if module and module not in modules:
                modules.append(module)
            if parts[-1] == self.types_file:
                types_changed = True
            # The last segment is the file itself, never a directory root.
            directories = parts[:-1]
            if self.components_segment in directories:
                components_changed = True
            if self.services_segment in directories:
                services_changed = True
        return ChangeSet.of(
            modules,
            types_changed=types_changed,
            components_changed=components_changed,
            services_changed=services_changed,
        )

    def _module_name(self, parts: Sequence[str]) -> str | None:
        # ``.../modules/<name>/...``: the name must itself be a directory.
        for index, part in enumerate(parts[:-2]):
            if part == self.modules_segment:
                return parts[index + 1]
        return None


class DiffAnalyzer:
    """Computes a ChangeSet from the commits between ``diff_base`` and HEAD."""

    def __init__(
        self,
        detector: ChangeDetector | None = None,
        runner: Callable[..., str] | None = None,
    ) -> None:
        self.detector = detector or ChangeDetector()
        self._runner = runner or self._default_runner

    def compute(self, repo_path: str, diff_base: str) -> DiffResult:
        repo = Path(repo_path)
        if not (repo / ".git").exists():
            raise RuntimeError(f"{repo_path} is not a Git repository")

        changed_files = self._changed_files(repo, diff_base)
        changes = self.detector.classify(changed_files)
        return DiffResult(base=diff_base, changed_files=changed_files, changes=changes)

    # ------------------------------------------------------------------
    # Internals

    def _changed_files(self, repo: Path, diff_base: str) -> List[str]:
        args = ["git", "diff", "--name-only", f"{diff_base}...HEAD"]
        output = self._run(args, cwd=repo, capture_output=True)
        files = [line.strip() for line in output.splitlines() if line.strip()]
        # Uncommitted work counts as changed too.
        status = self._run(["git", "status", "--short"], cwd=repo, capture_output=True)
        for line in status.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            path = stripped.split(maxsplit=1)[-1]
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            if path not in files:
                files.append(path)
        return files

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        return self._runner(args, cwd=cwd, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        import subprocess

        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


def pattern_matches(path: str, pattern: str) -> bool:
    """Match a relative path against a watch glob (``dir/``, ``dir/**`` or fnmatch)."""
    normalized = path.replace("\\", "/")
    if pattern.endswith("/**"):
        prefix = pattern[:-3]
        return normalized == prefix or normalized.startswith(f"{prefix}/")
    if pattern.endswith("/"):
        return normalized.startswith(pattern)
    if pattern.startswith("**/"):
        suffix = pattern[3:]
        return normalized.endswith(suffix) or fnmatch(normalized, pattern)
    if "/" in pattern or any(ch in pattern for ch in "*?["):
        return fnmatch(normalized, pattern)
    if normalized == pattern:
        return True
    return normalized.endswith(f"/{pattern}")


def _segments(path: str) -> List[str]:
    normalized = path.replace("\\", "/")
    return [part for part in normalized.split("/") if part and part != "."]


__all__ = ["ChangeDetector", "DiffAnalyzer", "DiffResult", "pattern_matches"]
