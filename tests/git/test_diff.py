"""Tests for change classification and the diff analyzer."""

from __future__ import annotations

from pathlib import Path

import pytest

from docpilot.git.diff import ChangeDetector, DiffAnalyzer, DiffResult, pattern_matches
from docpilot.models import ChangeSet


def _make_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / ".git").mkdir()
    return repo


def test_detector_classifies_module_and_types_paths() -> None:
    changes = ChangeDetector().classify(
        ["root/modules/sales/entities/order.x", "root/generated.d.ts"]
    )
    assert changes == ChangeSet(
        modules=frozenset({"sales"}),
        types_changed=True,
        components_changed=False,
        services_changed=False,
    )


def test_detector_flags_components_and_services() -> None:
    changes = ChangeDetector().classify(
        [
            "src/components/fields/TextField.tsx",
            "src/modules/identity/services/UserService.ts",
        ]
    )
    assert changes.modules == frozenset({"identity"})
    assert changes.components_changed is True
    assert changes.services_changed is True
    assert changes.types_changed is False


def test_detector_ignores_unrecognised_paths() -> None:
    changes = ChangeDetector().classify(["README.md", "src/lib/utils.ts", "modules"])
    assert changes.is_empty


def test_detector_normalises_backslashes() -> None:
    changes = ChangeDetector().classify(["src\\modules\\sales\\entities\\cart.tsx"])
    assert changes.modules == frozenset({"sales"})


def test_detector_ignores_file_directly_under_modules() -> None:
    changes = ChangeDetector().classify(["src/modules/index.ts"])
    assert changes.modules == frozenset()


def test_detector_uses_configured_segments() -> None:
    detector = ChangeDetector(types_file="api.d.ts", modules_segment="domains")
    changes = detector.classify(["src/domains/billing/invoice.ts", "src/api.d.ts"])
    assert changes.modules == frozenset({"billing"})
    assert changes.types_changed is True


def test_diff_analyzer_collects_committed_and_uncommitted_files(tmp_path: Path) -> None:
    repo = _make_repo(tmp_path)
    calls: list[tuple[list[str], Path]] = []

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        calls.append((list(args), Path(cwd)))
        if args[:3] == ["git", "diff", "--name-only"]:
            return "src/modules/sales/entities/order.tsx\nREADME.md\n"
        if args[:2] == ["git", "status"]:
            return " M src/generated.d.ts\nR  src/components/Old.tsx -> src/components/New.tsx\n"
        return ""

    analyzer = DiffAnalyzer(runner=runner)
    result = analyzer.compute(str(repo), "origin/main")

    assert isinstance(result, DiffResult)
    assert result.changed_files == [
        "src/modules/sales/entities/order.tsx",
        "README.md",
        "src/generated.d.ts",
        "src/components/New.tsx",
    ]
    assert result.changes.modules == frozenset({"sales"})
    assert result.changes.types_changed is True
    assert result.changes.components_changed is True
    assert calls[0][0] == ["git", "diff", "--name-only", "origin/main...HEAD"]
    assert calls[0][1] == repo


def test_diff_analyzer_requires_git_repository(tmp_path: Path) -> None:
    analyzer = DiffAnalyzer(runner=lambda *args, **kwargs: "")
    with pytest.raises(RuntimeError):
        analyzer.compute(str(tmp_path), "origin/main")


@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("modules/sales/entities/order.tsx", "modules/**", True),
        ("lib/hooks/useEntity.ts", "modules/**", False),
        ("generated.d.ts", "generated.d.ts", True),
        ("components/Button.tsx", "components/*.tsx", True),
    ],
)
def test_pattern_matches(path: str, pattern: str, expected: bool) -> None:
    assert pattern_matches(path, pattern) is expected
