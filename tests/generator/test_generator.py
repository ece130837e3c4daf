"""Tests for deterministic documentation generation."""

from __future__ import annotations

import json
from typing import List

import pytest

from docpilot.errors import GenerationError
from docpilot.generator import DocGenerator
from docpilot.generator import navigation
from docpilot.models import GeneratedPage, ModuleCatalog
from docpilot.postproc.markers import ManagedBlock, MarkerManager
from tests._fixtures.docs_builder import DocsBuilder


def _generator(config) -> DocGenerator:  # type: ignore[no-untyped-def]
    return DocGenerator(config.paths, config.project)


def test_generate_creates_tree_pages_and_manifest(docs_builder: DocsBuilder) -> None:
    docs_builder.write_source({"generated.d.ts": "declare namespace Modules {}\n"})
    config = docs_builder.load()

    result = _generator(config).generate(config.catalog)

    root = docs_builder.docs_root
    for directory in ("architecture", "modules", "components", "api-reference/sales", "types"):
        assert (root / directory).is_dir()
    paths = [page.path for page in result.pages]
    assert paths[:5] == [
        "architecture/overview.mdx",
        "architecture/entity-system.mdx",
        "architecture/dependency-injection.mdx",
        "architecture/performance.mdx",
        "modules/overview.mdx",
    ]
    assert paths[-3:] == [
        "api-reference/sales/cart.mdx",
        "api-reference/sales/order.mdx",
        "api-reference/identity/user.mdx",
    ]
    assert len(result.pages) == 12
    assert sorted(result.written) == sorted(paths)
    assert result.types_synced is True
    assert (root / "types" / "generated.d.ts").read_text(encoding="utf-8").startswith("declare")
    manifest = json.loads((root / "docs.json").read_text(encoding="utf-8"))
    tabs = [tab["tab"] for tab in manifest["navigation"]["tabs"]]
    assert tabs == [navigation.GUIDES_TAB, navigation.API_TAB]


def test_generate_is_idempotent(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    generator = _generator(config)
    generator.generate(config.catalog)
    first = {
        path.relative_to(docs_builder.docs_root): path.read_bytes()
        for path in docs_builder.docs_root.rglob("*")
        if path.is_file()
    }

    second_result = generator.generate(config.catalog)
    second = {
        path.relative_to(docs_builder.docs_root): path.read_bytes()
        for path in docs_builder.docs_root.rglob("*")
        if path.is_file()
    }

    assert first == second
    assert second_result.written == []
    assert second_result.manifest_written is False


def test_counts_are_consistent_across_pages(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    _generator(config).generate(config.catalog)

    overview = docs_builder.read_doc("architecture/overview.mdx")
    modules = docs_builder.read_doc("modules/overview.mdx")
    intro = docs_builder.read_doc("api-reference/introduction.mdx")
    assert "- **2** business modules" in overview
    assert "- **3** documented entities" in overview
    assert "**2 core business modules**" in modules
    assert "**3 entities**" in modules
    assert "RESTful endpoints for 3 business entities across 2 modules" in intro
    assert "provides 2 entities:" in docs_builder.read_doc("modules/sales.mdx")


def test_missing_types_file_is_not_fatal(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()

    result = _generator(config).generate(config.catalog)

    assert result.types_synced is False
    assert not (docs_builder.docs_root / "types" / "generated.d.ts").exists()
    assert (docs_builder.docs_root / "docs.json").is_file()


def test_write_failure_raises_generation_error(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    # A directory where a page should go makes the write fail.
    (docs_builder.docs_root / "modules" / "sales.mdx").mkdir(parents=True)

    with pytest.raises(GenerationError) as excinfo:
        _generator(config).generate(config.catalog)

    assert [failure.path for failure in excinfo.value.failures] == ["modules/sales.mdx"]
    assert not (docs_builder.docs_root / "docs.json").exists()



def test_undecodable_existing_page_is_reported_per_page(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    generator = _generator(config)
    generator.generate(config.catalog)
    (docs_builder.docs_root / "modules" / "identity.mdx").write_bytes(b"\xff\xfe bad utf8")

    with pytest.raises(GenerationError) as excinfo:
        generator.generate(config.catalog)

    assert [failure.path for failure in excinfo.value.failures] == ["modules/identity.mdx"]
    assert "codec" in excinfo.value.failures[0].detail


class _CollidingRenderer:
    def render(self, catalog: ModuleCatalog) -> List[GeneratedPage]:
        return [
            GeneratedPage("modules/overview.mdx", "index"),
            GeneratedPage("modules/overview.mdx", "module"),
        ]


def test_pages_sharing_a_path_abort_before_writing(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    renderer = _CollidingRenderer()
    generator = DocGenerator(config.paths, config.project, renderer=renderer)  # type: ignore[arg-type]

    with pytest.raises(GenerationError) as excinfo:
        generator.generate(ModuleCatalog())

    assert [failure.path for failure in excinfo.value.failures] == ["modules/overview.mdx"]
    assert not (docs_builder.docs_root / "modules" / "overview.mdx").exists()

def test_manifest_preserves_user_tabs_and_keys(docs_builder: DocsBuilder) -> None:
    docs_builder.write_docs(
        {
            "docs.json": json.dumps(
                {
                    "name": "Custom",
                    "colors": {"primary": "#123456"},
                    "navigation": {
                        "tabs": [
                            {"tab": "Changelog", "groups": [{"group": "Log", "pages": ["changelog"]}]},
                            {"tab": navigation.API_TAB, "groups": [{"group": "Old", "pages": ["old/page"]}]},
                        ]
                    },
                }
            ),
            "changelog.mdx": "# Changelog\n",
        }
    )
    config = docs_builder.load()

    _generator(config).generate(config.catalog)

    manifest = json.loads(docs_builder.read_doc("docs.json"))
    assert manifest["name"] == "Custom"
    assert manifest["colors"] == {"primary": "#123456"}
    tabs = manifest["navigation"]["tabs"]
    assert [tab["tab"] for tab in tabs] == ["Changelog", navigation.API_TAB, navigation.GUIDES_TAB]
    assert "old/page" not in list(navigation.iter_page_refs(tabs[1]))


def test_every_api_page_is_referenced_once(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    result = _generator(config).generate(config.catalog)

    manifest = json.loads(docs_builder.read_doc("docs.json"))
    refs = list(navigation.iter_page_refs(manifest["navigation"]))
    for page in result.pages:
        if page.path.startswith("api-reference/") and page.path.count("/") == 2:
            assert refs.count(page.reference) == 1
    assert navigation.validate_manifest(manifest, result.pages) == []


def test_regeneration_keeps_managed_blocks(docs_builder: DocsBuilder) -> None:
    config = docs_builder.load()
    generator = _generator(config)
    generator.generate(config.catalog)
    overview = docs_builder.docs_root / "architecture" / "overview.mdx"
    manager = MarkerManager()
    block = ManagedBlock(key="ai-insights", heading="## AI-Generated Insights", body="Keep me.")
    overview.write_text(manager.upsert(overview.read_text(encoding="utf-8"), block), encoding="utf-8")
    enhanced = overview.read_text(encoding="utf-8")

    result = generator.generate(config.catalog)

    assert overview.read_text(encoding="utf-8") == enhanced
    assert "architecture/overview.mdx" in result.unchanged
