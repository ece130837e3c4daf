"""Tests for the shared data models."""

from __future__ import annotations

import pytest

from docpilot.errors import ConfigError
from docpilot.models import ChangeSet, GeneratedPage, ModuleCatalog, ModuleDescriptor, ModuleSummary


def test_change_set_merge_is_commutative_and_associative() -> None:
    a = ChangeSet.of(["sales"], types_changed=True)
    b = ChangeSet.of(["identity"], components_changed=True)
    c = ChangeSet.of(["sales", "content"], services_changed=True)

    assert a.merge(b) == b.merge(a)
    assert a.merge(b).merge(c) == a.merge(b.merge(c))
    assert a.merge(ChangeSet()) == a
    assert a.merge(b).modules == frozenset({"sales", "identity"})
    assert a.merge(b).types_changed is True
    assert a.merge(b).components_changed is True


def test_change_set_merge_leaves_operands_untouched() -> None:
    a = ChangeSet.of(["sales"])
    b = ChangeSet.of(["identity"])
    a.merge(b)
    assert a.modules == frozenset({"sales"})
    assert b.modules == frozenset({"identity"})


def test_change_set_enhancement_requirement() -> None:
    assert ChangeSet().is_empty
    assert not ChangeSet.of(components_changed=True).requires_enhancement
    assert ChangeSet.of(types_changed=True).requires_enhancement
    assert ChangeSet.of(["sales"]).requires_enhancement


def test_change_set_describe_lists_sorted_modules() -> None:
    changes = ChangeSet.of(["sales", "identity"], types_changed=True)
    assert changes.describe() == (
        "modules=[identity, sales] types=yes components=no services=no"
    )
    assert changes.to_dict()["modules"] == ["identity", "sales"]


def test_module_descriptor_rejects_duplicate_entities() -> None:
    with pytest.raises(ConfigError):
        ModuleDescriptor(name="sales", entities=("order", "order"))


def test_module_descriptor_rejects_empty_name() -> None:
    with pytest.raises(ConfigError):
        ModuleDescriptor(name="  ")


def test_module_descriptor_rejects_name_of_the_modules_index_page() -> None:
    with pytest.raises(ConfigError, match="reserved"):
        ModuleDescriptor(name="overview", entities=("a",))


@pytest.mark.parametrize(
    ("name", "entities"),
    [
        ("../escape", ()),
        ("sales/extra", ()),
        (".hidden", ()),
        ("sales", ("..",)),
        ("sales", ("nested/order",)),
        ("sales", ("win\\path",)),
    ],
)
def test_module_descriptor_rejects_names_that_leave_the_docs_tree(name: str, entities: tuple) -> None:
    with pytest.raises(ConfigError, match="plain name"):
        ModuleDescriptor(name=name, entities=entities)


def test_module_catalog_rejects_duplicate_modules() -> None:
    with pytest.raises(ConfigError):
        ModuleCatalog((ModuleDescriptor("sales"), ModuleDescriptor("sales")))


def test_module_catalog_counts_and_lookup() -> None:
    catalog = ModuleCatalog(
        (
            ModuleDescriptor("sales", entities=["cart", "order"]),
            ModuleDescriptor("identity", entities=("user",)),
        )
    )
    assert catalog.module_count == 2
    assert catalog.entity_count == 3
    assert catalog.names() == ["sales", "identity"]
    sales = catalog.get("sales")
    assert sales is not None and sales.entities == ("cart", "order")
    assert sales.title == "Sales"
    assert catalog.get("missing") is None


def test_generated_page_reference_drops_extension() -> None:
    page = GeneratedPage(path="api-reference/sales/order.mdx", content="")
    assert page.reference == "api-reference/sales/order"


def test_module_summary_reports_missing_module() -> None:
    assert ModuleSummary(name="ghost", found=False).to_dict() == {"error": "Module not found"}
