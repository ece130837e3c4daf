"""Core data models shared across docpilot components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from .errors import ConfigError

# ``modules/overview`` is the modules index page, not a module page.
RESERVED_MODULE_NAMES = frozenset({"overview"})


@dataclass(frozen=True)
class ChangeSet:
    """What changed in the source application, as seen by the pipeline.

    Instances are immutable. Batches are combined with :meth:`merge`, which is
    commutative and associative with ``ChangeSet()`` as the identity.
    """

    modules: FrozenSet[str] = frozenset()
    types_changed: bool = False
    components_changed: bool = False
    services_changed: bool = False

    @classmethod
    def of(
        cls,
        modules: Iterable[str] = (),
        *,
        types_changed: bool = False,
        components_changed: bool = False,
        services_changed: bool = False,
    ) -> "ChangeSet":
        return cls(
            modules=frozenset(name for name in modules if name),
            types_changed=types_changed,
            components_changed=components_changed,
            services_changed=services_changed,
        )

    def merge(self, other: "ChangeSet") -> "ChangeSet":
        return ChangeSet(
            modules=self.modules | other.modules,
            types_changed=self.types_changed or other.types_changed,
            components_changed=self.components_changed or other.components_changed,
            services_changed=self.services_changed or other.services_changed,
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.modules
            or self.types_changed
            or self.components_changed
            or self.services_changed
        )

    @property
    def requires_enhancement(self) -> bool:
        """True when module or type changes warrant an AI pass."""
        return bool(self.modules) or self.types_changed

    def sorted_modules(self) -> List[str]:
        return sorted(self.modules)

    def describe(self) -> str:
        """One-line summary used in logs."""
        modules = ", ".join(self.sorted_modules()) or "none"
        return (
            f"modules=[{modules}] types={_yes_no(self.types_changed)} "
            f"components={_yes_no(self.components_changed)} "
            f"services={_yes_no(self.services_changed)}"
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "modules": self.sorted_modules(),
            "types_changed": self.types_changed,
            "components_changed": self.components_changed,
            "services_changed": self.services_changed,
        }


@dataclass(frozen=True)
class ModuleDescriptor:
    """Static description of one business module and its entities."""

    name: str
    entities: Tuple[str, ...] = ()
    has_services: bool = False
    has_tests: bool = False

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ConfigError("Module name must be a non-empty string")
        _check_path_segment(self.name, "Module name")
        if self.name in RESERVED_MODULE_NAMES:
            raise ConfigError(f"Module name '{self.name}' is reserved for a generated page")
        # Accept any sequence from callers but store a tuple.
        object.__setattr__(self, "entities", tuple(self.entities))
        seen = set()
        for entity in self.entities:
            if not entity:
                raise ConfigError(f"Module '{self.name}' declares an empty entity name")
            _check_path_segment(entity, f"Entity in module '{self.name}'")
            if entity in seen:
                raise ConfigError(
                    f"Entity '{entity}' is declared more than once in module '{self.name}'"
                )
            seen.add(entity)

    @property
    def title(self) -> str:
        return self.name[:1].upper() + self.name[1:]


@dataclass(frozen=True)
class ModuleCatalog:
    """Ordered, validated collection of module descriptors."""

    modules: Tuple[ModuleDescriptor, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "modules", tuple(self.modules))
        seen = set()
        for module in self.modules:
            if module.name in seen:
                raise ConfigError(f"Module '{module.name}' is declared more than once")
            seen.add(module.name)

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        return iter(self.modules)

    def __len__(self) -> int:
        return len(self.modules)

    @property
    def module_count(self) -> int:
        return len(self.modules)

    @property
    def entity_count(self) -> int:
        return sum(len(module.entities) for module in self.modules)

    def get(self, name: str) -> Optional[ModuleDescriptor]:
        for module in self.modules:
            if module.name == name:
                return module
        return None

    def names(self) -> List[str]:
        return [module.name for module in self.modules]


@dataclass(frozen=True)
class GeneratedPage:
    """A materialised documentation page keyed by its relative path."""

    path: str
    content: str

    @property
    def reference(self) -> str:
        """Navigation reference: the path without its extension."""
        stem, dot, _ = self.path.rpartition(".")
        return stem if dot else self.path


@dataclass(frozen=True)
class EntitySummary:
    """Shallow facts about one entity definition file."""

    name: str
    has_relationships: bool
    field_count: int


@dataclass
class ModuleSummary:
    """Summary of a module's source tree handed to the enhancer."""

    name: str
    found: bool = True
    entities: List[EntitySummary] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    tests: List[str] = field(default_factory=list)
    i18n: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        if not self.found:
            return {"error": "Module not found"}
        return {
            "entities": [
                {
                    "name": entity.name,
                    "has_relationships": entity.has_relationships,
                    "field_count": entity.field_count,
                }
                for entity in self.entities
            ],
            "services": list(self.services),
            "tests": list(self.tests),
            "i18n": list(self.i18n),
        }


def _check_path_segment(value: str, label: str) -> None:
    # Names become file and directory names under the docs root.
    if "/" in value or "\\" in value or value.startswith("."):
        raise ConfigError(
            f"{label} '{value}' must be a plain name without path separators or a leading dot"
        )


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


__all__ = [
    "ChangeSet",
    "EntitySummary",
    "GeneratedPage",
    "ModuleCatalog",
    "ModuleDescriptor",
    "ModuleSummary",
    "RESERVED_MODULE_NAMES",
]
