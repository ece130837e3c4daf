"""Configuration loading for docpilot (.docpilot.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .models import ModuleCatalog, ModuleDescriptor

CONFIG_FILENAME = ".docpilot.yml"

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_WATCH_GLOBS = (
    "modules/**",
    "lib/**",
    "components/**",
    "generated.d.ts",
)


@dataclass
class ProjectConfig:
    """Names and URLs rendered into the generated pages."""

    name: str = "AGVES"
    api_base_url: str = "http://localhost:80/api"


@dataclass
class PathsConfig:
    """Where the source application and the documentation tree live."""

    source_root: Path
    docs_root: Path
    types_file: str = "generated.d.ts"

    @property
    def types_source(self) -> Path:
        return self.source_root / self.types_file

    @property
    def modules_root(self) -> Path:
        return self.source_root / "modules"


@dataclass
class AIConfig:
    """Text-generation settings for the enhancer."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 4000
    temperature: float = 0.3
    request_timeout: float = 120.0
    rate_limit_backoff: float = 60.0
    api_key: Optional[str] = None


@dataclass
class WatchConfig:
    """Debounce and batching policy for watch mode."""

    debounce_seconds: float = 5.0
    flush_interval: float = 30.0
    ai_threshold: int = 3
    globs: List[str] = field(default_factory=lambda: list(DEFAULT_WATCH_GLOBS))
    modules_segment: str = "modules"
    components_segment: str = "components"
    services_segment: str = "services"


@dataclass
class PublishConfig:
    """Commit strategy for regenerated documentation."""

    enabled: bool = True
    push: bool = False
    author_name: str = "Documentation Bot"
    author_email: str = "bot@example.com"


@dataclass
class DocPilotConfig:
    """Represents the settings defined in .docpilot.yml."""

    root: Path
    paths: PathsConfig
    project: ProjectConfig = field(default_factory=ProjectConfig)
    catalog: ModuleCatalog = field(default_factory=ModuleCatalog)
    ai: AIConfig = field(default_factory=AIConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)


def load_config(config_path: Path, *, env: Optional[Dict[str, str]] = None) -> DocPilotConfig:
    """Load configuration from disk, applying environment overrides."""
    environ = os.environ if env is None else env
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    project_data = _as_dict(data.get("project"))
    project = ProjectConfig()
    if project_data:
        project.name = _as_str(project_data.get("name")) or project.name
        project.api_base_url = _as_str(project_data.get("api_base_url")) or project.api_base_url

    paths_data = _as_dict(data.get("paths"))
    source_root = _as_str(paths_data.get("source_root")) or "../src"
    docs_root = _as_str(paths_data.get("docs_root")) or "."
    paths = PathsConfig(
        source_root=(root / source_root).resolve(),
        docs_root=(root / docs_root).resolve(),
        types_file=_as_str(paths_data.get("types_file")) or "generated.d.ts",
    )

    catalog = _parse_modules(data.get("modules"))

    ai_data = _as_dict(data.get("ai"))
    ai = AIConfig()
    if ai_data:
        ai.model = _as_str(ai_data.get("model")) or ai.model
        ai.max_tokens = _as_int(ai_data.get("max_tokens")) or ai.max_tokens
        temperature = _as_float(ai_data.get("temperature"))
        ai.temperature = temperature if temperature is not None else ai.temperature
        timeout = _as_duration(ai_data.get("request_timeout"), "ai.request_timeout", allow_zero=False)
        ai.request_timeout = timeout if timeout is not None else ai.request_timeout
        backoff = _as_float(ai_data.get("rate_limit_backoff"))
        ai.rate_limit_backoff = backoff if backoff is not None else ai.rate_limit_backoff
    ai.model = environ.get("DOCPILOT_AI_MODEL") or ai.model
    ai.api_key = environ.get("ANTHROPIC_API_KEY") or None

    watch_data = _as_dict(data.get("watch"))
    watch = WatchConfig()
    if watch_data:
        debounce = _as_duration(watch_data.get("debounce_seconds"), "watch.debounce_seconds")
        watch.debounce_seconds = debounce if debounce is not None else watch.debounce_seconds
        flush = _as_duration(watch_data.get("flush_interval"), "watch.flush_interval", allow_zero=False)
        watch.flush_interval = flush if flush is not None else watch.flush_interval
        threshold = _as_int(watch_data.get("ai_threshold"))
        if threshold is not None:
            if threshold < 1:
                raise ConfigError("watch.ai_threshold must be at least 1")
            watch.ai_threshold = threshold
        globs = _as_str_list(watch_data.get("globs"), "watch.globs")
        if globs:
            watch.globs = globs
        watch.modules_segment = _as_str(watch_data.get("modules_segment")) or watch.modules_segment
        watch.components_segment = (
            _as_str(watch_data.get("components_segment")) or watch.components_segment
        )
        watch.services_segment = _as_str(watch_data.get("services_segment")) or watch.services_segment

    publish_data = _as_dict(data.get("publish"))
    publish = PublishConfig()
    if publish_data:
        enabled = _as_bool(publish_data.get("enabled"))
        publish.enabled = publish.enabled if enabled is None else enabled
        publish.push = _as_bool(publish_data.get("push")) or False
        publish.author_name = _as_str(publish_data.get("author_name")) or publish.author_name
        publish.author_email = _as_str(publish_data.get("author_email")) or publish.author_email
    if _as_bool(environ.get("AUTO_PUSH")):
        publish.push = True

    return DocPilotConfig(
        root=root,
        paths=paths,
        project=project,
        catalog=catalog,
        ai=ai,
        watch=watch,
        publish=publish,
    )


def _parse_modules(value: Any) -> ModuleCatalog:
    if value is None:
        return ModuleCatalog()
    if not isinstance(value, list):
        raise ConfigError("modules must be a list of module mappings")
    descriptors: List[ModuleDescriptor] = []
    for index, raw in enumerate(value):
        if not isinstance(raw, dict):
            raise ConfigError(f"modules[{index}] must be a mapping")
        name = _as_str(raw.get("name"))
        if not name:
            raise ConfigError(f"modules[{index}] is missing a name")
        descriptors.append(
            ModuleDescriptor(
                name=name,
                entities=tuple(_as_str_list(raw.get("entities"), f"modules[{index}].entities")),
                has_services=_as_bool(raw.get("has_services")) or False,
                has_tests=_as_bool(raw.get("has_tests")) or False,
            )
        )
    return ModuleCatalog(tuple(descriptors))


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_duration(value: Any, key: str, *, allow_zero: bool = True) -> Optional[float]:
    seconds = _as_float(value)
    if seconds is None:
        return None
    if seconds < 0 or (seconds == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise ConfigError(f"{key} must be {bound} seconds, got {seconds}")
    return seconds


def _as_str_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, Sequence):
        raise ConfigError(f"{key} must be a list of names")
    items: List[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ConfigError(f"{key} entries must be plain names, got {item!r}")
        items.append(str(item))
    return items


__all__ = [
    "AIConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DocPilotConfig",
    "PathsConfig",
    "ProjectConfig",
    "PublishConfig",
    "WatchConfig",
    "load_config",
]
