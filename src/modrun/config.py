"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .resolver import DEFAULT_SOURCE_EXTENSION
from .types import LoaderStrategy, PackageDescriptor

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/modrun/config.yaml")
DEFAULT_LOG_LEVEL = "info"
PIPELINES = ("source", "code")
DEFAULT_PIPELINE = "source"
_PACKAGE_FIELDS = {"path", "main", "dist_dir", "src_dir"}


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False
    log_dir: Path | None = None


@dataclass(frozen=True)
class Config:
    """Fully parsed configuration."""

    root: Path
    packages: dict[str, PackageDescriptor]
    source_extension: str = DEFAULT_SOURCE_EXTENSION
    artifact_extension: str = ""
    pipeline: str = DEFAULT_PIPELINE
    strategy: LoaderStrategy = LoaderStrategy.AUTO
    native_imports: bool = False
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate configuration from YAML."""

    config_path = _resolve_config_path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return parse_config(raw, base_dir=config_path.parent.resolve())


def parse_config(raw: dict[str, Any], *, base_dir: Path | None = None) -> Config:
    """Build a :class:`Config` from an already decoded mapping."""

    base = (base_dir or Path.cwd()).resolve()
    root = _parse_root(raw.get("root"), base)
    config = Config(
        root=root,
        packages=_parse_packages(raw.get("packages")),
        source_extension=_parse_extension(
            raw.get("source_extension", DEFAULT_SOURCE_EXTENSION), "source_extension"
        ),
        artifact_extension=_parse_extension(raw.get("artifact_extension", ""), "artifact_extension"),
        pipeline=_parse_pipeline(raw.get("pipeline")),
        strategy=_parse_strategy(raw.get("strategy")),
        native_imports=bool(raw.get("native_imports", False)),
        logging=_parse_logging(raw.get("logging"), base),
    )
    _warn_if_registry_empty(config.packages)
    return config


def _resolve_config_path(explicit: Path | str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.environ.get("MODRUN_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def _parse_root(value: Any, base: Path) -> Path:
    if value is None:
        return base
    if not isinstance(value, str | Path):
        raise ConfigError("root must be a string path.")
    return (base / Path(value).expanduser()).resolve()


def _parse_packages(value: Any) -> dict[str, PackageDescriptor]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("packages must be a mapping of identifier prefix to package.")

    packages: dict[str, PackageDescriptor] = {}
    for prefix, entry in value.items():
        name = "" if prefix is None else str(prefix)
        if isinstance(entry, str):
            packages[name] = PackageDescriptor(path=entry)
            continue
        if not isinstance(entry, dict):
            raise ConfigError(f"packages[{name!r}] must be a mapping or a path string.")
        unknown = set(entry) - _PACKAGE_FIELDS
        if unknown:
            raise ConfigError(f"packages[{name!r}] has unknown keys: {', '.join(sorted(unknown))}.")
        path = entry.get("path")
        if path is None:
            raise ConfigError(f"packages[{name!r}] requires 'path'.")
        packages[name] = PackageDescriptor(
            path=str(path),
            main=_optional_str(entry.get("main"), f"packages[{name!r}].main"),
            dist_dir=_optional_str(entry.get("dist_dir"), f"packages[{name!r}].dist_dir"),
            src_dir=_optional_str(entry.get("src_dir"), f"packages[{name!r}].src_dir"),
        )
    return packages


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string.")
    return value or None


def _parse_extension(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string.")
    if value and not value.startswith("."):
        raise ConfigError(f"{field_name} must start with '.' (got {value!r}).")
    return value


def _parse_pipeline(value: Any) -> str:
    if value is None:
        return DEFAULT_PIPELINE
    normalized = str(value).strip().lower()
    if normalized not in PIPELINES:
        raise ConfigError(f"pipeline must be one of {', '.join(PIPELINES)} (got {value!r}).")
    return normalized


def _parse_strategy(value: Any) -> LoaderStrategy:
    if value is None:
        return LoaderStrategy.AUTO
    normalized = str(value).strip().lower().replace("_", "-")
    try:
        return LoaderStrategy(normalized)
    except ValueError as exc:
        choices = ", ".join(strategy.value for strategy in LoaderStrategy)
        raise ConfigError(f"strategy must be one of {choices} (got {value!r}).") from exc


def _parse_logging(value: Any, base: Path) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    debug_file = bool(value.get("debug_file", False))
    log_dir_value = value.get("log_dir")
    log_dir = None
    if log_dir_value is not None:
        log_dir = (base / Path(str(log_dir_value)).expanduser()).resolve()
    if debug_file and log_dir is None:
        raise ConfigError("logging.debug_file requires logging.log_dir.")
    return LoggingConfig(level=level, debug_file=debug_file, log_dir=log_dir)


def _warn_if_registry_empty(packages: dict[str, PackageDescriptor]) -> None:
    if packages:
        return
    LOGGER.warning(
        "No packages configured. Add a 'packages' mapping so module identifiers can be resolved."
    )


__all__ = [
    "Config",
    "ConfigError",
    "LoggingConfig",
    "load_config",
    "parse_config",
]
