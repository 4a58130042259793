"""modrun package initialisation."""

from importlib import metadata

from .errors import (
    CapabilityAbsentError,
    ConfigurationError,
    InvocationError,
    LoadError,
    ModrunError,
    ResolutionError,
    UnknownStrategyError,
)
from .types import LoaderStrategy, PackageDescriptor


def _discover_version() -> str:
    """Return the installed package version, falling back to dev marker."""
    try:
        return metadata.version("modrun")
    except metadata.PackageNotFoundError:  # pragma: no cover - occurs in editable installs
        return "0.0.0"


__all__ = [
    "CapabilityAbsentError",
    "ConfigurationError",
    "InvocationError",
    "LoadError",
    "LoaderStrategy",
    "ModrunError",
    "PackageDescriptor",
    "ResolutionError",
    "UnknownStrategyError",
    "__version__",
]
__version__ = _discover_version()
