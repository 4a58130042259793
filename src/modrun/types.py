"""Core immutable data structures used throughout modrun."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_MAIN = "index"

Bindings = Any
"""Exported bindings of a loaded module (namespace, module object or factory result)."""


class LoaderStrategy(str, Enum):
    """Loading mechanisms the strategy dispatcher can pin itself to."""

    AUTO = "auto"
    NATIVE_ASYNC = "native-async"
    NATIVE_SYNC = "native-sync"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PackageDescriptor:
    """Registry entry describing where a package lives on disk."""

    path: str
    main: str | None = None
    dist_dir: str | None = None
    src_dir: str | None = None


PackageRegistry = Mapping[str, PackageDescriptor]


__all__ = [
    "Bindings",
    "DEFAULT_MAIN",
    "LoaderStrategy",
    "PackageDescriptor",
    "PackageRegistry",
]
