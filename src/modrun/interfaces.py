"""Protocol definitions for the pluggable seams of the loading pipeline."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .types import Bindings


@runtime_checkable
class ModuleLoader(Protocol):
    """Anything that can turn a module identifier into exported bindings."""

    async def load_module(self, identifier: str) -> Bindings:
        """Load (or return the memoized) bindings for ``identifier``."""


@runtime_checkable
class PathResolver(Protocol):
    """Maps module identifiers onto physical locations."""

    def resolve(self, identifier: str) -> str:
        """Return the artifact location for ``identifier``."""

    def resolve_source(self, identifier: str) -> str:
        """Return the original-source location for ``identifier``."""


@runtime_checkable
class FileLoader(Protocol):
    """Read-only access to raw file content."""

    async def load_file(self, location: str) -> str:
        """Return the text stored at ``location``."""


@runtime_checkable
class SourceProcessor(Protocol):
    """Source-to-source transformation applied before invocation."""

    async def process_source(self, source: str, identifier: str) -> str:
        """Return the transformed text of ``identifier``."""


@runtime_checkable
class CodeInvoker(Protocol):
    """Executes module text and returns its exported bindings."""

    async def invoke_code(self, source: str) -> Bindings:
        """Evaluate ``source`` as a module body."""


__all__ = [
    "CodeInvoker",
    "FileLoader",
    "ModuleLoader",
    "PathResolver",
    "SourceProcessor",
]
