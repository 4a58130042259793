"""Registry-driven mapping of module identifiers onto physical locations."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from .errors import ResolutionError
from .types import DEFAULT_MAIN, PackageDescriptor, PackageRegistry

LOGGER = logging.getLogger(__name__)
SEPARATOR = "/"
DEFAULT_SOURCE_EXTENSION = ".py"


@dataclass(frozen=True)
class PackageMatch:
    """Request-local result of matching an identifier against the registry."""

    prefix: str
    package: PackageDescriptor
    component: str


class StaticPathResolver:
    """Resolve identifiers through a fixed package registry.

    The most specific registered package wins: the identifier is truncated
    segment by segment from the right until a registry key matches, down to
    and including the empty (root) prefix. The stripped segments form the
    component path inside the matched package.
    """

    def __init__(
        self,
        registry: PackageRegistry,
        root: str = "",
        *,
        source_extension: str = DEFAULT_SOURCE_EXTENSION,
        artifact_extension: str = "",
    ) -> None:
        self._registry = registry
        self._root = root
        self._source_extension = source_extension
        self._artifact_extension = artifact_extension

    def resolve(self, identifier: str) -> str:
        """Return the artifact location for ``identifier``."""

        match = self.match(identifier)
        location = self._join(match.package.path, match.component)
        return location + self._artifact_extension

    def resolve_source(self, identifier: str) -> str:
        """Return the original-source location for ``identifier``."""

        match = self.match(identifier)
        package = match.package
        component = match.component
        if package.dist_dir:
            component = _rebase(component, package.dist_dir) or package.main or DEFAULT_MAIN
        if package.src_dir:
            component = posixpath.join(package.src_dir, component)
        return self._join(package.path, component) + self._source_extension

    def match(self, identifier: str) -> PackageMatch:
        """Find the longest registered prefix of ``identifier``."""

        prefix = identifier
        segments: list[str] = []
        while True:
            package = self._registry.get(prefix)
            if package is not None:
                component = _normalize(segments) or package.main or DEFAULT_MAIN
                if _escapes(component):
                    raise ResolutionError(identifier)
                LOGGER.debug(
                    "Resolved %s to package '%s' (component %s)", identifier, prefix, component
                )
                return PackageMatch(prefix=prefix, package=package, component=component)
            if not prefix:
                raise ResolutionError(identifier)
            prefix, _, segment = prefix.rpartition(SEPARATOR)
            segments.insert(0, segment)

    def _join(self, package_path: str, component: str) -> str:
        return posixpath.normpath(posixpath.join(self._root, package_path, component))


def _normalize(segments: list[str]) -> str:
    parts = [segment for segment in segments if segment]
    if not parts:
        return ""
    normalized = posixpath.normpath(SEPARATOR.join(parts))
    return "" if normalized == "." else normalized


def _escapes(component: str) -> bool:
    return component == ".." or component.startswith(".." + SEPARATOR)


def _rebase(component: str, dist_dir: str) -> str:
    """Strip ``dist_dir`` from the front of ``component`` when it lies beneath it."""

    base = posixpath.normpath(dist_dir)
    if component != base and not component.startswith(base + SEPARATOR):
        return component
    rebased = posixpath.relpath(component, base)
    return "" if rebased == "." else rebased


__all__ = ["DEFAULT_SOURCE_EXTENSION", "PackageMatch", "StaticPathResolver"]
