"""Source retrieval: file access plus the memoized source cache."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .cache import MemoCache
from .errors import ConfigurationError, LoadError
from .interfaces import FileLoader, PathResolver

LOGGER = logging.getLogger(__name__)


class DirectoryFileLoader:
    """Read-only access to text files beneath a base directory."""

    def __init__(self, directory: Path | str, *, encoding: str = "utf-8") -> None:
        self._directory = Path(directory).expanduser()
        self._encoding = encoding

    async def load_file(self, location: str) -> str:
        path = self._directory / location
        return await asyncio.to_thread(self._read, path)

    def _read(self, path: Path) -> str:
        with path.open("r", encoding=self._encoding) as handle:
            return handle.read()


class SourceLoader:
    """Load module source text, at most once per physical location."""

    def __init__(
        self,
        path_resolver: PathResolver | None = None,
        file_loader: FileLoader | None = None,
    ) -> None:
        self._path_resolver = path_resolver
        self._file_loader = file_loader
        self._cache: MemoCache[str] = MemoCache("source")

    async def load_source(self, identifier: str) -> str:
        """Return the source text for ``identifier``.

        Resolution errors propagate as-is. Read failures are wrapped in
        :class:`LoadError` and stay cached for the location.
        """

        location = (
            self._path_resolver.resolve_source(identifier)
            if self._path_resolver is not None
            else identifier
        )
        return await self._cache.load(location, lambda: self._read(identifier, location))

    async def _read(self, identifier: str, location: str) -> str:
        try:
            if self._file_loader is None:
                raise ConfigurationError("file_loader is not defined")
            source = await self._file_loader.load_file(location)
        except Exception as exc:
            LOGGER.debug("Failed to load source %s from %s: %s", identifier, location, exc)
            raise LoadError(identifier, location, exc) from exc
        LOGGER.debug("Loaded source %s from %s (%d chars)", identifier, location, len(source))
        return source


__all__ = ["DirectoryFileLoader", "SourceLoader"]
