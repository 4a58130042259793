"""Module pipelines tying resolution, retrieval and invocation together."""

from __future__ import annotations

import logging

from .cache import MemoCache, settle
from .errors import LoadError
from .interfaces import CodeInvoker, FileLoader, PathResolver, SourceProcessor
from .sources import SourceLoader
from .types import Bindings

LOGGER = logging.getLogger(__name__)


class SourceModuleLoader:
    """Load text modules: source, optional transform, then invoke."""

    def __init__(
        self,
        source_loader: SourceLoader,
        code_invoker: CodeInvoker,
        source_processor: SourceProcessor | None = None,
    ) -> None:
        self._source_loader = source_loader
        self._code_invoker = code_invoker
        self._source_processor = source_processor
        self._cache: MemoCache[Bindings] = MemoCache("source-module")

    async def load_module(self, identifier: str) -> Bindings:
        return await self._cache.load(identifier, lambda: self._load(identifier))

    async def _load(self, identifier: str) -> Bindings:
        source = await self._source_loader.load_source(identifier)
        if self._source_processor is not None:
            source = await self._source_processor.process_source(source, identifier)
        LOGGER.debug("Invoking module %s", identifier)
        return await self._code_invoker.invoke_code(source)


class CodeModuleLoader:
    """Load pre-resolved artifacts, sharing one evaluation per physical location.

    Entries are memoized under both the requested identifier and its resolved
    location, so different identifiers naming the same artifact are folded
    onto a single evaluation.
    """

    def __init__(
        self,
        path_resolver: PathResolver,
        file_loader: FileLoader,
        code_invoker: CodeInvoker,
    ) -> None:
        self._path_resolver = path_resolver
        self._file_loader = file_loader
        self._code_invoker = code_invoker
        self._cache: MemoCache[Bindings] = MemoCache("code-module")

    async def load_module(self, identifier: str) -> Bindings:
        entry = self._cache.get(identifier)
        if entry is None:
            location = self._path_resolver.resolve(identifier)
            entry = self._cache.get(location)
            if entry is not None:
                LOGGER.debug("Aliasing %s to already loaded %s", identifier, location)
            else:
                entry = self._cache.start(location, lambda: self._load(identifier, location))
            self._cache.alias(identifier, entry)
        return await settle(entry)

    async def _load(self, identifier: str, location: str) -> Bindings:
        try:
            code = await self._file_loader.load_file(location)
        except Exception as exc:
            LOGGER.debug("Failed to load artifact %s from %s: %s", identifier, location, exc)
            raise LoadError(identifier, location, exc) from exc
        LOGGER.debug("Invoking artifact %s", location)
        return await self._code_invoker.invoke_code(code)


__all__ = ["CodeModuleLoader", "SourceModuleLoader"]
