"""Composition root wiring resolver, caches, pipeline, dispatcher and invoker."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Config
from .dispatcher import (
    AsyncImporter,
    StrategyModuleLoader,
    SyncImporter,
    importlib_async,
    importlib_sync,
)
from .interfaces import FileLoader, ModuleLoader, SourceProcessor
from .invoker import ExecCodeInvoker
from .pipeline import CodeModuleLoader, SourceModuleLoader
from .resolver import StaticPathResolver
from .sources import DirectoryFileLoader, SourceLoader
from .types import Bindings

LOGGER = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Facade over a fully wired loading pipeline."""

    resolver: StaticPathResolver
    file_loader: FileLoader
    source_loader: SourceLoader
    invoker: ExecCodeInvoker
    pipeline: ModuleLoader
    dispatcher: StrategyModuleLoader

    def resolve(self, identifier: str) -> str:
        return self.resolver.resolve(identifier)

    def resolve_source(self, identifier: str) -> str:
        return self.resolver.resolve_source(identifier)

    async def load_source(self, identifier: str) -> str:
        return await self.source_loader.load_source(identifier)

    async def load_module(self, identifier: str) -> Bindings:
        return await self.dispatcher.load_module(identifier)

    async def invoke_code(self, source: str) -> Bindings:
        return await self.invoker.invoke_code(source)


def build_runtime(
    config: Config,
    *,
    file_loader: FileLoader | None = None,
    source_processor: SourceProcessor | None = None,
    native_async: AsyncImporter | None = None,
    native_sync: SyncImporter | None = None,
) -> Runtime:
    """Wire every component described by ``config``.

    Nested dependencies requested by module bodies are routed back through the
    dispatcher, so they share its strategy and the pipeline's caches.
    """

    if config.native_imports:
        native_async = native_async or importlib_async
        native_sync = native_sync or importlib_sync

    resolver = StaticPathResolver(
        config.packages,
        str(config.root),
        source_extension=config.source_extension,
        artifact_extension=config.artifact_extension,
    )
    files = file_loader or DirectoryFileLoader(config.root)
    source_loader = SourceLoader(resolver, files)
    invoker = ExecCodeInvoker()

    pipeline: ModuleLoader
    if config.pipeline == "code":
        pipeline = CodeModuleLoader(resolver, files, invoker)
    else:
        pipeline = SourceModuleLoader(source_loader, invoker, source_processor)

    dispatcher = StrategyModuleLoader(
        pipeline,
        native_async=native_async,
        native_sync=native_sync,
        strategy=config.strategy,
    )
    invoker.module_loader = dispatcher
    LOGGER.debug(
        "Runtime ready: root=%s pipeline=%s strategy=%s packages=%d",
        config.root,
        config.pipeline,
        config.strategy.value,
        len(config.packages),
    )
    return Runtime(
        resolver=resolver,
        file_loader=files,
        source_loader=source_loader,
        invoker=invoker,
        pipeline=pipeline,
        dispatcher=dispatcher,
    )


__all__ = ["Runtime", "build_runtime"]
