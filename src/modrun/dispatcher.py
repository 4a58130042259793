"""Strategy dispatcher choosing between native and custom module loading."""

from __future__ import annotations

import asyncio
import importlib
import logging
from collections.abc import Awaitable, Callable

from .errors import CapabilityAbsentError, ConfigurationError, UnknownStrategyError
from .interfaces import ModuleLoader
from .types import Bindings, LoaderStrategy

LOGGER = logging.getLogger(__name__)

AsyncImporter = Callable[[str], Awaitable[Bindings]]
SyncImporter = Callable[[str], Bindings]


def importlib_sync(identifier: str) -> Bindings:
    """Native synchronous loader backed by the interpreter's import system."""

    return importlib.import_module(_dotted(identifier))


async def importlib_async(identifier: str) -> Bindings:
    """Native asynchronous loader running the import in a worker thread."""

    return await asyncio.to_thread(importlib.import_module, _dotted(identifier))


def _dotted(identifier: str) -> str:
    return identifier.strip("/").replace("/", ".")


class StrategyModuleLoader:
    """Load modules through whichever capability the host provides.

    While the strategy is ``AUTO`` each call probes native-async, native-sync
    and custom loading in that order, moving on only when a capability is
    absent. The first attempt that succeeds, or fails for any other reason,
    pins the strategy for the lifetime of the instance.
    """

    def __init__(
        self,
        custom_loader: ModuleLoader | None = None,
        *,
        native_async: AsyncImporter | None = None,
        native_sync: SyncImporter | None = None,
        strategy: LoaderStrategy = LoaderStrategy.AUTO,
    ) -> None:
        self.custom_loader = custom_loader
        self._native_async = native_async
        self._native_sync = native_sync
        self._strategy = strategy

    @property
    def strategy(self) -> LoaderStrategy:
        return self._strategy

    async def load_module(self, identifier: str) -> Bindings:
        strategy = self._strategy
        if strategy is LoaderStrategy.AUTO:
            return await self._probe(identifier)
        if strategy is LoaderStrategy.NATIVE_ASYNC:
            return await self._import_async(identifier)
        if strategy is LoaderStrategy.NATIVE_SYNC:
            return self._import_sync(identifier)
        if strategy is LoaderStrategy.CUSTOM:
            return await self._load_custom(identifier)
        raise UnknownStrategyError(strategy)

    async def _probe(self, identifier: str) -> Bindings:
        try:
            module = await self._import_async(identifier)
        except CapabilityAbsentError:
            LOGGER.debug("Native async loading unavailable; trying native sync")
        except Exception:
            self._pin(LoaderStrategy.NATIVE_ASYNC)
            raise
        else:
            self._pin(LoaderStrategy.NATIVE_ASYNC)
            return module

        try:
            module = self._import_sync(identifier)
        except CapabilityAbsentError:
            LOGGER.debug("Native sync loading unavailable; falling back to custom loader")
        except Exception:
            self._pin(LoaderStrategy.NATIVE_SYNC)
            raise
        else:
            self._pin(LoaderStrategy.NATIVE_SYNC)
            return module

        self._pin(LoaderStrategy.CUSTOM)
        return await self._load_custom(identifier)

    def _pin(self, strategy: LoaderStrategy) -> None:
        if self._strategy is not LoaderStrategy.AUTO:
            return
        LOGGER.info("Module loading strategy pinned to %s", strategy.value)
        self._strategy = strategy

    async def _import_async(self, identifier: str) -> Bindings:
        if self._native_async is None:
            raise CapabilityAbsentError(LoaderStrategy.NATIVE_ASYNC.value)
        return await self._native_async(identifier)

    def _import_sync(self, identifier: str) -> Bindings:
        if self._native_sync is None:
            raise CapabilityAbsentError(LoaderStrategy.NATIVE_SYNC.value)
        return self._native_sync(identifier)

    async def _load_custom(self, identifier: str) -> Bindings:
        if self.custom_loader is None:
            raise ConfigurationError("custom_loader is not defined")
        return await self.custom_loader.load_module(identifier)


__all__ = [
    "AsyncImporter",
    "StrategyModuleLoader",
    "SyncImporter",
    "importlib_async",
    "importlib_sync",
]
