"""Exec-based code invoker with cooperative dependency retry.

A module body runs in an isolated globals dict that provides::

    module    namespace holding ``exports`` (may be reassigned)
    exports   the initial exports namespace
    require   synchronous dependency accessor
    import_   asynchronous dependency accessor (``import("x")`` is rewritten)
    define    factory registration: ``define(["dep"], callback)``

``require`` can only hand out modules that are already loaded. When it meets
an unknown identifier it unwinds the body; the invoker loads the dependency
asynchronously and re-executes the body from the start. Bodies must therefore
be safe to re-run up to their first unresolved ``require``.

The ``import(`` rewrite and the dependency pre-scan are textual. They also
touch matching text inside string literals and comments, so a string such as
``"please import (x)"`` comes out as ``"please import_ (x)"``.
"""

from __future__ import annotations

import ast
import asyncio
import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from types import CodeType, MappingProxyType, SimpleNamespace
from typing import Any

from .cache import MemoCache
from .errors import ConfigurationError, InvocationError, ModrunError
from .interfaces import ModuleLoader
from .types import Bindings

LOGGER = logging.getLogger(__name__)

IMPORT_ALIAS = "import_"
MODULE_FILENAME = "<modrun-module>"

_DEPENDENCY_CALL = re.compile(
    r"""\b(?:require|import_?)\s*\(\s*(?P<quote>["'])(?P<name>[^"'\n]+)(?P=quote)\s*\)"""
)
_IMPORT_CALL = re.compile(r"\bimport(?=\s*\()")
_FROM_IMPORT_PREFIX = re.compile(r"^\s*from\s+[\w.]+\s+$")

Factory = Callable[..., Any]


class _DependencyRequired(BaseException):
    """Unwinds a module body that required a module not loaded yet.

    Derives from BaseException so ``except Exception`` blocks inside module
    bodies let it through.
    """

    def __init__(self, identifier: str) -> None:
        super().__init__(identifier)
        self.identifier = identifier


@dataclass(frozen=True)
class Evaluation:
    """Outcome of one attempt at running a body or factory."""

    value: Any = None
    missing: str | None = None

    @property
    def complete(self) -> bool:
        return self.missing is None


@dataclass
class _FactoryRegistration:
    dependencies: list[str]
    callback: Factory


class _ModuleScope:
    """Bindings handed to a single module body invocation."""

    def __init__(self, invoker: ExecCodeInvoker) -> None:
        self._invoker = invoker
        self.exports = SimpleNamespace()
        self.module = SimpleNamespace(exports=self.exports)
        self.factory: _FactoryRegistration | None = None
        self.active = True

    def namespace(self) -> dict[str, Any]:
        return {
            "__name__": "__modrun_module__",
            "__builtins__": __builtins__,
            "module": self.module,
            "exports": self.exports,
            "require": self.require,
            IMPORT_ALIAS: self.import_,
            "define": self.define,
        }

    def require(self, identifier: str) -> Bindings:
        try:
            return self._invoker.modules[identifier]
        except KeyError:
            if not self.active:
                raise ModrunError(
                    f"Module {identifier!r} is not loaded; require() outside module evaluation "
                    "only returns already loaded modules."
                ) from None
            raise _DependencyRequired(identifier) from None

    def import_(self, identifier: str) -> asyncio.Future[Bindings]:
        return asyncio.ensure_future(self._invoker.load_module(identifier))

    def define(
        self,
        dependencies: Iterable[str] | Factory,
        callback: Factory | None = None,
    ) -> None:
        if callback is None:
            if not callable(dependencies):
                raise TypeError("define() requires a callback.")
            dependencies, callback = [], dependencies
        self.factory = _FactoryRegistration(list(dependencies), callback)  # type: ignore[arg-type]


class ExecCodeInvoker:
    """Run module text with ``require``/``import_``/``define`` bindings."""

    def __init__(
        self,
        module_loader: ModuleLoader | None = None,
        modules: Mapping[str, Bindings] | None = None,
    ) -> None:
        self.module_loader = module_loader
        self._modules: dict[str, Bindings] = dict(modules or {})
        self._pending: MemoCache[Bindings] = MemoCache("invoker")

    @property
    def modules(self) -> Mapping[str, Bindings]:
        """Read-only view of the modules ``require`` can hand out synchronously."""

        return MappingProxyType(self._modules)

    async def invoke_code(self, source: str) -> Bindings:
        await self._preload(source)
        code = self._compile(self._preprocess(source))
        scope = _ModuleScope(self)
        try:
            await self._retry(lambda: self._run_body(code, scope))
            if scope.factory is not None:
                return await self._run_factory(scope.factory)
        finally:
            scope.active = False
        return scope.module.exports

    async def load_module(self, identifier: str) -> Bindings:
        """Load ``identifier`` through the module loader and record it locally."""

        if identifier in self._modules:
            return self._modules[identifier]
        return await self._pending.load(identifier, lambda: self._fetch(identifier))

    async def _fetch(self, identifier: str) -> Bindings:
        if self.module_loader is None:
            raise ConfigurationError("module_loader is not defined")
        module = await self.module_loader.load_module(identifier)
        self._modules[identifier] = module
        return module

    async def _retry(self, attempt: Callable[[], Awaitable[Evaluation]]) -> Any:
        while True:
            outcome = await attempt()
            if outcome.complete:
                return outcome.value
            LOGGER.debug("Dependency %s not loaded yet; loading and re-running", outcome.missing)
            await self.load_module(outcome.missing)  # type: ignore[arg-type]

    async def _run_body(self, code: CodeType, scope: _ModuleScope) -> Evaluation:
        try:
            # eval() rather than exec() so bodies using top-level await hand back a coroutine.
            result = eval(code, scope.namespace())
            if inspect.iscoroutine(result):
                await result
        except _DependencyRequired as signal:
            return Evaluation(missing=signal.identifier)
        return Evaluation()

    async def _run_factory(self, factory: _FactoryRegistration) -> Bindings:
        dependencies = await asyncio.gather(
            *(self.load_module(dependency) for dependency in factory.dependencies)
        )

        async def _call() -> Evaluation:
            try:
                value = factory.callback(*dependencies)
                if inspect.isawaitable(value):
                    value = await value
            except _DependencyRequired as signal:
                return Evaluation(missing=signal.identifier)
            return Evaluation(value=value)

        return await self._retry(_call)

    async def _preload(self, source: str) -> None:
        identifiers = dict.fromkeys(
            match.group("name") for match in _DEPENDENCY_CALL.finditer(source)
        )
        missing = [identifier for identifier in identifiers if identifier not in self._modules]
        if not missing:
            return
        LOGGER.debug("Preloading %d dependencies: %s", len(missing), ", ".join(missing))
        results = await asyncio.gather(
            *(self.load_module(identifier) for identifier in missing),
            return_exceptions=True,
        )
        # Failures stay memoized and surface when the body actually asks for them.
        for identifier, result in zip(missing, results):
            if isinstance(result, Exception):
                LOGGER.debug("Preloading %s failed: %s", identifier, result)

    def _preprocess(self, source: str) -> str:
        def _rewrite(match: re.Match[str]) -> str:
            line_start = source.rfind("\n", 0, match.start()) + 1
            if _FROM_IMPORT_PREFIX.match(source[line_start : match.start()]):
                return match.group(0)
            return IMPORT_ALIAS

        return _IMPORT_CALL.sub(_rewrite, source)

    def _compile(self, source: str) -> CodeType:
        try:
            return compile(
                source,
                MODULE_FILENAME,
                "exec",
                flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
                dont_inherit=True,
            )
        except SyntaxError as exc:
            raise InvocationError(
                f"Syntax error in module body: {exc.msg} (line {exc.lineno})",
                cause=exc,
            ) from exc


__all__ = ["Evaluation", "ExecCodeInvoker", "IMPORT_ALIAS"]
