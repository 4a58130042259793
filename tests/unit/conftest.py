from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest


class FakeFileLoader:
    """In-memory file loader that records reads and can be held open."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files = dict(files or {})
        self.reads: list[str] = []
        self.gate: asyncio.Event | None = None

    async def load_file(self, location: str) -> str:
        self.reads.append(location)
        if self.gate is not None:
            await self.gate.wait()
        try:
            return self.files[location]
        except KeyError as exc:
            raise FileNotFoundError(location) from exc


class RecordingInvoker:
    """Code invoker that turns source text into a namespace and counts calls."""

    def __init__(self) -> None:
        self.sources: list[str] = []

    async def invoke_code(self, source: str) -> SimpleNamespace:
        self.sources.append(source)
        await asyncio.sleep(0)
        return SimpleNamespace(source=source)


class DictModuleLoader:
    """Module loader backed by a mapping, recording every request."""

    def __init__(self, modules: dict[str, object] | None = None) -> None:
        self.modules = dict(modules or {})
        self.requests: list[str] = []

    async def load_module(self, identifier: str) -> object:
        self.requests.append(identifier)
        await asyncio.sleep(0)
        try:
            return self.modules[identifier]
        except KeyError as exc:
            raise LookupError(f"unknown module {identifier}") from exc


@pytest.fixture()
def file_loader() -> FakeFileLoader:
    return FakeFileLoader()


@pytest.fixture()
def recording_invoker() -> RecordingInvoker:
    return RecordingInvoker()
