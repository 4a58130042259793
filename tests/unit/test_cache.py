from __future__ import annotations

import asyncio

import pytest

from modrun.cache import MemoCache


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_load() -> None:
    cache: MemoCache[str] = MemoCache()
    calls: list[str] = []
    release = asyncio.Event()

    async def _load() -> str:
        calls.append("load")
        await release.wait()
        return "value"

    first = asyncio.create_task(cache.load("key", _load))
    second = asyncio.create_task(cache.load("key", _load))
    await asyncio.sleep(0)
    release.set()

    assert await asyncio.gather(first, second) == ["value", "value"]
    assert calls == ["load"]


@pytest.mark.asyncio
async def test_failures_are_permanent() -> None:
    cache: MemoCache[str] = MemoCache()
    calls = 0

    async def _load() -> str:
        nonlocal calls
        calls += 1
        raise OSError("disk gone")

    for _ in range(2):
        with pytest.raises(OSError, match="disk gone"):
            await cache.load("key", _load)

    assert calls == 1


@pytest.mark.asyncio
async def test_alias_shares_entry() -> None:
    cache: MemoCache[int] = MemoCache()

    async def _load() -> int:
        return 42

    entry = cache.start("real", _load)
    cache.alias("alias", entry)

    assert cache.get("alias") is entry
    assert await cache.load("alias", _load) == 42
    assert sorted(cache) == ["alias", "real"]


@pytest.mark.asyncio
async def test_alias_refuses_to_rebind_existing_key() -> None:
    cache: MemoCache[int] = MemoCache()

    async def _one() -> int:
        return 1

    async def _two() -> int:
        return 2

    cache.start("a", _one)
    other = cache.start("b", _two)

    with pytest.raises(KeyError):
        cache.alias("a", other)
    await asyncio.gather(cache.load("a", _one), cache.load("b", _two))


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_load() -> None:
    cache: MemoCache[str] = MemoCache()
    release = asyncio.Event()

    async def _load() -> str:
        await release.wait()
        return "done"

    impatient = asyncio.create_task(cache.load("key", _load))
    await asyncio.sleep(0)
    impatient.cancel()
    with pytest.raises(asyncio.CancelledError):
        await impatient

    release.set()
    assert await cache.load("key", _load) == "done"
