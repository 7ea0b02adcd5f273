import asyncio
import pytest

from cbt.core.cache import AutosaveStorage, MemoryCacheBackend
from cbt.services.answer_store import AnswerStore
from tests.helpers.fakes import FakeClock


class FlakyStorage(AutosaveStorage):
    def __init__(self):
        super().__init__(MemoryCacheBackend(), ttl=0)
        self.fail = True

    async def save(self, key, payload):
        if self.fail:
            raise ConnectionError("storage offline")
        return await super().save(key, payload)


class SlowFirstStorage(AutosaveStorage):
    """First save is slow; later saves complete immediately."""

    def __init__(self):
        super().__init__(MemoryCacheBackend(), ttl=0)
        self.saves = []

    async def save(self, key, payload):
        if not self.saves:
            self.saves.append(payload["revision"])
            await asyncio.sleep(0.05)
        else:
            self.saves.append(payload["revision"])
        return await super().save(key, payload)


def test_write_upserts_and_stamps_last_saved():
    clock = FakeClock()
    store = AnswerStore("autosave:exam-1:sub-1", storage=AutosaveStorage(MemoryCacheBackend()), clock=clock)

    first = store.write("q1", "Transport")
    clock.advance(seconds=5)
    second = store.write("q1", "Network")

    assert first.last_saved < second.last_saved
    assert store.read("q1").answer == "Network"
    assert store.answered_ids() == {"q1"}
    assert store.dirty


def test_snapshot_is_a_copy():
    store = AnswerStore("k", storage=AutosaveStorage(MemoryCacheBackend()), clock=FakeClock())
    store.write("q1", "Network")

    snap = store.snapshot()
    snap["q1"].answer = "tampered"

    assert store.read("q1").answer == "Network"


@pytest.mark.asyncio
async def test_flush_persists_latest_revision_and_restore_reads_it():
    storage = AutosaveStorage(MemoryCacheBackend(), ttl=0)
    clock = FakeClock()
    store = AnswerStore("autosave:exam-1:sub-1", storage=storage, clock=clock)

    store.write("q1", "Network")
    store.write("q2", "Random Access Memory")
    await store.drain()
    assert not store.dirty

    reloaded = AnswerStore("autosave:exam-1:sub-1", storage=storage, clock=clock)
    restored = await reloaded.restore()

    assert restored == 2
    assert reloaded.read("q1").answer == "Network"
    assert reloaded.read("q2").answer == "Random Access Memory"


@pytest.mark.asyncio
async def test_slow_early_flush_never_overwrites_later_write():
    storage = SlowFirstStorage()
    store = AnswerStore("k", storage=storage, clock=FakeClock())

    store.write("q1", "Transport")
    await asyncio.sleep(0)
    store.write("q1", "Network")
    await store.drain()

    payload = await storage.load("k")
    assert payload["answers"]["q1"]["answer"] == "Network"
    assert payload["revision"] == 2


@pytest.mark.asyncio
async def test_failed_flush_keeps_ledger_and_retries_on_next_write():
    storage = FlakyStorage()
    store = AnswerStore("k", storage=storage, clock=FakeClock())

    store.write("q1", "Network")
    await store.drain()
    assert store.dirty
    assert store.read("q1").answer == "Network"

    storage.fail = False
    store.write("q2", "Random Access Memory")
    await store.drain()

    assert not store.dirty
    payload = await storage.load("k")
    assert set(payload["answers"]) == {"q1", "q2"}


def test_freeze_ignores_later_writes_and_excludes_late_answers():
    clock = FakeClock()
    store = AnswerStore("k", storage=AutosaveStorage(MemoryCacheBackend()), clock=clock)
    deadline = clock.now

    store.write("q1", "Network")
    clock.advance(seconds=1)
    store.write("q2", "written after time ran out")

    ledger = store.freeze(deadline=deadline)

    assert set(ledger) == {"q1"}
    assert store.frozen
    assert store.write("q3", "too late") is None
    assert store.read("q3") is None


@pytest.mark.asyncio
async def test_restore_keeps_newer_local_write():
    storage = AutosaveStorage(MemoryCacheBackend(), ttl=0)
    clock = FakeClock()
    old = AnswerStore("k", storage=storage, clock=clock)
    old.write("q1", "Transport")
    await old.flush()

    clock.advance(seconds=10)
    fresh = AnswerStore("k", storage=storage, clock=clock)
    fresh.write("q1", "Network")
    await fresh.restore()

    assert fresh.read("q1").answer == "Network"
    assert fresh.dirty


@pytest.mark.asyncio
async def test_discard_removes_durable_copy():
    storage = AutosaveStorage(MemoryCacheBackend(), ttl=0)
    store = AnswerStore("k", storage=storage, clock=FakeClock())
    store.write("q1", "Network")
    await store.drain()

    await store.discard()

    assert await storage.load("k") is None
