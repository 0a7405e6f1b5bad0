"""
Tests for the single-writer persistence queue.
"""

import asyncio

import pytest

from layerconf.infrastructure.config.writer import PersistenceWriter

from conftest import RecordingStore


class TestPersistenceWriter:
    """Test cases for PersistenceWriter."""

    def test_initial_state(self) -> None:
        writer = PersistenceWriter(RecordingStore())

        assert writer.name == "PersistenceWriter"
        assert writer.version == "1.0.0"
        assert writer.is_running is False
        assert writer.pending == 0

    @pytest.mark.asyncio
    async def test_submit_requires_running_writer(self) -> None:
        writer = PersistenceWriter(RecordingStore())

        with pytest.raises(RuntimeError, match="not running"):
            writer.submit({"a": 1})

    @pytest.mark.asyncio
    async def test_writes_in_submission_order(self) -> None:
        store = RecordingStore(delay=0.01)
        writer = PersistenceWriter(store)
        await writer.start()

        futures = [writer.submit({"tickRate": value}) for value in range(1, 6)]
        results = await asyncio.gather(*futures)
        await writer.stop()

        assert results == [True] * 5
        assert [generation for generation, _ in store.saved] == [1, 2, 3, 4, 5]
        assert store.stored == {"tickRate": 5}

    @pytest.mark.asyncio
    async def test_submit_copies_snapshot(self) -> None:
        store = RecordingStore(delay=0.01)
        writer = PersistenceWriter(store)
        await writer.start()

        snapshot = {"allowedCommands": ["help"]}
        writer.submit(snapshot)
        snapshot["allowedCommands"].append("shutdown")
        await writer.drain()
        await writer.stop()

        assert store.stored == {"allowedCommands": ["help"]}

    @pytest.mark.asyncio
    async def test_drain_waits_for_pending_writes(self) -> None:
        store = RecordingStore(delay=0.01)
        writer = PersistenceWriter(store)
        await writer.start()

        writer.submit({"a": 1})
        writer.submit({"a": 2})
        assert writer.pending == 2

        await writer.drain()

        assert writer.pending == 0
        assert len(store.saved) == 2
        await writer.stop()

    @pytest.mark.asyncio
    async def test_failed_write_resolves_false(self) -> None:
        store = RecordingStore()
        store.fail = True
        writer = PersistenceWriter(store)
        await writer.start()

        assert await writer.submit({"a": 1}) is False

        health = await writer.check_health()
        assert health["healthy"] is False
        assert health["details"]["writes_failed"] == 1
        await writer.stop()

    @pytest.mark.asyncio
    async def test_worker_survives_store_exception(self) -> None:
        store = RecordingStore()
        writer = PersistenceWriter(store)
        await writer.start()

        store.raise_error = True
        assert await writer.submit({"a": 1}) is False

        store.raise_error = False
        assert await writer.submit({"a": 2}) is True
        assert store.stored == {"a": 2}
        await writer.stop()

    @pytest.mark.asyncio
    async def test_stop_flushes_queue(self) -> None:
        store = RecordingStore(delay=0.01)
        writer = PersistenceWriter(store)
        await writer.start()

        for value in range(3):
            writer.submit({"a": value})
        await writer.stop()

        assert writer.is_running is False
        assert store.stored == {"a": 2}

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self) -> None:
        writer = PersistenceWriter(RecordingStore())

        await writer.stop()
        await writer.start()
        await writer.start()
        assert writer.is_running is True

        await writer.stop()
        await writer.stop()
        assert writer.is_running is False

    @pytest.mark.asyncio
    async def test_check_health(self) -> None:
        writer = PersistenceWriter(RecordingStore("cfg.json"))
        await writer.start()

        health = await writer.check_health()

        assert health["healthy"] is True
        assert health["status"] == "running"
        assert health["details"]["path"] == "cfg.json"
        await writer.stop()
