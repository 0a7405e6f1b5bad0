"""
Tests for the file-backed configuration store.
"""

import json
import time
from pathlib import Path
from typing import Any, Dict
from unittest.mock import patch

import pytest
import yaml

from layerconf.core.domain.exceptions import PersistenceWarning
from layerconf.infrastructure.config.store import (
    PersistentStore, dump_document, parse_document
)


@pytest.fixture
def snapshot() -> Dict[str, Any]:
    return {
        "host": "localhost",
        "port": 19132,
        "geminiApiKey": "secret",
        "webhookUrl": "https://hooks.example.org/x",
        "adminUsers": ["alice"],
        "experimentalFeatures": {"advancedAI": False},
    }


class TestDocuments:
    """Test cases for document encoding."""

    def test_json_is_pretty_printed(self) -> None:
        assert dump_document({"a": 1}) == '{\n  "a": 1\n}\n'

    def test_yaml_suffix(self) -> None:
        text = dump_document({"a": 1, "b": [1, 2]}, ".yaml")

        assert yaml.safe_load(text) == {"a": 1, "b": [1, 2]}
        assert parse_document(text, ".YML") == {"a": 1, "b": [1, 2]}

    def test_invalid_documents(self) -> None:
        with pytest.raises(ValueError, match="Invalid JSON"):
            parse_document("{broken", ".json")

        with pytest.raises(ValueError, match="Invalid YAML"):
            parse_document("a: [1, 2", ".yaml")


class TestPersistentStore:
    """Test cases for PersistentStore."""

    def test_load_missing_file(self, config_path: Path) -> None:
        store = PersistentStore(config_path)

        assert store.load() == {}
        assert config_path.parent.is_dir()
        assert store.failures == 0

    def test_save_strips_secrets(self, config_path: Path, snapshot: Dict[str, Any]) -> None:
        store = PersistentStore(config_path)

        assert store.save(snapshot) is True

        text = config_path.read_text(encoding="utf-8")
        data = json.loads(text)
        assert data == {
            "host": "localhost",
            "port": 19132,
            "experimentalFeatures": {"advancedAI": False},
        }
        assert text.startswith('{\n  "host"')
        assert "secret" not in text
        assert snapshot["geminiApiKey"] == "secret"

    def test_save_then_load(self, config_path: Path, snapshot: Dict[str, Any]) -> None:
        store = PersistentStore(config_path)
        store.save(snapshot)

        assert store.load()["port"] == 19132
        assert "geminiApiKey" not in store.load()

    def test_custom_secret_fields(self, config_path: Path, snapshot: Dict[str, Any]) -> None:
        store = PersistentStore(config_path, secret_fields=["host"])
        store.save(snapshot)

        data = json.loads(config_path.read_text(encoding="utf-8"))
        assert "host" not in data
        assert data["geminiApiKey"] == "secret"

    def test_yaml_store(self, tmp_path: Path, snapshot: Dict[str, Any]) -> None:
        path = tmp_path / "bot-config.yaml"
        store = PersistentStore(path)

        assert store.save(snapshot) is True
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["port"] == 19132
        assert store.load()["host"] == "localhost"

    def test_load_corrupt_file_warns(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json", encoding="utf-8")
        store = PersistentStore(config_path)

        with pytest.warns(PersistenceWarning, match="Failed to load config file"):
            assert store.load() == {}

        assert store.failures == 1

    def test_load_non_mapping_warns(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.warns(PersistenceWarning, match="expected a mapping"):
            assert PersistentStore(config_path).load() == {}

    def test_load_empty_file(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("  \n", encoding="utf-8")

        assert PersistentStore(config_path).load() == {}

    def test_save_failure_warns(self, tmp_path: Path, snapshot: Dict[str, Any]) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = PersistentStore(blocker / "bot-config.json")

        with pytest.warns(PersistenceWarning, match="Failed to save config file"):
            assert store.save(snapshot) is False

        assert store.failures == 1

    def test_unreadable_file_warns(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{}", encoding="utf-8")
        store = PersistentStore(config_path)

        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            with pytest.warns(PersistenceWarning, match="denied"):
                assert store.load() == {}

    def test_stale_generation_is_skipped(self, config_path: Path) -> None:
        store = PersistentStore(config_path)

        assert store.save({"tickRate": 10}, generation=2) is True
        assert store.save({"tickRate": 5}, generation=1) is True

        assert json.loads(config_path.read_text(encoding="utf-8")) == {"tickRate": 10}

    def test_no_temporary_file_left(self, config_path: Path) -> None:
        store = PersistentStore(config_path)
        store.save({"a": 1})

        assert sorted(p.name for p in config_path.parent.iterdir()) == ["bot-config.json"]

    @pytest.mark.asyncio
    async def test_async_round_trip(self, config_path: Path, snapshot: Dict[str, Any]) -> None:
        store = PersistentStore(config_path)

        assert await store.save_async(snapshot, 1) is True
        loaded = await store.load_async()

        assert loaded["host"] == "localhost"
        assert "adminUsers" not in loaded

    @pytest.mark.asyncio
    async def test_save_timeout_warns(self, config_path: Path) -> None:
        store = PersistentStore(config_path, io_timeout=0.05)

        with patch.object(store, "save", side_effect=lambda *args: time.sleep(0.3)):
            with pytest.warns(PersistenceWarning, match="timed out"):
                assert await store.save_async({"a": 1}) is False

        assert store.failures == 1
