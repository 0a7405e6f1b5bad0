"""
Shared fixtures for the configuration registry tests.
"""

import asyncio
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from layerconf.core.interfaces.storage import IConfigStore
from layerconf.infrastructure.config.registry import ConfigurationRegistry
from layerconf.infrastructure.config.store import PersistentStore

API_KEY = "test-gemini-key-0123456789"


class RecordingStore(IConfigStore):
    """In-memory store that records every save in order."""

    def __init__(self, path: str = "memory.json", delay: float = 0.0) -> None:
        self._path = Path(path)
        self.delay = delay
        self.saved: List[Tuple[Optional[int], Dict[str, Any]]] = []
        self.stored: Dict[str, Any] = {}
        self.fail = False
        self.raise_error = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Any]:
        return dict(self.stored)

    def save(self, snapshot: Dict[str, Any], generation: Optional[int] = None) -> bool:
        if self.fail:
            return False
        self.saved.append((generation, dict(snapshot)))
        self.stored = dict(snapshot)
        return True

    async def load_async(self) -> Dict[str, Any]:
        return self.load()

    async def save_async(self, snapshot: Dict[str, Any],
                         generation: Optional[int] = None) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raise_error:
            raise RuntimeError("store exploded")
        return self.save(snapshot, generation)


@pytest.fixture
def environment() -> Dict[str, str]:
    """Environment snapshot that satisfies the required keys."""
    return {"GEMINI_API_KEY": API_KEY}


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "bot-config.json"


@pytest.fixture
def store(config_path: Path) -> PersistentStore:
    return PersistentStore(config_path)


@pytest_asyncio.fixture
async def registry(store: PersistentStore,
                   environment: Dict[str, str]) -> AsyncGenerator[ConfigurationRegistry, None]:
    """Initialized registry backed by a temporary file."""
    registry = ConfigurationRegistry(store, environment=environment)
    await registry.initialize()
    yield registry
    await registry.stop()
