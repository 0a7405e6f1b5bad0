"""
File-backed persistence of the redacted configuration snapshot.

The store format follows the file suffix: ``.yaml``/``.yml`` use PyYAML,
anything else is pretty-printed JSON. Loading and saving are best-effort:
failures are reported as PersistenceWarning and never raised.
"""

import asyncio
import json
import logging
import os
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml

from ...core.domain.exceptions import PersistenceWarning
from ...core.interfaces.storage import IConfigStore
from .schema import SECRET_FIELDS, redact

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = ('.yaml', '.yml')


def dump_document(data: Dict[str, Any], suffix: str = '.json') -> str:
    """Serialize a mapping in the format implied by ``suffix``."""
    if suffix.lower() in _YAML_SUFFIXES:
        return yaml.safe_dump(data, default_flow_style=False, indent=2, sort_keys=False)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def parse_document(text: str, suffix: str = '.json') -> Any:
    """
    Parse a document in the format implied by ``suffix``.

    Raises:
        ValueError: If the content is not valid JSON/YAML
    """
    if suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML: {e}")

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}")


def _report(message: str) -> None:
    logger.warning(message)
    warnings.warn(message, PersistenceWarning, stacklevel=3)


class PersistentStore(IConfigStore):
    """
    Loads and saves the configuration snapshot at a fixed path.

    Secret keys are stripped before every write.
    """

    def __init__(
        self,
        path: Union[str, Path],
        secret_fields: Iterable[str] = SECRET_FIELDS,
        io_timeout: float = 5.0
    ) -> None:
        self._path = Path(path)
        self._secret_fields = tuple(secret_fields)
        self._io_timeout = io_timeout
        self._failures = 0

        # A write that outlived its timeout must not overwrite a newer one
        self._write_lock = threading.Lock()
        self._written_generation = -1

    @property
    def path(self) -> Path:
        return self._path

    @property
    def secret_fields(self) -> tuple:
        return self._secret_fields

    @property
    def failures(self) -> int:
        """Number of load/save attempts that ended in a warning."""
        return self._failures

    def load(self) -> Dict[str, Any]:
        """
        Load the stored snapshot.

        Returns:
            The stored mapping; an empty dict if the file is absent,
            unreadable or malformed.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            text = self._path.read_text(encoding='utf-8')
        except FileNotFoundError:
            logger.debug(f"No stored configuration at {self._path}")
            return {}
        except OSError as e:
            self._failures += 1
            _report(f"Failed to load config file {self._path}: {e}")
            return {}

        if not text.strip():
            return {}

        try:
            data = parse_document(text, self._path.suffix)
        except ValueError as e:
            self._failures += 1
            _report(f"Failed to load config file {self._path}: {e}")
            return {}

        if data is None:
            return {}

        if not isinstance(data, dict):
            self._failures += 1
            _report(f"Failed to load config file {self._path}: "
                    f"expected a mapping, got {type(data).__name__}")
            return {}

        logger.info(f"Loaded {len(data)} stored configuration values from {self._path}")
        return data

    def save(self, snapshot: Dict[str, Any], generation: Optional[int] = None) -> bool:
        """
        Write the snapshot without its secret keys, replacing prior content.

        Args:
            snapshot: Configuration to persist
            generation: Optional sequence number; a save older than the last
                written generation is skipped

        Returns:
            True if the file holds this snapshot or a newer one.
        """
        clean = redact(snapshot, self._secret_fields)

        with self._write_lock:
            if generation is not None and generation <= self._written_generation:
                logger.debug(f"Skipping stale write of generation {generation}")
                return True

            try:
                content = dump_document(clean, self._path.suffix)
                self._path.parent.mkdir(parents=True, exist_ok=True)

                # Write to temporary file then rename for atomicity
                temp_path = self._path.with_name(self._path.name + '.tmp')
                with open(temp_path, 'w', encoding='utf-8') as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())

                temp_path.replace(self._path)

            except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
                self._failures += 1
                _report(f"Failed to save config file {self._path}: {e}")
                return False

            if generation is not None:
                self._written_generation = generation

        logger.debug(f"Saved {len(clean)} configuration values to {self._path}")
        return True

    async def load_async(self) -> Dict[str, Any]:
        """Load in a worker thread, giving up after the I/O timeout."""
        result = await self._run_bounded(self.load, "load")
        return result if result is not None else {}

    async def save_async(self, snapshot: Dict[str, Any],
                         generation: Optional[int] = None) -> bool:
        """Save in a worker thread, giving up after the I/O timeout."""
        result = await self._run_bounded(lambda: self.save(snapshot, generation), "save")
        return bool(result)

    async def _run_bounded(self, func: Any, operation: str) -> Optional[Any]:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout=self._io_timeout)
        except asyncio.TimeoutError:
            self._failures += 1
            _report(f"Config file {operation} of {self._path} timed out "
                    f"after {self._io_timeout}s")
            return None
