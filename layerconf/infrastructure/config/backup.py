"""
Point-in-time backups of the public configuration.

Each backup is a new JSON artifact in the backup directory:

    config-backup-<id>.json  ->  {backupId, createdAt, description, checksum, config}

``config`` is the redacted snapshot and ``checksum`` is the SHA-256 of its
canonical JSON form. Restoring goes through the registry's normal update
path, so a restored snapshot is fully validated.
"""

import asyncio
import hashlib
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from ...core.domain.exceptions import BackupError
from .registry import ConfigurationRegistry

logger = logging.getLogger(__name__)

T = TypeVar('T')

BACKUP_PREFIX = "config-backup-"
BACKUP_SUFFIX = ".json"

_VALID_ID = re.compile(r'^[A-Za-z0-9_\-]+$')


def make_backup_id(timestamp: datetime) -> str:
    """Filesystem-safe identifier for a UTC timestamp."""
    iso = timestamp.astimezone(timezone.utc).replace(tzinfo=None).isoformat(
        timespec='microseconds') + 'Z'
    return iso.replace(':', '-').replace('.', '-')


def calculate_checksum(config: Dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON encoding of ``config``."""
    canonical = json.dumps(config, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


class BackupManager:
    """
    Creates, lists and restores configuration backups.

    Backups are never overwritten; an identifier collision gets a numeric
    suffix instead.
    """

    def __init__(
        self,
        registry: ConfigurationRegistry,
        backup_dir: Union[str, Path],
        max_backups: Optional[int] = None,
        io_timeout: float = 5.0
    ) -> None:
        """
        Initialize the backup manager.

        Args:
            registry: Registry whose public configuration is backed up
            backup_dir: Directory to store backups
            max_backups: Number of backups to retain; None keeps all
            io_timeout: Seconds allowed for each artifact read or write
        """
        if max_backups is not None and max_backups < 1:
            raise ValueError(f"max_backups must be at least 1, got {max_backups}")

        self._registry = registry
        self.backup_dir = Path(backup_dir)
        self.max_backups = max_backups
        self._io_timeout = io_timeout

    async def backup(self, description: Optional[str] = None) -> str:
        """
        Write the current public configuration to a new artifact.

        Returns:
            Identifier of the new backup

        Raises:
            BackupError: If the artifact could not be written
        """
        config = self._registry.get_public_config()
        timestamp = datetime.now(timezone.utc)

        try:
            checksum = calculate_checksum(config)
        except (TypeError, ValueError) as e:
            raise BackupError(f"Cannot serialize configuration for backup: {e}")

        artifact = {
            "backupId": make_backup_id(timestamp),
            "createdAt": timestamp.isoformat(timespec='microseconds'),
            "description": description or "Configuration backup",
            "checksum": checksum,
            "config": config,
        }

        backup_id = await self._run(lambda: self._write_artifact(artifact))
        logger.info(f"Created configuration backup: {backup_id}")

        if self.max_backups is not None:
            await self._run(self._rotate_backups)

        return backup_id

    async def restore(self, backup_id: str) -> Dict[str, Any]:
        """
        Apply a backup through the registry's update path.

        Returns:
            The configuration after the restore

        Raises:
            BackupError: If the artifact is missing or corrupt
            ValidationError: If the backed-up values fail validation; the
                live configuration is left untouched
        """
        artifact = await self._run(lambda: self._read_artifact(backup_id))
        config = artifact["config"]

        if calculate_checksum(config) != artifact["checksum"]:
            raise BackupError(f"Backup checksum mismatch: {backup_id}", backup_id)

        restored = await self._registry.update_config(config)
        logger.info(f"Restored configuration from backup: {backup_id}")
        return restored

    def list_backups(self) -> List[Dict[str, Any]]:
        """
        List readable backups, newest first.

        Returns:
            Backup info dictionaries (without the configuration itself)
        """
        if not self.backup_dir.exists():
            return []

        backups = []
        for path in self.backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            backup_id = path.name[len(BACKUP_PREFIX):-len(BACKUP_SUFFIX)]
            try:
                backups.append(self._info(backup_id, self._read_artifact(backup_id), path))
            except BackupError as e:
                logger.warning(f"Skipping unreadable backup {path.name}: {e}")

        backups.sort(key=lambda info: (info["created_at"], info["backup_id"]), reverse=True)
        return backups

    def get_backup_info(self, backup_id: str) -> Optional[Dict[str, Any]]:
        """
        Get information about a backup.

        Returns:
            Backup info dictionary or None if not found or unreadable
        """
        try:
            artifact = self._read_artifact(backup_id)
        except BackupError as e:
            logger.debug(f"No backup info for {backup_id}: {e}")
            return None
        return self._info(backup_id, artifact, self._path_for(backup_id))

    def delete_backup(self, backup_id: str) -> bool:
        """
        Delete a backup.

        Returns:
            True if deletion was successful, False otherwise
        """
        try:
            path = self._path_for(backup_id)
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"Backup not found: {backup_id}")
            return False
        except (BackupError, OSError) as e:
            logger.error(f"Failed to delete backup {backup_id}: {e}")
            return False

        logger.info(f"Deleted backup: {backup_id}")
        return True

    def _path_for(self, backup_id: str) -> Path:
        if not _VALID_ID.match(backup_id):
            raise BackupError(f"Invalid backup id: {backup_id!r}", backup_id)
        return self.backup_dir / f"{BACKUP_PREFIX}{backup_id}{BACKUP_SUFFIX}"

    def _write_artifact(self, artifact: Dict[str, Any]) -> str:
        base_id = artifact["backupId"]

        def content_for(backup_id: str) -> str:
            return json.dumps({**artifact, "backupId": backup_id},
                              indent=2, ensure_ascii=False) + "\n"

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(f"Cannot create backup directory {self.backup_dir}: {e}")

        backup_id = base_id
        counter = 0
        while True:
            path = self._path_for(backup_id)
            try:
                with open(path, 'x', encoding='utf-8') as f:
                    f.write(content_for(backup_id))
                return backup_id
            except FileExistsError:
                counter += 1
                backup_id = f"{base_id}-{counter}"
            except OSError as e:
                raise BackupError(f"Failed to write backup {path.name}: {e}", backup_id)

    def _read_artifact(self, backup_id: str) -> Dict[str, Any]:
        path = self._path_for(backup_id)

        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            raise BackupError(f"Backup not found: {backup_id}", backup_id)
        except OSError as e:
            raise BackupError(f"Failed to read backup {backup_id}: {e}", backup_id)

        try:
            artifact = json.loads(text)
        except json.JSONDecodeError as e:
            raise BackupError(f"Corrupt backup {backup_id}: {e}", backup_id)

        if (not isinstance(artifact, dict)
                or not isinstance(artifact.get("config"), dict)
                or not isinstance(artifact.get("checksum"), str)):
            raise BackupError(f"Corrupt backup {backup_id}: missing config or checksum", backup_id)

        return artifact

    def _rotate_backups(self) -> None:
        """Delete the oldest backups beyond max_backups."""
        assert self.max_backups is not None

        for info in self.list_backups()[self.max_backups:]:
            self.delete_backup(info["backup_id"])

    @staticmethod
    def _info(backup_id: str, artifact: Dict[str, Any], path: Path) -> Dict[str, Any]:
        return {
            "backup_id": backup_id,
            "backup_path": str(path),
            "created_at": str(artifact.get("createdAt", "")),
            "description": artifact.get("description"),
            "checksum": artifact["checksum"],
            "keys": len(artifact["config"]),
        }

    async def _run(self, func: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout=self._io_timeout)
        except asyncio.TimeoutError:
            raise BackupError(f"Backup I/O in {self.backup_dir} timed out after {self._io_timeout}s")
