"""
Storage interface for configuration snapshots.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional


class IConfigStore(ABC):
    """Durable home of the redacted configuration snapshot."""

    @property
    @abstractmethod
    def path(self) -> Path:
        """Location of the stored snapshot."""
        pass

    @abstractmethod
    def load(self) -> Dict[str, Any]:
        """
        Load the stored snapshot.

        Returns:
            The stored mapping, or an empty dict when nothing usable exists.
            Must not raise.
        """
        pass

    @abstractmethod
    def save(self, snapshot: Dict[str, Any], generation: Optional[int] = None) -> bool:
        """
        Persist a snapshot with secret keys removed.

        Returns:
            True if the stored content reflects this snapshot or a newer
            generation. Must not raise.
        """
        pass

    @abstractmethod
    async def load_async(self) -> Dict[str, Any]:
        """Load the stored snapshot without blocking the event loop."""
        pass

    @abstractmethod
    async def save_async(self, snapshot: Dict[str, Any],
                         generation: Optional[int] = None) -> bool:
        """Persist a snapshot without blocking the event loop."""
        pass
