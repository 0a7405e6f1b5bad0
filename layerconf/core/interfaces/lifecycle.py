"""
Lifecycle interfaces for components with startup/shutdown behavior.

The configuration registry and its persistence writer implement these so the
hosting application can start, drain and inspect them the same way.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class IStartable(ABC):
    """Interface for components that can be started."""

    @abstractmethod
    async def start(self) -> None:
        """
        Start the component.

        Implementations must be idempotent: starting an already started
        component is a no-op.
        """
        pass


class IStoppable(ABC):
    """Interface for components that can be stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """
        Stop the component gracefully.

        Pending work (queued writes) is completed before the component
        reports itself stopped.
        """
        pass


class IHealthCheckable(ABC):
    """Interface for components that can report their health status."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Check the health status of the component.

        Returns:
            Dict containing at least:
            - 'healthy': bool indicating if component is healthy
            - 'status': str describing current status
            - 'details': Dict with additional health details
        """
        pass


class IComponent(IStartable, IStoppable, IHealthCheckable):
    """Base interface for long-lived components."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the component name."""
        pass

    @property
    @abstractmethod
    def version(self) -> str:
        """Get the component version."""
        pass
