"""
Interfaces implemented by the configuration components.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .storage import IConfigStore

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IConfigStore",
]
