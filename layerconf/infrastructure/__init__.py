"""
Infrastructure layer: files, environment, event loop and logging.
"""

from .config.registry import ConfigurationRegistry
from .logging.setup import LoggingManager

__all__ = [
    "ConfigurationRegistry",
    "LoggingManager",
]
