"""
Application layer: wiring and startup of the configuration registry.
"""

from .startup import RegistryStartup, create_registry

__all__ = [
    "RegistryStartup",
    "create_registry",
]
