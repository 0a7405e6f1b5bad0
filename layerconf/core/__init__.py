"""
Core abstractions of the configuration registry.

This package holds the interfaces and domain models that are independent of
file formats, the environment and the event loop.
"""

from .interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .interfaces.storage import IConfigStore
from .domain.rules import RuleType, ValidationRule, Violation, ViolationKind
from .domain.exceptions import (
    ConfigError, ValidationError, RequiredFieldMissing,
    RegistryStateError, BackupError, PersistenceWarning
)

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IConfigStore",
    "RuleType",
    "ValidationRule",
    "Violation",
    "ViolationKind",
    "ConfigError",
    "ValidationError",
    "RequiredFieldMissing",
    "RegistryStateError",
    "BackupError",
    "PersistenceWarning",
]
