"""
layerconf - layered configuration resolution and validation registry.

Values are merged from environment-derived defaults, a stored file, prefixed
environment overrides and explicit caller overrides, validated against a
declarative rule set, persisted without secrets and observed through
per-key watchers.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.exceptions import (
    ConfigError, ValidationError, RequiredFieldMissing,
    RegistryStateError, BackupError, PersistenceWarning
)
from .core.domain.rules import RuleType, ValidationRule, Violation, ViolationKind
from .infrastructure.config.backup import BackupManager
from .infrastructure.config.models import (
    LoggingSettings, PersistenceMode, RegistrySettings, StartupPolicy
)
from .infrastructure.config.registry import ConfigurationRegistry, RegistryState
from .infrastructure.config.watchers import Subscription
from .application.startup import RegistryStartup, create_registry

__all__ = [
    "ConfigError",
    "ValidationError",
    "RequiredFieldMissing",
    "RegistryStateError",
    "BackupError",
    "PersistenceWarning",
    "RuleType",
    "ValidationRule",
    "Violation",
    "ViolationKind",
    "BackupManager",
    "LoggingSettings",
    "PersistenceMode",
    "RegistrySettings",
    "StartupPolicy",
    "ConfigurationRegistry",
    "RegistryState",
    "Subscription",
    "RegistryStartup",
    "create_registry",
]
