"""
Configuration registry infrastructure.

Defaults, environment overrides, validation, the file store, the
single-writer persistence queue, watchers, backups and the registry that ties
them together.
"""

from .backup import BackupManager
from .defaults import DEFAULT_FIELDS, DefaultsProvider, FieldKind, FieldSpec
from .environment import EnvironmentOverrideExtractor, load_environment
from .models import LoggingSettings, PersistenceMode, RegistrySettings, StartupPolicy
from .registry import ConfigurationRegistry, RegistryState
from .schema import DEFAULT_RULES, SECRET_FIELDS, redact, rules_from_dict
from .store import PersistentStore
from .validation import ValidationEngine
from .watchers import Subscription, WatcherRegistry
from .writer import PersistenceWriter

__all__ = [
    "BackupManager",
    "DEFAULT_FIELDS",
    "DefaultsProvider",
    "FieldKind",
    "FieldSpec",
    "EnvironmentOverrideExtractor",
    "load_environment",
    "LoggingSettings",
    "PersistenceMode",
    "RegistrySettings",
    "StartupPolicy",
    "ConfigurationRegistry",
    "RegistryState",
    "DEFAULT_RULES",
    "SECRET_FIELDS",
    "redact",
    "rules_from_dict",
    "PersistentStore",
    "ValidationEngine",
    "Subscription",
    "WatcherRegistry",
    "PersistenceWriter",
]
