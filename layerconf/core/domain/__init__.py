"""
Domain models for configuration validation and its error taxonomy.
"""

from .rules import RuleType, ValidationRule, Violation, ViolationKind
from .exceptions import (
    ErrorCode, ConfigError, ValidationError, RequiredFieldMissing,
    RegistryStateError, BackupError, PersistenceWarning
)

__all__ = [
    "RuleType",
    "ValidationRule",
    "Violation",
    "ViolationKind",
    "ErrorCode",
    "ConfigError",
    "ValidationError",
    "RequiredFieldMissing",
    "RegistryStateError",
    "BackupError",
    "PersistenceWarning",
]
