"""
Exception taxonomy for the configuration registry.

Validation failures are raised to the caller of the mutating operation;
persistence problems are only ever logged under the PersistenceWarning
category.
"""

from enum import Enum
from typing import Any, List, Optional, Sequence

from .rules import Violation, ViolationKind


class ErrorCode(Enum):
    """Error codes carried by every ConfigError."""
    UNKNOWN_ERROR = 10000
    VALIDATION_ERROR = 10001
    REQUIRED_FIELD_MISSING = 10002
    INVALID_STATE = 10003
    BACKUP_ERROR = 10004


class ConfigError(Exception):
    """Base class for configuration registry errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(ConfigError):
    """
    A candidate configuration violated one or more rules.

    Carries the complete list of violations, not just the first one found.
    """

    def __init__(self, violations: Sequence[Violation],
                 code: ErrorCode = ErrorCode.VALIDATION_ERROR):
        if not violations:
            raise ValueError("ValidationError requires at least one violation")

        self.violations: List[Violation] = list(violations)
        message = "Configuration validation failed: " + "; ".join(self.messages)
        super().__init__(message, code, details=self.messages)

    @property
    def messages(self) -> List[str]:
        """Violation messages in evaluation order."""
        return [violation.message for violation in self.violations]

    @property
    def keys(self) -> List[str]:
        """Distinct keys that failed validation, in evaluation order."""
        seen: List[str] = []
        for violation in self.violations:
            if violation.key not in seen:
                seen.append(violation.key)
        return seen

    @classmethod
    def from_violations(cls, violations: Sequence[Violation]) -> 'ValidationError':
        """Build the most specific error for the given violations."""
        if any(v.kind is ViolationKind.REQUIRED for v in violations):
            return RequiredFieldMissing(violations)
        return cls(violations)


class RequiredFieldMissing(ValidationError):
    """Validation failed and at least one required field has no value."""

    def __init__(self, violations: Sequence[Violation]):
        super().__init__(violations, ErrorCode.REQUIRED_FIELD_MISSING)

    @property
    def missing_fields(self) -> List[str]:
        """Keys that are required but absent or empty."""
        return [v.key for v in self.violations if v.kind is ViolationKind.REQUIRED]


class RegistryStateError(ConfigError):
    """An operation was attempted in a state that does not allow it."""

    def __init__(self, operation: str, current_state: str, required_state: str):
        self.operation = operation
        self.current_state = current_state
        self.required_state = required_state
        message = (f"Cannot {operation}: registry is {current_state} "
                   f"(requires {required_state})")
        super().__init__(message, ErrorCode.INVALID_STATE)


class BackupError(ConfigError):
    """A backup artifact is missing, corrupt or could not be written."""

    def __init__(self, message: str, backup_id: Optional[str] = None):
        self.backup_id = backup_id
        super().__init__(message, ErrorCode.BACKUP_ERROR, details=backup_id)


class PersistenceWarning(UserWarning):
    """Category for non-fatal load/save failures of the config store."""
    pass
