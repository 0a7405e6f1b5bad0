"""
Validation rule and violation models.

Rules are declarative per-key constraints; the validation engine evaluates
them and reports every violation it finds as a Violation record.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

Number = Union[int, float]


class RuleType(Enum):
    """Dynamic type a rule requires."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ViolationKind(Enum):
    """Which check of a rule was violated."""
    REQUIRED = "required"
    TYPE = "type"
    MIN = "min"
    MAX = "max"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    ENUM = "enum"


@dataclass(frozen=True)
class ValidationRule:
    """
    Declarative constraint attached to a single configuration key.

    Bounds are inclusive. ``min``/``max`` only apply to numbers and
    ``min_length``/``max_length`` only apply to strings.
    """

    type: Optional[RuleType] = None
    required: bool = False
    min: Optional[Number] = None
    max: Optional[Number] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    enum: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        """Reject rules that can never be satisfied."""
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min {self.min} is greater than max {self.max}")

        if (self.min_length is not None and self.max_length is not None
                and self.min_length > self.max_length):
            raise ValueError(
                f"minLength {self.min_length} is greater than maxLength {self.max_length}")

        if self.enum is not None and not isinstance(self.enum, tuple):
            # Keep the rule hashable and immutable
            object.__setattr__(self, "enum", tuple(self.enum))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ValidationRule':
        """
        Create a rule from its dictionary form.

        Accepts both camelCase (``minLength``) and snake_case
        (``min_length``) bound names.
        """
        rule_type = data.get('type')
        enum = data.get('enum')

        return cls(
            type=RuleType(rule_type) if rule_type is not None else None,
            required=bool(data.get('required', False)),
            min=data.get('min'),
            max=data.get('max'),
            min_length=data.get('minLength', data.get('min_length')),
            max_length=data.get('maxLength', data.get('max_length')),
            enum=tuple(enum) if enum is not None else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the rule to its camelCase dictionary form."""
        result: Dict[str, Any] = {}

        if self.type is not None:
            result['type'] = self.type.value
        if self.required:
            result['required'] = True
        if self.min is not None:
            result['min'] = self.min
        if self.max is not None:
            result['max'] = self.max
        if self.min_length is not None:
            result['minLength'] = self.min_length
        if self.max_length is not None:
            result['maxLength'] = self.max_length
        if self.enum is not None:
            result['enum'] = list(self.enum)

        return result


@dataclass(frozen=True)
class Violation:
    """A single failed check for one key."""

    key: str
    kind: ViolationKind
    message: str

    def __str__(self) -> str:
        return self.message
