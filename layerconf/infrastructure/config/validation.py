"""
Rule-based validation of configuration snapshots.

The per-key rules are compiled into a Draft 7 JSON Schema and evaluated with
jsonschema, collecting every error instead of stopping at the first one.
Required-field checks run first and suppress further checks for that key.
Values of any key, ruled or not, must be one of the storable value types.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import jsonschema

from ...core.domain.exceptions import ValidationError
from ...core.domain.rules import ValidationRule, Violation, ViolationKind
from .schema import DEFAULT_RULES

logger = logging.getLogger(__name__)

# jsonschema keyword -> violation kind, in the order checks are reported
_KEYWORD_KINDS = {
    'type': ViolationKind.TYPE,
    'minimum': ViolationKind.MIN,
    'maximum': ViolationKind.MAX,
    'minLength': ViolationKind.MIN_LENGTH,
    'maxLength': ViolationKind.MAX_LENGTH,
    'enum': ViolationKind.ENUM,
}
_KEYWORD_ORDER = {keyword: index for index, keyword in enumerate(_KEYWORD_KINDS)}

_MISSING = object()


def is_missing(value: Any) -> bool:
    """Check whether a value fails a ``required`` check."""
    return is_absent(value) or value == "undefined"


def is_absent(value: Any) -> bool:
    """Check whether an optional value skips its rule checks."""
    return value is _MISSING or value is None or value == ""


def is_config_value(value: Any) -> bool:
    """Check a value against the storable value types.

    Top-level values are strings, numbers, booleans, string lists or maps;
    maps may nest any JSON-compatible content.
    """
    if isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, list):
        return all(isinstance(item, str) for item in value)
    if isinstance(value, dict):
        return _is_json_map(value)
    return False


def _is_json_map(value: Dict[Any, Any]) -> bool:
    return all(isinstance(k, str) and _is_json_value(v) for k, v in value.items())


def _is_json_value(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, list):
        return all(_is_json_value(item) for item in value)
    if isinstance(value, dict):
        return _is_json_map(value)
    return False


def type_name(value: Any) -> str:
    """Name the dynamic type of a configuration value."""
    if value is _MISSING or value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def compile_rules(rules: Mapping[str, ValidationRule]) -> Dict[str, Any]:
    """Translate rules into a JSON Schema for the type/bound/enum checks."""
    properties: Dict[str, Any] = {}

    for key, rule in rules.items():
        subschema: Dict[str, Any] = {}

        if rule.type is not None:
            subschema['type'] = rule.type.value
        if rule.min is not None:
            subschema['minimum'] = rule.min
        if rule.max is not None:
            subschema['maximum'] = rule.max
        if rule.min_length is not None:
            subschema['minLength'] = rule.min_length
        if rule.max_length is not None:
            subschema['maxLength'] = rule.max_length
        if rule.enum is not None:
            subschema['enum'] = list(rule.enum)

        properties[key] = subschema

    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": properties,
        "additionalProperties": True,
    }


class ValidationEngine:
    """
    Evaluates a fixed rule set against candidate snapshots.

    The engine is immutable after construction; ``validate`` accepts an
    alternative rule set for one-off checks.
    """

    def __init__(self, rules: Optional[Mapping[str, ValidationRule]] = None) -> None:
        self._rules: Dict[str, ValidationRule] = dict(
            DEFAULT_RULES if rules is None else rules)
        self._schema = compile_rules(self._rules)
        jsonschema.Draft7Validator.check_schema(self._schema)
        self._validator = jsonschema.Draft7Validator(self._schema)

    @property
    def rules(self) -> Dict[str, ValidationRule]:
        return dict(self._rules)

    @property
    def schema(self) -> Dict[str, Any]:
        """The compiled JSON Schema."""
        return self._schema

    def validate(
        self,
        snapshot: Mapping[str, Any],
        rules: Optional[Mapping[str, ValidationRule]] = None
    ) -> List[Violation]:
        """
        Validate a snapshot.

        Args:
            snapshot: Candidate configuration
            rules: Optional rule set replacing the engine's own

        Returns:
            Every violation found; an empty list means the snapshot is valid.
        """
        if rules is None:
            rules = self._rules
            validator = self._validator
        else:
            validator = jsonschema.Draft7Validator(compile_rules(rules))

        violations: List[Violation] = []
        instance: Dict[str, Any] = {}

        for key, rule in rules.items():
            value = snapshot.get(key, _MISSING)

            if rule.required and is_missing(value):
                violations.append(Violation(
                    key, ViolationKind.REQUIRED, self._required_message(key, value)))
                continue
            if is_absent(value):
                continue

            instance[key] = value

        order = {key: index for index, key in enumerate(rules)}
        for key, value in snapshot.items():
            if value is not None and not is_config_value(value):
                order.setdefault(key, len(order))
                violations.append(Violation(
                    key, ViolationKind.TYPE,
                    f"{key} must be a string, number, boolean, string list or map, "
                    f"got {type(value).__name__}"))
                instance.pop(key, None)

        errors = sorted(
            validator.iter_errors(instance),
            key=lambda e: (order.get(self._error_key(e), len(order)),
                           _KEYWORD_ORDER.get(e.validator, len(_KEYWORD_ORDER)))
        )

        for error in errors:
            key = self._error_key(error)
            if key is None or key not in rules:
                logger.debug(f"Ignoring schema error outside declared keys: {error.message}")
                continue
            violations.append(self._to_violation(key, rules[key], instance[key], error))

        # Required violations first, then schema violations, each in rule order
        violations.sort(key=lambda v: (order[v.key], v.kind is not ViolationKind.REQUIRED))
        return violations

    def check(self, snapshot: Mapping[str, Any]) -> None:
        """
        Validate a snapshot and raise if it is invalid.

        Raises:
            RequiredFieldMissing: If any required field is absent
            ValidationError: For any other violation
        """
        violations = self.validate(snapshot)
        if violations:
            raise ValidationError.from_violations(violations)

    @staticmethod
    def _error_key(error: jsonschema.ValidationError) -> Optional[str]:
        path = list(error.absolute_path)
        return str(path[0]) if path else None

    @staticmethod
    def _required_message(key: str, value: Any) -> str:
        if value is _MISSING or value is None:
            return f"{key} is required but got: undefined"
        return f'{key} is required but got: {type_name(value)} "{value}"'

    @staticmethod
    def _to_violation(key: str, rule: ValidationRule, value: Any,
                      error: jsonschema.ValidationError) -> Violation:
        kind = _KEYWORD_KINDS.get(str(error.validator))

        if kind is ViolationKind.TYPE and rule.type is not None:
            message = f"{key} must be a {rule.type.value}, got {type_name(value)}"
        elif kind is ViolationKind.MIN:
            message = f"{key} must be at least {rule.min}"
        elif kind is ViolationKind.MAX:
            message = f"{key} must be at most {rule.max}"
        elif kind is ViolationKind.MIN_LENGTH:
            message = f"{key} must be at least {rule.min_length} characters"
        elif kind is ViolationKind.MAX_LENGTH:
            message = f"{key} must be at most {rule.max_length} characters"
        elif kind is ViolationKind.ENUM and rule.enum is not None:
            message = f"{key} must be one of: {', '.join(str(v) for v in rule.enum)}"
        else:
            return Violation(key, ViolationKind.TYPE, f"{key}: {error.message}")

        return Violation(key, kind, message)
