"""
Declared validation rules and secret fields of the bot configuration.
"""

import copy
from typing import Any, Dict, Iterable, Mapping

from ...core.domain.rules import RuleType, ValidationRule

# Never written to storage or returned from the public accessor
SECRET_FIELDS = ("geminiApiKey", "webhookUrl", "adminUsers")

_STRING = RuleType.STRING
_NUMBER = RuleType.NUMBER

DEFAULT_RULES: Dict[str, ValidationRule] = {
    'host': ValidationRule(type=_STRING, required=True, min_length=1),
    'port': ValidationRule(type=_NUMBER, min=1, max=65535),
    'username': ValidationRule(type=_STRING, required=True, min_length=1, max_length=16),
    'geminiApiKey': ValidationRule(type=_STRING, required=True, min_length=1),
    'maxTokens': ValidationRule(type=_NUMBER, min=1, max=8192),
    'aiTemperature': ValidationRule(type=_NUMBER, min=0, max=2),
    'aiTopP': ValidationRule(type=_NUMBER, min=0, max=1),
    'aiTopK': ValidationRule(type=_NUMBER, min=1, max=100),
    'chatCooldown': ValidationRule(type=_NUMBER, min=0, max=10000),
    'missionTimeout': ValidationRule(type=_NUMBER, min=60000, max=7200000),
    'maxTeamSize': ValidationRule(type=_NUMBER, min=1, max=20),
    'combatDistance': ValidationRule(type=_NUMBER, min=1, max=10),
    'fleeThreshold': ValidationRule(type=_NUMBER, min=0.1, max=0.9),
    'pathfindingTimeout': ValidationRule(type=_NUMBER, min=1000, max=60000),
    'tickRate': ValidationRule(type=_NUMBER, min=1, max=100),
    'maxMemoryUsage': ValidationRule(type=_NUMBER, min=128, max=4096),
    'maxLearningEntries': ValidationRule(type=_NUMBER, min=100, max=100000),
    'maxRequestsPerMinute': ValidationRule(type=_NUMBER, min=1, max=1000),
    'logLevel': ValidationRule(type=_STRING, enum=('error', 'warn', 'info', 'debug')),
    'combatStrategy': ValidationRule(
        type=_STRING, enum=('aggressive', 'defensive', 'balanced')),
}


def rules_from_dict(data: Mapping[str, Mapping[str, Any]]) -> Dict[str, ValidationRule]:
    """Parse a ``{key: {type, required, min, ...}}`` table into rules."""
    return {key: ValidationRule.from_dict(dict(rule)) for key, rule in data.items()}


def redact(snapshot: Mapping[str, Any], secret_fields: Iterable[str] = SECRET_FIELDS) -> Dict[str, Any]:
    """Return a deep copy of ``snapshot`` without any secret key."""
    secrets = set(secret_fields)
    return {
        key: copy.deepcopy(value)
        for key, value in snapshot.items()
        if key not in secrets
    }
