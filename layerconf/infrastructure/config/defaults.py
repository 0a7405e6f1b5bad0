"""
Baseline configuration derived from environment inputs.

Every declared field names the environment variable(s) it reads, how the
raw string is coerced and the value used when the input is absent, empty or
unparseable. Computing defaults never raises.
"""

import copy
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Values the environment uses to mean "not set"
_EMPTY_MARKERS = ("", "undefined")


class FieldKind(Enum):
    """How a raw environment string is turned into a configuration value."""
    STRING = "string"
    INT = "int"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"
    CONSTANT = "constant"


@dataclass(frozen=True)
class FieldSpec:
    """A declared configuration key and where its default comes from."""

    key: str
    """Configuration key; dots address nested maps (``a.b``)."""

    env: Tuple[str, ...] = ()
    """Environment names tried in order; the first usable one wins."""

    kind: FieldKind = FieldKind.STRING

    default: Any = None
    """Fallback value; ``None`` leaves the key out of the snapshot."""

    @property
    def top_level_key(self) -> str:
        return self.key.split('.', 1)[0]


def is_empty(raw: Optional[str]) -> bool:
    """Check whether an environment value counts as absent."""
    return raw is None or raw in _EMPTY_MARKERS


def coerce(kind: FieldKind, raw: str) -> Tuple[bool, Any]:
    """
    Coerce a raw environment string.

    Returns:
        ``(True, value)`` on success, ``(False, None)`` if the string does
        not parse as ``kind``.
    """
    if kind is FieldKind.INT:
        try:
            return True, int(raw.strip())
        except ValueError:
            return False, None

    if kind is FieldKind.NUMBER:
        try:
            number = float(raw.strip())
        except ValueError:
            return False, None
        if math.isnan(number):
            return False, None
        return True, number

    if kind is FieldKind.BOOLEAN:
        return True, raw.strip().lower() == 'true'

    if kind is FieldKind.LIST:
        return True, [item.strip() for item in raw.split(',') if item.strip()]

    if kind is FieldKind.CONSTANT:
        return False, None

    return True, raw.strip()


def _set_nested_value(config: Dict[str, Any], path: str, value: Any) -> None:
    """Set a nested configuration value using dot notation."""
    keys = path.split('.')
    current = config

    for key in keys[:-1]:
        if key not in current:
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value


def _s(key: str, env: str, default: Any = None) -> FieldSpec:
    return FieldSpec(key, (env,), FieldKind.STRING, default)


def _i(key: str, env: str, default: int) -> FieldSpec:
    return FieldSpec(key, (env,), FieldKind.INT, default)


def _n(key: str, env: str, default: float) -> FieldSpec:
    return FieldSpec(key, (env,), FieldKind.NUMBER, default)


def _b(key: str, env: str, default: bool) -> FieldSpec:
    return FieldSpec(key, (env,), FieldKind.BOOLEAN, default)


DEFAULT_FIELDS: Tuple[FieldSpec, ...] = (
    # Connection
    _s('host', 'MINECRAFT_HOST', 'localhost'),
    _i('port', 'MINECRAFT_PORT', 19132),
    _s('username', 'BOT_USERNAME', 'DragonSlayerBot'),
    _s('version', 'MINECRAFT_VERSION', '1.20.0'),
    FieldSpec('skipPing', (), FieldKind.CONSTANT, True),
    FieldSpec('offlineMode', (), FieldKind.CONSTANT, False),

    # AI provider
    FieldSpec('geminiApiKey',
              ('GEMINI_API_KEY', 'GEMINI_KEY', 'API_KEY', 'GOOGLE_API_KEY'),
              FieldKind.STRING, None),
    _s('geminiModel', 'GEMINI_MODEL', 'gemini-1.5-flash'),
    _i('maxTokens', 'MAX_TOKENS', 1000),
    _n('aiTemperature', 'AI_TEMPERATURE', 0.7),
    _n('aiTopP', 'AI_TOP_P', 0.9),
    _i('aiTopK', 'AI_TOP_K', 40),

    # Behavior
    _i('chatCooldown', 'CHAT_COOLDOWN', 2000),
    _b('autoResponse', 'AUTO_RESPONSE', True),
    _b('learningEnabled', 'LEARNING_ENABLED', True),
    _b('aggressiveMode', 'AGGRESSIVE_MODE', False),
    _b('helpfulMode', 'HELPFUL_MODE', True),

    # Mission
    _i('missionTimeout', 'MISSION_TIMEOUT', 1800000),
    _b('autoStartMission', 'AUTO_START_MISSION', False),
    _b('teamMode', 'TEAM_MODE', True),
    _i('maxTeamSize', 'MAX_TEAM_SIZE', 4),

    # Combat
    _n('combatDistance', 'COMBAT_DISTANCE', 3.0),
    _n('fleeThreshold', 'FLEE_THRESHOLD', 0.3),
    _s('combatStrategy', 'COMBAT_STRATEGY', 'balanced'),

    # Navigation
    _i('pathfindingTimeout', 'PATHFINDING_TIMEOUT', 10000),
    _n('movementSpeed', 'MOVEMENT_SPEED', 4.317),
    _n('jumpHeight', 'JUMP_HEIGHT', 1.25),

    # Inventory
    _b('autoManageInventory', 'AUTO_MANAGE_INVENTORY', True),
    _b('keepEssentialItems', 'KEEP_ESSENTIAL_ITEMS', True),
    _b('craftingEnabled', 'CRAFTING_ENABLED', True),

    # Debug and monitoring
    _b('debugMode', 'DEBUG_MODE', False),
    _s('logLevel', 'LOG_LEVEL', 'info'),
    _b('logPackets', 'LOG_PACKETS', False),
    _b('simulationMode', 'SIMULATION_MODE', False),

    # Performance
    _i('tickRate', 'TICK_RATE', 20),
    _i('maxMemoryUsage', 'MAX_MEMORY_MB', 512),
    _i('gcInterval', 'GC_INTERVAL', 60000),

    # Learning store
    _s('learningDataPath', 'LEARNING_DATA_PATH', './data/learning'),
    _i('maxLearningEntries', 'MAX_LEARNING_ENTRIES', 10000),
    _n('learningDecayRate', 'LEARNING_DECAY_RATE', 0.1),

    # Security
    FieldSpec('allowedCommands', ('ALLOWED_COMMANDS',), FieldKind.LIST,
              ['help', 'status', 'mission']),
    FieldSpec('adminUsers', ('ADMIN_USERS',), FieldKind.LIST, []),
    _b('rateLimitEnabled', 'RATE_LIMIT_ENABLED', True),
    _i('maxRequestsPerMinute', 'MAX_REQUESTS_PER_MINUTE', 30),

    # Advanced
    _b('multiServerMode', 'MULTI_SERVER_MODE', False),
    _b('backupEnabled', 'BACKUP_ENABLED', True),
    _b('metricsEnabled', 'METRICS_ENABLED', False),
    _s('webhookUrl', 'WEBHOOK_URL'),

    # Experimental
    _b('experimentalFeatures.advancedAI', 'EXPERIMENTAL_ADVANCED_AI', False),
    _b('experimentalFeatures.predictiveNavigation', 'EXPERIMENTAL_PREDICTIVE_NAV', False),
    _b('experimentalFeatures.dynamicDifficulty', 'EXPERIMENTAL_DYNAMIC_DIFFICULTY', False),
    _b('experimentalFeatures.socialLearning', 'EXPERIMENTAL_SOCIAL_LEARNING', False),
)


class DefaultsProvider:
    """
    Computes the baseline snapshot from an environment mapping.

    The provider is immutable after construction and ``compute_defaults`` is
    a pure function of its argument.
    """

    def __init__(self, fields: Iterable[FieldSpec] = DEFAULT_FIELDS) -> None:
        self._fields: Tuple[FieldSpec, ...] = tuple(fields)

        seen: Dict[str, FieldSpec] = {}
        for spec in self._fields:
            if spec.key in seen:
                raise ValueError(f"Duplicate default field: {spec.key}")
            seen[spec.key] = spec

    @property
    def fields(self) -> Tuple[FieldSpec, ...]:
        return self._fields

    def compute_defaults(self, environment: Mapping[str, str]) -> Dict[str, Any]:
        """
        Build the default snapshot.

        Args:
            environment: Snapshot of environment inputs (name -> raw string)

        Returns:
            A new dict; keys whose value resolves to ``None`` are omitted.
        """
        config: Dict[str, Any] = {}

        for spec in self._fields:
            value = self._resolve(spec, environment)
            if value is None:
                continue
            _set_nested_value(config, spec.key, value)

        api_key = config.get('geminiApiKey')
        api_key_status = f"[{len(api_key)} chars]" if api_key else "MISSING"
        logger.debug(f"Defaults computed: {len(config)} keys, geminiApiKey: {api_key_status}")
        return config

    def _resolve(self, spec: FieldSpec, environment: Mapping[str, str]) -> Any:
        for name in spec.env:
            raw = environment.get(name)
            if is_empty(raw):
                continue

            ok, value = coerce(spec.kind, raw)  # type: ignore[arg-type]
            if ok and value != "":
                return value

            logger.debug(f"{name} is not a usable {spec.kind.value} for {spec.key}")

        return copy.deepcopy(spec.default)
