"""
Environment inputs: loading them and extracting prefixed overrides.

Prefixed environment names are normalized (prefix stripped, lower-cased,
separators removed) and matched against an allow-list of declared keys, so
``BOT_TICK_RATE`` and ``BOT_TICKRATE`` both resolve to ``tickRate``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from dotenv import dotenv_values

from ...core.domain.rules import RuleType, ValidationRule
from .defaults import DefaultsProvider, FieldKind, coerce, is_empty

logger = logging.getLogger(__name__)

_SEPARATORS = ("_", "-")

_RULE_KINDS = {
    RuleType.STRING: FieldKind.STRING,
    RuleType.NUMBER: FieldKind.NUMBER,
    RuleType.BOOLEAN: FieldKind.BOOLEAN,
}


def load_environment(dotenv_path: Optional[Union[str, Path]] = None) -> Dict[str, str]:
    """
    Snapshot the environment inputs.

    Values from the ``.env`` file are used only where the process
    environment does not define the same name.

    Args:
        dotenv_path: Optional path of a ``.env`` file; missing files are ignored
    """
    environment: Dict[str, str] = {}

    if dotenv_path is not None and Path(dotenv_path).is_file():
        file_values = dotenv_values(dotenv_path)
        environment.update({k: v for k, v in file_values.items() if v is not None})
        logger.info(f"Loaded {len(environment)} values from {dotenv_path}")

    environment.update(os.environ)
    return environment


def normalize_key(name: str) -> str:
    """Lower-case a name and drop separator characters."""
    normalized = name.lower()
    for separator in _SEPARATORS:
        normalized = normalized.replace(separator, "")
    return normalized


class EnvironmentOverrideExtractor:
    """
    Maps prefixed environment inputs onto declared configuration keys.

    Only keys in the extension table are accepted. Values of keys whose type
    is known are coerced; values that fail to coerce are kept as the raw
    string so validation can report them.
    """

    def __init__(
        self,
        defaults: DefaultsProvider,
        rules: Mapping[str, ValidationRule],
        prefix: str = "BOT_",
        extension_keys: Iterable[str] = ()
    ) -> None:
        self._prefix = prefix
        self._table: Dict[str, str] = {}
        self._kinds: Dict[str, FieldKind] = {}

        for spec in defaults.fields:
            if '.' in spec.key:
                continue
            kind = spec.kind
            if kind is FieldKind.CONSTANT:
                kind = self._kind_of(spec.default)
            self._declare(spec.key, kind)

        for key, rule in rules.items():
            self._declare(key, _RULE_KINDS.get(rule.type) if rule.type else None)

        for key in extension_keys:
            self._declare(key, None)

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def extension_table(self) -> Dict[str, str]:
        """Normalized name -> declared key."""
        return dict(self._table)

    def resolve_key(self, env_name: str) -> Optional[str]:
        """Map a prefixed environment name to its declared key, if any."""
        if not env_name.startswith(self._prefix):
            return None
        return self._table.get(normalize_key(env_name[len(self._prefix):]))

    def extract_overrides(self, environment: Mapping[str, str]) -> Dict[str, Any]:
        """
        Produce the sparse override set for the given environment snapshot.
        """
        overrides: Dict[str, Any] = {}
        sources: Dict[str, str] = {}

        for env_name in sorted(environment):
            if not env_name.startswith(self._prefix):
                continue

            key = self.resolve_key(env_name)
            if key is None:
                logger.warning(f"Ignoring {env_name}: no declared configuration key matches")
                continue

            raw = environment[env_name]
            if is_empty(raw):
                continue

            if key in sources:
                logger.warning(
                    f"Environment names {sources[key]} and {env_name} both map to {key}; "
                    f"using {env_name}")

            overrides[key] = self._convert(key, raw)
            sources[key] = env_name
            logger.debug(f"Environment override {env_name} -> {key}")

        return overrides

    def _declare(self, key: str, kind: Optional[FieldKind]) -> None:
        normalized = normalize_key(key)
        existing = self._table.get(normalized)

        if existing is not None and existing != key:
            raise ValueError(
                f"Keys '{existing}' and '{key}' collide as environment name '{normalized}'")

        self._table[normalized] = key
        if kind is not None and key not in self._kinds:
            self._kinds[key] = kind

    def _convert(self, key: str, raw: str) -> Any:
        kind = self._kinds.get(key)
        if kind is None:
            return raw

        ok, value = coerce(kind, raw)
        if not ok:
            logger.warning(f"Environment override for {key} is not a valid {kind.value}")
            return raw
        return value

    @staticmethod
    def _kind_of(value: Any) -> Optional[FieldKind]:
        if isinstance(value, bool):
            return FieldKind.BOOLEAN
        if isinstance(value, int):
            return FieldKind.INT
        if isinstance(value, float):
            return FieldKind.NUMBER
        if isinstance(value, str):
            return FieldKind.STRING
        return None
