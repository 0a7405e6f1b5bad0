"""
Configuration registry.

Owns the single authoritative configuration snapshot. Startup merges four
sources in increasing precedence:

    defaults (from the environment) < stored file < BOT_ overrides < explicit

Every mutation builds a candidate snapshot, validates it and only then
replaces the active one. A rejected candidate leaves the registry exactly as
it was. Persistence of the redacted snapshot is queued after the commit and
watchers are notified last.
"""

import asyncio
import copy
import logging
import os
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ...core.domain.exceptions import RegistryStateError, ValidationError
from ...core.interfaces.lifecycle import IComponent
from ...core.interfaces.storage import IConfigStore
from .defaults import DefaultsProvider
from .environment import EnvironmentOverrideExtractor
from .models import PersistenceMode
from .schema import SECRET_FIELDS, redact
from .validation import ValidationEngine
from .watchers import Subscription, WatchCallback, WatcherRegistry
from .writer import PersistenceWriter

logger = logging.getLogger(__name__)


class RegistryState(Enum):
    """Lifecycle state of a configuration registry."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STOPPED = "stopped"


def values_differ(old: Any, new: Any) -> bool:
    """Compare two configuration values, treating ``True`` and ``1`` as different."""
    if type(old) is not type(new):
        return True
    return bool(old != new)


def _without_absent(snapshot: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in snapshot.items() if value is not None}


class ConfigurationRegistry(IComponent):
    """
    Layered configuration registry.

    Reads never yield to the event loop. Mutators are coroutines whose
    validate-and-replace step contains no await, so concurrent mutations
    commit in call order.
    """

    def __init__(
        self,
        store: IConfigStore,
        defaults: Optional[DefaultsProvider] = None,
        validator: Optional[ValidationEngine] = None,
        extractor: Optional[EnvironmentOverrideExtractor] = None,
        environment: Optional[Mapping[str, str]] = None,
        secret_fields: Iterable[str] = SECRET_FIELDS,
        persistence_mode: PersistenceMode = PersistenceMode.FIRE_AND_FORGET
    ) -> None:
        self._store = store
        self._defaults = defaults or DefaultsProvider()
        self._validator = validator or ValidationEngine()
        self._extractor = extractor or EnvironmentOverrideExtractor(
            self._defaults, self._validator.rules)
        self._environment: Optional[Dict[str, str]] = (
            dict(environment) if environment is not None else None)
        self._secret_fields = tuple(secret_fields)
        self._persistence_mode = persistence_mode

        self._config: Dict[str, Any] = {}
        self._state = RegistryState.UNINITIALIZED
        self._watchers = WatcherRegistry()
        self._writer = PersistenceWriter(store)
        self._init_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        """Get component name."""
        return "ConfigurationRegistry"

    @property
    def version(self) -> str:
        """Get component version."""
        return "1.0.0"

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is RegistryState.READY

    @property
    def store(self) -> IConfigStore:
        return self._store

    @property
    def defaults(self) -> DefaultsProvider:
        return self._defaults

    @property
    def validator(self) -> ValidationEngine:
        return self._validator

    @property
    def persistence_mode(self) -> PersistenceMode:
        return self._persistence_mode

    @property
    def environment(self) -> Dict[str, str]:
        """Environment snapshot used for defaults and overrides."""
        if self._environment is None:
            return dict(os.environ)
        return dict(self._environment)

    async def start(self) -> None:
        """Start the persistence writer."""
        if self._writer.is_running:
            return

        await self._writer.start()
        if self._state is RegistryState.STOPPED:
            self._state = RegistryState.READY

        logger.debug("Configuration registry started")

    async def stop(self) -> None:
        """Flush pending writes and stop accepting mutations."""
        await self._writer.stop()
        if self._state is RegistryState.READY:
            self._state = RegistryState.STOPPED

        logger.info("Configuration registry stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Check component health."""
        writer_health = await self._writer.check_health()
        return {
            'healthy': self.is_ready and writer_health['healthy'],
            'status': self._state.value,
            'details': {
                'config_file': str(self._store.path),
                'stats': self.get_stats(),
                'writer': writer_health['details']
            }
        }

    async def initialize(self, explicit_overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Build, validate and activate the startup configuration.

        Args:
            explicit_overrides: Caller-supplied values with the highest precedence

        Returns:
            A copy of the active configuration

        Raises:
            ValidationError: If the merged configuration is invalid; the
                registry stays uninitialized
        """
        async with self._init_lock:
            if self._state is RegistryState.READY:
                logger.debug("Configuration registry already initialized")
                return self.get_config()

            if not self._writer.is_running:
                await self.start()
                if self._state is RegistryState.READY:
                    return self.get_config()

            environment = self.environment
            defaults = self._defaults.compute_defaults(environment)
            stored = await self._store.load_async()
            env_overrides = self._extractor.extract_overrides(environment)

            merged = _without_absent({
                **defaults,
                **stored,
                **env_overrides,
                **dict(explicit_overrides or {})
            })

            api_key = merged.get('geminiApiKey')
            api_key_status = f"[{len(api_key)} chars]" if isinstance(api_key, str) and api_key else "MISSING"
            logger.debug(f"Merged startup configuration: {len(merged)} keys, "
                         f"geminiApiKey: {api_key_status}")

            try:
                self._validator.check(merged)
            except ValidationError as e:
                logger.error(f"Config initialization failed: {e}")
                raise

            self._config = merged
            self._state = RegistryState.READY
            pending = self._enqueue(merged)
            await self._await_write(pending)

            logger.info(f"Configuration initialized with {len(merged)} keys")
            return self.get_config()

    def get(self, key: str, fallback: Any = None) -> Any:
        """Get a copy of one value, or ``fallback`` if the key is absent."""
        if key not in self._config:
            return fallback
        return copy.deepcopy(self._config[key])

    def has(self, key: str) -> bool:
        return key in self._config

    async def set(self, key: str, value: Any) -> Dict[str, Any]:
        """
        Set one key. Setting ``None`` removes the key.

        Raises:
            RegistryStateError: If the registry is not ready
            ValidationError: If the resulting configuration is invalid
        """
        return await self._apply({key: value}, "set")

    async def update_config(self, updates: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Apply several updates as one validated change.

        Raises:
            RegistryStateError: If the registry is not ready
            ValidationError: If the resulting configuration is invalid
        """
        return await self._apply(dict(updates), "update config")

    async def reset(self) -> Dict[str, Any]:
        """
        Replace the configuration with freshly computed defaults.

        Only keys whose value actually changes are reported to watchers.
        Defaults come from the environment alone, so a required key that was
        supplied only through explicit overrides or ``set`` (such as
        ``geminiApiKey``) makes every reset fail with ``RequiredFieldMissing``
        and leaves the configuration unchanged.

        Raises:
            RegistryStateError: If the registry is not ready
            ValidationError: If the defaults themselves are invalid
        """
        self._require_ready("reset")

        candidate = _without_absent(self._defaults.compute_defaults(self.environment))
        self._validator.check(candidate)

        old = self._config
        self._config = candidate
        pending = self._enqueue(candidate)

        logger.info("Configuration reset to defaults")
        await self._await_write(pending)
        await self._notify_changes(old, candidate)
        return self.get_config()

    def watch(self, key: str, callback: WatchCallback) -> Subscription:
        """
        Register ``callback(new_value, old_value, key)`` for changes of ``key``.

        Returns:
            Subscription handle; ``unsubscribe()`` removes this registration
        """
        return self._watchers.add(key, callback)

    def get_config(self) -> Dict[str, Any]:
        """Full configuration, secrets included. For trusted internal use."""
        return copy.deepcopy(self._config)

    def get_public_config(self) -> Dict[str, Any]:
        """Configuration with every secret key removed."""
        return redact(self._config, self._secret_fields)

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        return {
            'keys': len(self._config),
            'watchers': self._watchers.count(),
            'watchedKeys': len(self._watchers.keys()),
            'validationRules': len(self._validator.rules),
            'state': self._state.value,
            'pendingWrites': self._writer.pending,
        }

    async def flush(self) -> None:
        """Wait until every queued write has reached the store."""
        await self._writer.drain()

    async def _apply(self, updates: Dict[str, Any], operation: str) -> Dict[str, Any]:
        self._require_ready(operation)

        candidate = _without_absent({**self._config, **updates})
        violations = self._validator.validate(candidate)
        if violations:
            error = ValidationError.from_violations(violations)
            logger.warning(f"Rejected {operation} of {', '.join(sorted(updates))}: {error}")
            raise error

        old = self._config
        self._config = candidate
        pending = self._enqueue(candidate)

        logger.debug(f"Applied {operation}: {', '.join(sorted(updates))}")
        await self._await_write(pending)
        await self._notify_changes(old, candidate, keys=updates.keys())
        return self.get_config()

    def _enqueue(self, snapshot: Dict[str, Any]) -> "asyncio.Future[bool]":
        # Called inside the commit section so writes follow commit order
        return self._writer.submit(snapshot)

    async def _await_write(self, pending: "asyncio.Future[bool]") -> None:
        if self._persistence_mode is PersistenceMode.SYNCHRONOUS:
            await pending

    async def _notify_changes(
        self,
        old: Mapping[str, Any],
        new: Mapping[str, Any],
        keys: Optional[Iterable[str]] = None
    ) -> None:
        if keys is None:
            candidates: List[str] = list(dict.fromkeys([*old, *new]))
        else:
            candidates = list(keys)

        for key in candidates:
            if not self._watchers.has_watchers(key):
                continue
            old_value, new_value = old.get(key), new.get(key)
            if values_differ(old_value, new_value):
                await self._watchers.notify(
                    key, copy.deepcopy(new_value), copy.deepcopy(old_value))

    def _require_ready(self, operation: str) -> None:
        if self._state is not RegistryState.READY:
            raise RegistryStateError(operation, self._state.value, RegistryState.READY.value)
