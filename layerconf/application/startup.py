"""
Registry startup and wiring.

Builds the registry and its collaborators from RegistrySettings, starts them
in order and applies the startup policy when the merged configuration does
not validate.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..core.domain.exceptions import ValidationError
from ..core.interfaces.lifecycle import IComponent
from ..infrastructure.config.backup import BackupManager
from ..infrastructure.config.defaults import DefaultsProvider
from ..infrastructure.config.environment import EnvironmentOverrideExtractor, load_environment
from ..infrastructure.config.models import RegistrySettings, StartupPolicy
from ..infrastructure.config.registry import ConfigurationRegistry
from ..infrastructure.config.store import PersistentStore
from ..infrastructure.config.validation import ValidationEngine
from ..infrastructure.logging.setup import LoggingManager

logger = logging.getLogger(__name__)


class RegistryStartup:
    """
    Manages registry startup and shutdown.

    Components are started in dependency order and stopped in reverse.
    """

    def __init__(
        self,
        settings: Optional[RegistrySettings] = None,
        environment: Optional[Mapping[str, str]] = None,
        configure_logging: bool = True
    ) -> None:
        self._settings = settings or RegistrySettings()
        self._environment = environment
        self._configure_logging = configure_logging
        self._started_components: List[IComponent] = []

        self.logging_manager: Optional[LoggingManager] = None
        self.registry: Optional[ConfigurationRegistry] = None
        self.backups: Optional[BackupManager] = None

    @property
    def settings(self) -> RegistrySettings:
        return self._settings

    def build(self) -> ConfigurationRegistry:
        """Create the registry and its collaborators without starting them."""
        settings = self._settings

        environment = (dict(self._environment) if self._environment is not None
                       else load_environment(settings.dotenv_path))

        defaults = DefaultsProvider()
        validator = ValidationEngine()
        extractor = EnvironmentOverrideExtractor(
            defaults, validator.rules,
            prefix=settings.env_prefix,
            extension_keys=settings.extension_keys
        )
        store = PersistentStore(
            settings.config_path,
            secret_fields=settings.secret_fields,
            io_timeout=settings.io_timeout
        )

        self.registry = ConfigurationRegistry(
            store,
            defaults=defaults,
            validator=validator,
            extractor=extractor,
            environment=environment,
            secret_fields=settings.secret_fields,
            persistence_mode=settings.persistence_mode
        )
        self.backups = BackupManager(
            self.registry,
            settings.backup_directory,
            max_backups=settings.max_backups,
            io_timeout=settings.io_timeout
        )
        return self.registry

    async def start(self, explicit_overrides: Optional[Mapping[str, Any]] = None) -> ConfigurationRegistry:
        """
        Start logging and the registry, then initialize the configuration.

        Raises:
            ValidationError: If the configuration is invalid and cannot be
                degraded under the configured policy
        """
        if self._configure_logging:
            self.logging_manager = LoggingManager(self._settings.logging)
            await self._start_component(self.logging_manager)

        registry = self.registry or self.build()
        await self._start_component(registry)

        try:
            await self._initialize(registry, explicit_overrides)
        except ValidationError:
            await self.shutdown()
            raise

        logger.info(f"Configuration registry ready ({registry.get_stats()['keys']} keys)")
        return registry

    async def shutdown(self) -> None:
        """Stop started components in reverse order."""
        for component in reversed(self._started_components):
            try:
                await component.stop()
                logger.debug(f"Stopped component: {component.name}")
            except Exception as e:
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()

    async def _start_component(self, component: IComponent) -> None:
        await component.start()
        self._started_components.append(component)
        logger.debug(f"Started component: {component.name}")

    async def _initialize(
        self,
        registry: ConfigurationRegistry,
        explicit_overrides: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        try:
            return await registry.initialize(explicit_overrides)
        except ValidationError as e:
            if self._settings.startup_policy is StartupPolicy.ABORT:
                raise

            logger.warning(f"Reverting invalid keys to defaults: {', '.join(e.keys)}")
            defaults = registry.defaults.compute_defaults(registry.environment)
            degraded = dict(explicit_overrides or {})
            for key in e.keys:
                # None drops a key that has no default
                degraded[key] = defaults.get(key)

            return await registry.initialize(degraded)


async def create_registry(
    settings: Optional[RegistrySettings] = None,
    explicit_overrides: Optional[Mapping[str, Any]] = None,
    environment: Optional[Mapping[str, str]] = None,
    configure_logging: bool = True
) -> ConfigurationRegistry:
    """
    Build, start and initialize a configuration registry.

    Args:
        settings: Registry settings; defaults are used when omitted
        explicit_overrides: Values with the highest precedence
        environment: Environment snapshot; the process environment layered
            over the ``.env`` file when omitted
        configure_logging: Whether to install the loguru sinks

    Returns:
        A ready registry. Stop it with ``await registry.stop()``.
    """
    startup = RegistryStartup(settings, environment, configure_logging)
    return await startup.start(explicit_overrides)
