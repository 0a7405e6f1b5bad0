"""
Settings models for the configuration registry itself.

These describe where the registry keeps its files and how it behaves at
startup and on writes; they are distinct from the bot configuration values
the registry manages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .schema import SECRET_FIELDS


class PersistenceMode(Enum):
    """When a mutating call returns relative to its durable write."""
    FIRE_AND_FORGET = "fire_and_forget"
    SYNCHRONOUS = "synchronous"


class StartupPolicy(Enum):
    """What bootstrap does when the merged startup configuration is invalid."""
    ABORT = "abort"
    DEGRADE = "degrade"


@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    log_filename: str = "layerconf.log"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoggingSettings':
        """Create logging settings from dictionary."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class RegistrySettings:
    """Main registry settings."""

    config_path: str = "config/bot-config.json"
    backup_directory: str = "config/backups"
    env_prefix: str = "BOT_"
    dotenv_path: Optional[str] = ".env"
    secret_fields: List[str] = field(default_factory=lambda: list(SECRET_FIELDS))
    extension_keys: List[str] = field(default_factory=list)

    # Seconds allowed for directory creation plus one file write
    io_timeout: float = 5.0
    persistence_mode: PersistenceMode = PersistenceMode.FIRE_AND_FORGET
    startup_policy: StartupPolicy = StartupPolicy.ABORT
    max_backups: Optional[int] = None

    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.io_timeout <= 0:
            raise ValueError(f"io_timeout must be positive, got {self.io_timeout}")

        if self.max_backups is not None and self.max_backups < 1:
            raise ValueError(f"max_backups must be at least 1, got {self.max_backups}")

        if not self.env_prefix:
            raise ValueError("env_prefix cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            'config_path': self.config_path,
            'backup_directory': self.backup_directory,
            'env_prefix': self.env_prefix,
            'dotenv_path': self.dotenv_path,
            'secret_fields': list(self.secret_fields),
            'extension_keys': list(self.extension_keys),
            'io_timeout': self.io_timeout,
            'persistence_mode': self.persistence_mode.value,
            'startup_policy': self.startup_policy.value,
            'max_backups': self.max_backups,
            'logging': dict(self.logging.__dict__),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistrySettings':
        """Create settings from dictionary."""
        defaults = cls()

        return cls(
            config_path=data.get('config_path', defaults.config_path),
            backup_directory=data.get('backup_directory', defaults.backup_directory),
            env_prefix=data.get('env_prefix', defaults.env_prefix),
            dotenv_path=data.get('dotenv_path', defaults.dotenv_path),
            secret_fields=list(data.get('secret_fields', defaults.secret_fields)),
            extension_keys=list(data.get('extension_keys', defaults.extension_keys)),
            io_timeout=data.get('io_timeout', defaults.io_timeout),
            persistence_mode=PersistenceMode(
                data.get('persistence_mode', defaults.persistence_mode.value)),
            startup_policy=StartupPolicy(
                data.get('startup_policy', defaults.startup_policy.value)),
            max_backups=data.get('max_backups', defaults.max_backups),
            logging=LoggingSettings.from_dict(data.get('logging', {}))
        )
