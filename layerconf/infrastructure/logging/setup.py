"""
Logging setup and configuration utilities.

Modules log through the standard ``logging`` module; ``setup_logging``
routes those records into loguru, which owns the actual sinks (colorized
stderr and an optional rotating file).
"""

import inspect
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger as loguru_logger

from ...core.interfaces.lifecycle import IComponent
from ..config.models import LoggingSettings

CONSOLE_FORMAT = ("<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                  "<level>{level: <8}</level> | "
                  "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                  "<level>{message}</level>")

FILE_FORMAT = ("{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
               "{name}:{function}:{line} - {message}")


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside the logging module so loguru reports it
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage())


def setup_logging(config: LoggingSettings) -> List[int]:
    """
    Setup logging with the given configuration.

    Args:
        config: Logging configuration

    Returns:
        Identifiers of the loguru sinks that were added
    """
    # Remove default handler
    loguru_logger.remove()
    sink_ids: List[int] = []

    if config.console_enabled:
        sink_ids.append(loguru_logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=config.level.upper(),
            colorize=True,
            backtrace=True,
            diagnose=False
        ))

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        sink_ids.append(loguru_logger.add(
            log_dir / config.log_filename,
            format=FILE_FORMAT,
            level=config.level.upper(),
            rotation=config.max_file_size,
            retention=config.backup_count,
            compression="zip",
            backtrace=True,
            diagnose=False
        ))

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    return sink_ids


class LoggingManager(IComponent):
    """Applies logging settings as part of the component lifecycle."""

    def __init__(self, config: LoggingSettings) -> None:
        self._config = config
        self._started = False
        self._sink_ids: List[int] = []
        self._logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        """Get component name."""
        return "LoggingManager"

    @property
    def version(self) -> str:
        """Get component version."""
        return "1.0.0"

    @property
    def config(self) -> LoggingSettings:
        return self._config

    async def start(self) -> None:
        """Start the logging manager."""
        if self._started:
            return

        self._sink_ids = setup_logging(self._config)
        self._started = True

        self._logger.info(f"Logging configured at level {self._config.level}")
        if self._config.file_enabled:
            self._logger.info(f"Log directory: {self._config.log_directory}")

    async def stop(self) -> None:
        """Stop the logging manager."""
        if not self._started:
            return

        self._logger.info("Logging manager stopped")
        await loguru_logger.complete()
        self._started = False

    async def check_health(self) -> Dict[str, Any]:
        """Check logging manager health."""
        log_dir = Path(self._config.log_directory)

        return {
            'healthy': True,
            'status': 'running' if self._started else 'stopped',
            'details': {
                'log_level': self._config.level,
                'log_directory': str(log_dir),
                'log_directory_exists': log_dir.exists(),
                'console_enabled': self._config.console_enabled,
                'file_enabled': self._config.file_enabled,
                'sinks': len(self._sink_ids)
            }
        }
