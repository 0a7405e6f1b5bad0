"""
Tests for logging setup and the logging manager.
"""

import logging
import sys
from pathlib import Path
from typing import Generator, List
from unittest.mock import Mock, patch

import pytest
from loguru import logger as loguru_logger

from layerconf.infrastructure.config.models import LoggingSettings
from layerconf.infrastructure.logging.setup import (
    InterceptHandler, LoggingManager, setup_logging
)


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Undo global logging changes made by a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    loguru_logger.remove()
    loguru_logger.add(sys.stderr)
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test cases for setup_logging."""

    @patch('layerconf.infrastructure.logging.setup.logging.basicConfig')
    @patch('layerconf.infrastructure.logging.setup.loguru_logger')
    @patch('pathlib.Path.mkdir')
    def test_console_and_file(self, mock_mkdir: Mock, mock_loguru: Mock,
                              mock_basic_config: Mock) -> None:
        config = LoggingSettings(log_directory="test_logs", file_enabled=True)

        sink_ids = setup_logging(config)

        mock_mkdir.assert_called_once_with(parents=True, exist_ok=True)
        mock_loguru.remove.assert_called_once()
        assert mock_loguru.add.call_count == 2
        assert len(sink_ids) == 2

        file_kwargs = mock_loguru.add.call_args_list[1][1]
        assert file_kwargs["rotation"] == "10 MB"
        assert file_kwargs["retention"] == 5
        assert mock_loguru.add.call_args_list[1][0][0] == Path("test_logs") / "layerconf.log"

    @patch('layerconf.infrastructure.logging.setup.logging.basicConfig')
    @patch('layerconf.infrastructure.logging.setup.loguru_logger')
    @patch('pathlib.Path.mkdir')
    def test_console_only(self, mock_mkdir: Mock, mock_loguru: Mock,
                          mock_basic_config: Mock) -> None:
        setup_logging(LoggingSettings(level="debug"))

        mock_mkdir.assert_not_called()
        mock_loguru.add.assert_called_once()
        assert mock_loguru.add.call_args[0][0] == sys.stderr
        assert mock_loguru.add.call_args[1]["level"] == "DEBUG"

    @patch('layerconf.infrastructure.logging.setup.logging.basicConfig')
    @patch('layerconf.infrastructure.logging.setup.loguru_logger')
    def test_stdlib_is_routed_to_loguru(self, mock_loguru: Mock,
                                        mock_basic_config: Mock) -> None:
        setup_logging(LoggingSettings(console_enabled=False))

        mock_loguru.add.assert_not_called()
        handlers = mock_basic_config.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], InterceptHandler)

    def test_records_reach_loguru_sink(self, restore_logging: None) -> None:
        setup_logging(LoggingSettings(console_enabled=False))
        messages: List[str] = []
        loguru_logger.add(messages.append, format="{level}|{message}")

        logging.getLogger("layerconf.test").warning("registry ready")

        assert messages == ["WARNING|registry ready\n"]

    def test_file_sink_writes(self, tmp_path: Path, restore_logging: None) -> None:
        config = LoggingSettings(
            console_enabled=False, file_enabled=True, log_directory=str(tmp_path / "logs"))

        setup_logging(config)
        logging.getLogger("layerconf.test").error("disk check")

        content = (tmp_path / "logs" / "layerconf.log").read_text(encoding="utf-8")
        assert "disk check" in content


class TestLoggingManager:
    """Test cases for LoggingManager."""

    def test_init(self) -> None:
        manager = LoggingManager(LoggingSettings())

        assert manager.name == "LoggingManager"
        assert manager.version == "1.0.0"
        assert manager._started is False

    @pytest.mark.asyncio
    @patch('layerconf.infrastructure.logging.setup.setup_logging', return_value=[1])
    async def test_start(self, mock_setup_logging: Mock) -> None:
        config = LoggingSettings()
        manager = LoggingManager(config)

        await manager.start()
        await manager.start()

        assert manager._started is True
        mock_setup_logging.assert_called_once_with(config)

    @pytest.mark.asyncio
    @patch('layerconf.infrastructure.logging.setup.setup_logging', return_value=[1])
    async def test_stop(self, mock_setup_logging: Mock) -> None:
        manager = LoggingManager(LoggingSettings())
        await manager.start()

        await manager.stop()

        assert manager._started is False

    @pytest.mark.asyncio
    async def test_check_health(self, tmp_path: Path) -> None:
        manager = LoggingManager(LoggingSettings(log_directory=str(tmp_path)))

        health = await manager.check_health()

        assert health["healthy"] is True
        assert health["status"] == "stopped"
        assert health["details"]["log_directory_exists"] is True
        assert health["details"]["sinks"] == 0
