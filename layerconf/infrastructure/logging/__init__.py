"""
Logging infrastructure.

Standard-library loggers are routed into loguru sinks.
"""

from .setup import setup_logging, InterceptHandler, LoggingManager

__all__ = [
    "setup_logging",
    "InterceptHandler",
    "LoggingManager",
]
