"""Utility modules for configuration and logging."""

from .config import ConfigManager
from .logging_config import LoggingManager, LogFormat, LogLevel

__all__ = ["ConfigManager", "LoggingManager", "LogFormat", "LogLevel"]
