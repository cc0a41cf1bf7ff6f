"""
Logging configuration for the document gateway.

This module provides standard, detailed and JSON log formats with optional
rotating file output. Library modules only ever call
``logging.getLogger(__name__)``; handlers are installed by the application
(the CLI, or a host process) through ``LoggingManager``.
"""

import json
import logging
import logging.handlers
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogFormat(Enum):
    """Log format types."""
    STANDARD = "standard"
    JSON = "json"
    DETAILED = "detailed"


# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName', 'taskName',
    'processName', 'process', 'exc_info', 'exc_text', 'stack_info', 'message',
})


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""
    
    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "logger": record.name,
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        
        for attr_name, attr_value in record.__dict__.items():
            if attr_name.startswith('_') or attr_name in _STANDARD_ATTRS:
                continue
            if not callable(attr_value):
                log_data[attr_name] = attr_value
        
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        try:
            return json.dumps(log_data, default=str, ensure_ascii=False, separators=(',', ':'))
        except (TypeError, ValueError):
            return json.dumps({
                "timestamp": log_data["timestamp"],
                "level": log_data["level"],
                "logger": log_data["logger"],
                "message": str(record.getMessage()),
                "serialization_error": "Failed to serialize additional data"
            }, separators=(',', ':'))


class LoggingManager:
    """
    Root logger setup with console and optional file output.
    """
    
    def __init__(
        self,
        log_level: LogLevel = LogLevel.INFO,
        log_format: LogFormat = LogFormat.STANDARD,
        log_file: Optional[Path] = None,
        enable_console: bool = True,
        enable_rotation: bool = False,
        max_file_size: str = "10MB",
        backup_count: int = 5,
        console_handler: Optional[logging.Handler] = None,
    ):
        self.log_level = log_level
        self.log_format = log_format
        self.log_file = log_file
        self.enable_console = enable_console
        self.enable_rotation = enable_rotation
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.console_handler = console_handler
        
        self._setup_root_logger()
    
    def _setup_root_logger(self) -> None:
        """Setup the root logger configuration."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level.value)
        root_logger.handlers.clear()
        
        formatters = self._create_formatters()
        
        if self.enable_console:
            # A caller-supplied handler (e.g. RichHandler) keeps its own formatting
            if self.console_handler is not None:
                console_handler = self.console_handler
            else:
                console_handler = logging.StreamHandler()
                console_handler.setFormatter(formatters[self.log_format])
            console_handler.setLevel(self.log_level.value)
            root_logger.addHandler(console_handler)
        
        if self.log_file:
            file_handler = self._create_file_handler()
            file_handler.setLevel(self.log_level.value)
            file_handler.setFormatter(formatters[self.log_format])
            root_logger.addHandler(file_handler)
    
    def _create_formatters(self) -> Dict[LogFormat, logging.Formatter]:
        return {
            LogFormat.STANDARD: logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            ),
            LogFormat.JSON: JSONFormatter(),
            LogFormat.DETAILED: logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s'
            )
        }
    
    def _create_file_handler(self) -> logging.Handler:
        """Create appropriate file handler based on rotation settings."""
        if self.enable_rotation:
            return logging.handlers.RotatingFileHandler(
                filename=self.log_file,
                maxBytes=parse_size(self.max_file_size),
                backupCount=self.backup_count
            )
        return logging.FileHandler(self.log_file)
    
    @classmethod
    def from_config(
        cls,
        logging_config: Dict[str, Any],
        console_handler: Optional[logging.Handler] = None,
    ) -> "LoggingManager":
        """
        Build a manager from the ``logging`` section of config.json.
        
        Recognized keys: ``level``, ``format``, ``file``, ``rotate``,
        ``maxFileSize`` and ``backupCount``.
        """
        level = LogLevel[str(logging_config.get('level', 'INFO')).upper()]
        log_format = LogFormat(logging_config.get('format', LogFormat.STANDARD.value))
        log_file = logging_config.get('file')
        return cls(
            log_level=level,
            log_format=log_format,
            log_file=Path(log_file) if log_file else None,
            enable_rotation=bool(logging_config.get('rotate', False)),
            max_file_size=logging_config.get('maxFileSize', "10MB"),
            backup_count=logging_config.get('backupCount', 5),
            console_handler=console_handler,
        )


def parse_size(size: str) -> int:
    """Parse '10MB'-style sizes into a byte count."""
    units = {'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}
    suffix = size[-2:].upper()
    if suffix in units:
        return int(size[:-2]) * units[suffix]
    return int(size)
