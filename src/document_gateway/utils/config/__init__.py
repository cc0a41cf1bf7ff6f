"""Configuration management package.

This package provides the configuration system with support for:
- JSON schema validation
- Environment variable overrides (including a .env file)
- Default value resolution

Usage:
    from document_gateway.utils.config import ConfigManager
    
    config = ConfigManager()
    store_config = config.store_config()
"""

from .manager import ConfigManager
from .paths import ConfigPaths
from .file_operations import FileOperations
from .schema_validation import SchemaValidator
from .environment import EnvironmentHandler

__all__ = [
    'ConfigManager',
    'ConfigPaths',
    'FileOperations',
    'SchemaValidator',
    'EnvironmentHandler'
]
