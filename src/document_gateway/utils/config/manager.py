"""
Main configuration manager for the document gateway.

This module provides the ConfigManager class that loads ``config.json``,
applies environment overrides and defaults, and validates the result
against the configuration schema.
"""

import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from ...exceptions.config_exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from ...models.schemas import CONFIG_SCHEMA
from .paths import ConfigPaths
from .file_operations import FileOperations
from .schema_validation import SchemaValidator
from .environment import EnvironmentHandler

if TYPE_CHECKING:
    from ...core.store.types import StoreConfig


logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Configuration manager for the document gateway.
    
    Handles loading and validation of configuration from:
    - The configuration file (default: config.json)
    - A .env file in the project root
    - Environment variables
    """
    
    def __init__(
        self,
        config_file: Optional[str] = None,
        project_root: Optional[Union[str, Path]] = None,
        load_env: bool = True,
    ) -> None:
        """
        Initialize the ConfigManager.
        
        Args:
            config_file: Path to configuration file (default: config.json)
            project_root: Project root directory (default: current working directory)
            load_env: Whether to load environment variables from .env file
        """
        self.project_root = Path(project_root or os.getcwd()).resolve()
        self.config_file = config_file or ConfigPaths.DEFAULT_CONFIG_FILE
        self.paths = ConfigPaths()
        
        self._config: Dict[str, Any] = {}
        self._loaded = False
        
        self.logger = logger
        
        self.file_ops = FileOperations(self.project_root, self.paths.ENV_FILE)
        self.schema_validator = SchemaValidator()
        self.env_handler = EnvironmentHandler()
        
        if load_env:
            self.file_ops.load_environment_variables()
    
    @property
    def config(self) -> Dict[str, Any]:
        """Get the current configuration. Loads if not already loaded."""
        if not self._loaded:
            self.load_config()
        return deepcopy(self._config)
    
    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._loaded
    
    def load_config(self, force_reload: bool = False) -> Dict[str, Any]:
        """
        Load configuration from file and environment.
        
        Args:
            force_reload: Force reloading even if already loaded
            
        Returns:
            Loaded configuration dictionary
            
        Raises:
            ConfigurationFileNotFoundError: If the configuration file is missing
            ConfigurationValidationError: If validation fails
            ConfigurationError: If loading fails for any other reason
        """
        if self._loaded and not force_reload:
            self.logger.debug("Configuration already loaded, returning cached version")
            return deepcopy(self._config)
        
        self.logger.info(f"Loading configuration from {self.config_file}")
        
        try:
            raw_config = self.file_ops.load_json_file(self.config_file)
            if not isinstance(raw_config, dict):
                raise ConfigurationValidationError(
                    "Configuration must be a JSON object",
                    self.config_file,
                    [f"got {type(raw_config).__name__}"],
                )
            
            config = self.env_handler.apply_environment_overrides(raw_config)
            config.setdefault('port', self.paths.DEFAULT_PORT)
            
            self.validate_config(config)
            
            self._config = config
            self._loaded = True
            self.logger.info("Configuration loaded successfully")
            return deepcopy(self._config)
        
        except (ConfigurationValidationError, ConfigurationFileNotFoundError) as e:
            self.logger.error(f"Configuration loading failed: {e.args[0]}")
            self._loaded = False
            raise
        except ConfigurationError:
            self._loaded = False
            raise
        except Exception as e:
            error_msg = f"Unexpected error loading configuration: {e}"
            self.logger.error(error_msg, exc_info=True)
            self._loaded = False
            raise ConfigurationError(error_msg, self.config_file) from e
    
    def reload_config(self) -> Dict[str, Any]:
        """Force reload configuration from all sources."""
        return self.load_config(force_reload=True)
    
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """
        Validate configuration against the configuration schema.
        
        Returns:
            True if validation passes
            
        Raises:
            ConfigurationValidationError: If validation fails
        """
        ok, errors = self.schema_validator.validate(config, CONFIG_SCHEMA)
        if not ok:
            invalid_fields = sorted({e.split(':', 1)[0] for e in errors if ':' in e})
            raise ConfigurationValidationError(
                "Configuration validation failed",
                self.config_file,
                errors,
                invalid_fields,
            )
        return True
    
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key using dot notation.
        
        Args:
            key: Configuration key (supports dot notation like 'logging.level')
            default: Default value if key not found
            
        Returns:
            Configuration value or default
        """
        config = self.config
        
        try:
            for k in key.split('.'):
                config = config[k]
            return config
        except (KeyError, TypeError):
            return default
    
    def reset(self) -> None:
        """Reset configuration state, forcing reload on next access."""
        self._config = {}
        self._loaded = False
    
    def store_config(self) -> "StoreConfig":
        """
        Build the store connection settings from the loaded configuration.
        
        Returns:
            StoreConfig for the ConnectionManager
        """
        from ...core.store.types import StoreConfig
        
        config = self.config
        return StoreConfig(
            server_url=config['serverURL'],
            db_name=config['dbName'],
            port=str(config.get('port', self.paths.DEFAULT_PORT)),
            collections=config.get('collections') or {},
            scheme=self.paths.URL_SCHEME,
        )
