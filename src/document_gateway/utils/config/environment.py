"""
Environment variable handling for configuration management.

This module maps environment variables onto configuration keys so a
deployment can override ``config.json`` without editing it.
"""

import logging
import os
from copy import deepcopy
from typing import Any, Dict


logger = logging.getLogger(__name__)


class EnvironmentHandler:
    """
    Environment variable handling for configuration management.
    
    Handles environment variable overrides of configuration values.
    """
    
    def __init__(self) -> None:
        """Initialize environment handler."""
        self.logger = logger
    
    def get_env_mapping(self) -> Dict[str, str]:
        """
        Get mapping of environment variable names to configuration keys.
        
        Returns:
            Dictionary mapping env var names to config keys
        """
        return {
            'DOCSTORE_SERVER_URL': 'serverURL',
            'DOCSTORE_PORT': 'port',
            'DOCSTORE_DB_NAME': 'dbName',
            'DOCSTORE_LOG_LEVEL': 'logging.level',
            'DOCSTORE_LOG_FORMAT': 'logging.format',
        }
    
    def apply_environment_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides to configuration.
        
        Args:
            config: Base configuration dictionary
            
        Returns:
            Configuration with environment overrides applied
        """
        result = deepcopy(config)
        
        for env_var, config_key in self.get_env_mapping().items():
            env_value = os.getenv(env_var)
            if not env_value:
                continue
            
            keys = config_key.split('.')
            target = result
            for k in keys[:-1]:
                if not isinstance(target.get(k), dict):
                    target[k] = {}
                target = target[k]
            target[keys[-1]] = env_value
            self.logger.debug(f"Applied environment override {env_var} -> {config_key}")
        
        return result
