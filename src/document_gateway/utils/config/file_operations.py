"""
File operations for configuration management.

This module provides file loading, path resolution, and environment loading
capabilities for the configuration system.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union
from dotenv import load_dotenv

from ...exceptions.config_exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
)


logger = logging.getLogger(__name__)


class FileOperations:
    """
    File operations for configuration management.
    
    Handles file loading, path resolution, and environment variable loading.
    """
    
    def __init__(self, project_root: Path, env_file: str) -> None:
        """
        Initialize file operations.
        
        Args:
            project_root: Project root directory
            env_file: Environment file name
        """
        self.project_root = project_root
        self.env_file = env_file
        self.logger = logger
    
    def resolve_path(self, path: Union[str, Path]) -> Path:
        """
        Resolve a path relative to the project root.
        
        Args:
            path: Path to resolve (can be relative or absolute)
            
        Returns:
            Resolved absolute path
        """
        path_obj = Path(path)
        if path_obj.is_absolute():
            return path_obj
        return (self.project_root / path_obj).resolve()
    
    def load_environment_variables(self) -> None:
        """
        Load environment variables from .env file if it exists.
        
        Does not raise errors if .env file is missing.
        """
        env_file_path = self.resolve_path(self.env_file)
        if env_file_path.exists():
            try:
                self.logger.debug(f"Loading environment variables from {env_file_path}")
                load_dotenv(env_file_path)
                self.logger.info(f"Successfully loaded environment variables from {env_file_path}")
            except Exception as e:
                self.logger.warning(f"Failed to load environment variables from {env_file_path}: {e}")
        else:
            self.logger.debug(f"Environment file not found at {env_file_path}, skipping")
    
    def load_json_file(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load and parse a JSON file.
        
        Args:
            file_path: Path to JSON file
            
        Returns:
            Parsed JSON data
            
        Raises:
            ConfigurationFileNotFoundError: If file doesn't exist
            ConfigurationError: If JSON parsing fails
        """
        resolved_path = self.resolve_path(file_path)
        
        self.logger.debug(f"Attempting to load configuration file: {resolved_path}")
        
        if not resolved_path.exists():
            error_msg = f"Configuration file not found: {resolved_path}"
            self.logger.error(error_msg)
            raise ConfigurationFileNotFoundError(error_msg, str(resolved_path))
        
        try:
            with open(resolved_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON in configuration file {resolved_path}: {e}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg, str(resolved_path)) from e
        except PermissionError as e:
            error_msg = f"Permission denied reading configuration file {resolved_path}: {e}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg, str(resolved_path)) from e
        
        if not data:
            # An empty document is as useless as a missing one
            error_msg = f"Configuration file is empty: {resolved_path}"
            self.logger.error(error_msg)
            raise ConfigurationError(error_msg, str(resolved_path))
        
        self.logger.info(f"Successfully loaded configuration from {resolved_path}")
        return data
