"""
Configuration file paths and constants for the document gateway.

This module provides the ConfigPaths dataclass containing default paths
and constants used throughout the configuration system.
"""

from dataclasses import dataclass


@dataclass
class ConfigPaths:
    """Configuration file paths and constants."""
    
    DEFAULT_CONFIG_FILE: str = "config.json"
    ENV_FILE: str = ".env"
    DEFAULT_PORT: str = "27017"
    URL_SCHEME: str = "mongodb"
