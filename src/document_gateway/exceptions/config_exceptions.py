"""
Configuration errors raised while loading config.json.

Each error carries the file it came from and a list of hints that name the
settings (and their ``DOCSTORE_*`` environment overrides) involved.
"""

from typing import Dict, List, Optional

# Hints per config field, keyed by the field path jsonschema reports
FIELD_HINTS: Dict[str, str] = {
    "serverURL": "serverURL: host name or mongodb:// URL (env: DOCSTORE_SERVER_URL)",
    "port": 'port: digits as a string, e.g. "27017" (env: DOCSTORE_PORT)',
    "dbName": "dbName: non-empty database name (env: DOCSTORE_DB_NAME)",
    "logging.level": "logging.level: DEBUG, INFO, WARNING, ERROR or CRITICAL (env: DOCSTORE_LOG_LEVEL)",
    "logging.format": "logging.format: standard, json or detailed (env: DOCSTORE_LOG_FORMAT)",
    "logging.maxFileSize": 'logging.maxFileSize: a size such as "10MB"',
}


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""
    
    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        suggestions: Optional[List[str]] = None
    ) -> None:
        super().__init__(message)
        self.config_file = config_file
        self.suggestions = suggestions or []
    
    def __str__(self) -> str:
        lines = [super().__str__()]
        if self.config_file:
            lines.append(f"Config file: {self.config_file}")
        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            lines.extend(f"  {i}. {hint}" for i, hint in enumerate(self.suggestions, 1))
        return "\n".join(lines)


class ConfigurationFileNotFoundError(ConfigurationError):
    """Raised when config.json (or the file given with -c) does not exist."""
    
    def __init__(self, message: str, config_file: Optional[str] = None) -> None:
        suggestions = [
            "Run docstore from the directory holding config.json, or pass it: docstore -c PATH check-config",
            'The smallest valid file is {"serverURL": "localhost", "dbName": "mydb"}',
            "DOCSTORE_SERVER_URL, DOCSTORE_PORT and DOCSTORE_DB_NAME override the file's values",
        ]
        super().__init__(message, config_file, suggestions)


class ConfigurationValidationError(ConfigurationError):
    """Raised when config.json does not match the configuration schema."""
    
    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        validation_errors: Optional[List[str]] = None,
        invalid_fields: Optional[List[str]] = None
    ) -> None:
        """
        Initialize validation error.
        
        Args:
            message: Error description
            config_file: Configuration file with validation errors
            validation_errors: Schema violations, ordered by field path
            invalid_fields: Field paths that failed validation
        """
        invalid_fields = invalid_fields or []
        
        suggestions = []
        if invalid_fields:
            suggestions.append(f"Fix these fields: {', '.join(invalid_fields)}")
            suggestions.extend(FIELD_HINTS[f] for f in invalid_fields if f in FIELD_HINTS)
        else:
            suggestions.append("serverURL and dbName are required (env: DOCSTORE_SERVER_URL, DOCSTORE_DB_NAME)")
        
        super().__init__(message, config_file, suggestions)
        self.validation_errors = validation_errors or []
        self.invalid_fields = invalid_fields
    
    def __str__(self) -> str:
        msg = super().__str__()
        if self.validation_errors:
            msg += "\n\nValidation errors:\n"
            msg += "\n".join(f"  - {error}" for error in self.validation_errors)
        return msg
