"""Schema definitions shared by configuration and store validation."""

from .schemas import CONFIG_SCHEMA, DATABASE_OBJECT_SCHEMA, DISPATCH_OPTIONS_SCHEMA

__all__ = [
    "CONFIG_SCHEMA",
    "DATABASE_OBJECT_SCHEMA",
    "DISPATCH_OPTIONS_SCHEMA",
]
