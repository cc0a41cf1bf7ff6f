"""
JSON schemas for configuration files, database objects and dispatch options.

The schemas are plain dictionaries consumed by
``document_gateway.utils.config.SchemaValidator``.
"""

from typing import Any, Dict


CONFIG_SCHEMA: Dict[str, Any] = {
    "$id": "/Config",
    "type": "object",
    "properties": {
        "serverURL": {"type": "string", "minLength": 1},
        "port": {"type": "string", "pattern": "^[0-9]+$"},
        "dbName": {"type": "string", "minLength": 1},
        "collections": {"type": "object"},
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
                "format": {"enum": ["standard", "json", "detailed"]},
                "file": {"type": "string"},
                "rotate": {"type": "boolean"},
                "maxFileSize": {"type": "string", "pattern": "^[0-9]+([KMG]B)?$"},
                "backupCount": {"type": "integer", "minimum": 0},
            },
        },
    },
    "required": ["serverURL", "dbName"],
}

# Collection names may not be empty or contain '$' or NUL.
DATABASE_OBJECT_SCHEMA: Dict[str, Any] = {
    "$id": "/DbObject",
    "type": "object",
    "properties": {
        "collection": {"type": "string", "pattern": "^[^$\u0000]+$"},
        "values": {"type": "object"},
        "update": {"type": "object"},
    },
    "required": ["collection"],
}

DISPATCH_OPTIONS_SCHEMA: Dict[str, Any] = {
    "$id": "/DispatchOptions",
    "type": "object",
    "properties": {
        "limit": {"type": "integer", "minimum": 0},
        "upsert": {"type": "boolean"},
        "writeConcern": {
            "anyOf": [
                {"type": "integer", "minimum": 0},
                {"const": "majority"},
            ]
        },
    },
    "additionalProperties": False,
}
