"""
Schema validation for configuration files and database objects.

This module wraps ``jsonschema`` so callers get either a ``(ok, errors)``
report or a raised exception of their choosing.
"""

import logging
from typing import Any, Dict, List, Mapping, Tuple, Type

import jsonschema


logger = logging.getLogger(__name__)


class SchemaValidator:
    """
    JSON schema validation with ordered diagnostic messages.
    
    Validators are cached per schema ``$id`` so repeated validation of
    database objects does not re-check the schema itself.
    """
    
    def __init__(self) -> None:
        self.logger = logger
        self._validators: Dict[str, Any] = {}
    
    def _validator_for(self, schema: Mapping[str, Any]) -> Any:
        schema_id = schema.get("$id")
        if schema_id and schema_id in self._validators:
            return self._validators[schema_id]
        
        validator_cls = jsonschema.validators.validator_for(schema, default=jsonschema.Draft7Validator)
        validator_cls.check_schema(schema)
        validator = validator_cls(schema)
        if schema_id:
            self._validators[schema_id] = validator
        return validator
    
    def validate(self, payload: Any, schema: Mapping[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate a payload against a JSON schema.
        
        Args:
            payload: Object to validate
            schema: JSON schema
            
        Returns:
            Tuple of (passed, error messages ordered by field path)
        """
        validator = self._validator_for(schema)
        errors = sorted(
            validator.iter_errors(payload),
            key=lambda e: ([str(p) for p in e.absolute_path], e.message),
        )
        
        messages = []
        for error in errors:
            if error.absolute_path:
                field_path = ".".join(str(p) for p in error.absolute_path)
                messages.append(f"{field_path}: {error.message}")
            else:
                messages.append(error.message)
        
        if messages:
            self.logger.debug(f"{schema.get('$id', 'payload')} is not valid: {messages}")
        
        return not messages, messages
    
    def validate_or_raise(
        self,
        payload: Any,
        schema: Mapping[str, Any],
        error_cls: Type[Exception],
    ) -> None:
        """
        Validate a payload and raise ``error_cls`` when it does not conform.
        
        ``error_cls`` is called with the summary message and the list of
        diagnostic messages.
        """
        ok, errors = self.validate(payload, schema)
        if not ok:
            raise error_cls(f"{schema.get('$id', 'payload')} is not valid", errors)
