"""
Regular expression markers in query payloads.

Callers that cannot build pattern objects (e.g. JSON clients) encode a
regular expression as ``{"$regex": [pattern, flags]}``. The driver sends a
compiled ``re.Pattern`` to the server as a BSON regex, so markers are
compiled before the payload reaches the store.
"""

import logging
import re
from typing import Any, List, MutableMapping

from .types import ValidationError


logger = logging.getLogger(__name__)

REGEX_MARKER = "$regex"

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": re.UNICODE,
}
# Accepted for compatibility with JavaScript clients, meaningless to the store.
_IGNORED_FLAGS = frozenset("g")


def parse_flags(flags: str) -> int:
    """
    Convert a flag string such as ``"im"`` into ``re`` flags.
    
    Raises:
        ValidationError: On an unknown flag
    """
    result = 0
    for flag in flags or "":
        if flag in _IGNORED_FLAGS:
            continue
        if flag not in _FLAG_MAP:
            raise ValidationError(f"unsupported regular expression flag '{flag}'")
        result |= _FLAG_MAP[flag]
    return result


def _is_marker(value: Any) -> bool:
    return (
        isinstance(value, MutableMapping)
        and len(value) == 1
        and isinstance(value.get(REGEX_MARKER), (list, tuple))
    )


def compile_marker(marker: MutableMapping[str, Any]) -> "re.Pattern[str]":
    """Build a pattern from a ``{"$regex": [pattern, flags]}`` marker."""
    spec = list(marker[REGEX_MARKER])
    if not spec or len(spec) > 2 or not isinstance(spec[0], str):
        raise ValidationError(f"malformed $regex marker: {spec!r}")
    
    pattern = spec[0]
    flags = spec[1] if len(spec) == 2 and spec[1] is not None else ""
    if not isinstance(flags, str):
        raise ValidationError(f"malformed $regex flags: {flags!r}")
    
    try:
        return re.compile(pattern, parse_flags(flags))
    except re.error as e:
        raise ValidationError(f"invalid regular expression {pattern!r}: {e}") from e


def _normalize_list(items: List[Any]) -> None:
    for i, item in enumerate(items):
        if _is_marker(item):
            items[i] = compile_marker(item)
        elif isinstance(item, MutableMapping):
            normalize_regex(item)
        elif isinstance(item, list):
            _normalize_list(item)


def normalize_regex(values: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """
    Replace every regex marker inside ``values`` with a compiled pattern.
    
    The mapping is modified in place (nested mappings and lists included)
    and returned for convenience.
    
    Raises:
        ValidationError: If a marker has an unknown flag or a bad pattern
    """
    for key in list(values.keys()):
        value = values[key]
        if _is_marker(value):
            values[key] = compile_marker(value)
            logger.debug(f"Compiled regular expression for field '{key}'")
        elif isinstance(value, MutableMapping):
            normalize_regex(value)
        elif isinstance(value, list):
            _normalize_list(value)
    return values
