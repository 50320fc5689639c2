"""Validating decode helpers for records read back from storage."""

from enum import Enum
from typing import Any, Dict, Optional, Type


class CorruptStateError(Exception):
    """Raised when a stored record does not match its expected shape."""
    pass


def require_mapping(data: Any, record: str) -> Dict[str, Any]:
    """Ensure a decoded JSON value is an object."""
    if not isinstance(data, dict):
        raise CorruptStateError(
            f"{record} must be an object, got {type(data).__name__}")
    return data


def get_field(data: Dict[str, Any], name: str, kinds, record: str,
              optional: bool = False, default: Any = None) -> Any:
    """
    Read a field and check its type.

    Args:
        data: Decoded record
        name: Field name
        kinds: Type or tuple of types the value must have
        record: Record name used in error messages
        optional: Whether a missing or null value is allowed
        default: Value returned for a missing optional field

    Returns:
        The field value, or the default

    Raises:
        CorruptStateError: If the field is missing or has the wrong type
    """
    value = data.get(name)
    if value is None:
        if optional:
            return default
        raise CorruptStateError(f"{record} is missing required field '{name}'")

    allowed = kinds if isinstance(kinds, tuple) else (kinds,)
    # bool is a subclass of int; only accept it where asked for
    if isinstance(value, bool) and bool not in allowed:
        raise CorruptStateError(f"{record}.{name} must not be a boolean")
    if not isinstance(value, allowed):
        raise CorruptStateError(
            f"{record}.{name} has unexpected type {type(value).__name__}")
    return value


def get_number(data: Dict[str, Any], name: str, record: str,
               minimum: Optional[float] = None, maximum: Optional[float] = None,
               integer: bool = False, optional: bool = False,
               default: Any = None) -> Any:
    """Read a numeric field and check it lies in [minimum, maximum]."""
    value = get_field(data, name, int if integer else (int, float), record,
                      optional=optional, default=default)
    if value is None:
        return None
    if minimum is not None and value < minimum:
        raise CorruptStateError(f"{record}.{name}={value} is below {minimum}")
    if maximum is not None and value > maximum:
        raise CorruptStateError(f"{record}.{name}={value} is above {maximum}")
    return value if integer else float(value)


def get_enum(data: Dict[str, Any], name: str, enum_type: Type[Enum], record: str,
             optional: bool = False, default: Optional[Enum] = None) -> Optional[Enum]:
    """Read a string field and convert it to a member of enum_type."""
    value = get_field(data, name, str, record, optional=optional)
    if value is None:
        return default
    try:
        return enum_type(value)
    except ValueError:
        raise CorruptStateError(
            f"{record}.{name} has unknown value '{value}'")
