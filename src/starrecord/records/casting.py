"""
Attribute Casting - Storage Values to Python Values

🔄 Type Coercion Rules:
Raw attribute values come from storage as text and numbers. This module
turns them into Python values on read (casts, date coercion, JSON
decoding) and back into storage values on write.

Date coercion (``as_date_time``):
- ``datetime`` is returned unchanged, ``date`` is promoted to midnight
- other date-like objects exposing ``isoformat()`` are rebuilt as ``datetime``
  keeping their timezone and microseconds
- numbers and numeric strings are Unix timestamps (UTC, returned naive)
- ``YYYY-MM-DD`` strings are that day at 00:00:00
- anything else is parsed with the storage date format
"""

from abc import ABC
from datetime import date, datetime, timezone
from typing import Any, Optional, Tuple
import json
import logging
import re

from pydantic_core import to_jsonable_python

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_STANDARD_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")

INTEGER_CASTS = {"int", "integer"}
FLOAT_CASTS = {"float", "real", "double"}
BOOLEAN_CASTS = {"bool", "boolean"}
STRING_CASTS = {"str", "string"}
DATE_CASTS = {"date", "datetime"}
JSON_CASTS = {"array", "json", "object", "collection"}

class AttributeCast(ABC):
    """
    Base class for custom casts.

    ``get`` turns the raw value into what callers read, ``set`` turns an
    assigned value into what is stored. Both default to passing the value
    through.
    """

    def get(self, record: Any, key: str, value: Any) -> Any:
        return value

    def set(self, record: Any, key: str, value: Any) -> Any:
        return value

# Dates
def as_date_time(value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> datetime:
    """Coerce a value into a datetime"""
    if isinstance(value, datetime):
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    # Foreign date-time objects (arrow, pendulum proxies, ...)
    if not isinstance(value, (str, bytes, int, float)) and hasattr(value, "isoformat") and hasattr(value, "tzinfo"):
        return datetime.fromisoformat(value.isoformat())

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_timestamp(value)

    if isinstance(value, bytes):
        value = value.decode("utf-8")

    if not isinstance(value, str):
        raise TypeError(f"Cannot convert {type(value).__name__} to a date")

    text = value.strip()
    if _NUMERIC.match(text):
        return _from_timestamp(float(text))

    if _STANDARD_DATE.match(text):
        year, month, day = (int(part) for part in _STANDARD_DATE.match(text).groups())
        return datetime(year, month, day)

    # Values written before sub-second precision was stored lack the fraction
    if ".%f" in date_format and "." not in text:
        text = f"{text}.000000"

    try:
        return datetime.strptime(text, date_format)
    except ValueError:
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            pass
        raise

def _from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)

def from_date_time(value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> Optional[str]:
    """Convert a date value into its storage text"""
    if value is None or value == "":
        return None
    return as_date_time(value, date_format).strftime(date_format)

def as_timestamp(value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> int:
    moment = as_date_time(value, date_format)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())

# JSON
def encode_json(value: Any) -> str:
    """Encode a value as compact JSON text"""
    return json.dumps(value, separators=(",", ":"), default=to_jsonable_python)

def decode_json(value: Any) -> Tuple[bool, Any]:
    """
    Decode JSON text.

    Returns:
        (True, decoded) on success, (False, value) when the text is not JSON
    """
    if not isinstance(value, (str, bytes)):
        return False, value
    try:
        return True, json.loads(value)
    except ValueError:
        return False, value

def is_structured(value: Any) -> bool:
    """Values that need JSON encoding before they can be stored"""
    return isinstance(value, (dict, list, tuple, set))

# Casts
def is_json_cast(cast: Any) -> bool:
    return isinstance(cast, str) and cast.lower() in JSON_CASTS

def is_date_cast(cast: Any) -> bool:
    return isinstance(cast, str) and cast.lower() in DATE_CASTS | {"timestamp"}

def is_custom_cast(cast: Any) -> bool:
    return not isinstance(cast, str)

def resolve_custom_cast(cast: Any) -> Any:
    """Custom casts may be declared as a class; use an instance"""
    if isinstance(cast, type):
        return cast()
    return cast

def cast_to_python(record: Any, key: str, cast: Any, value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> Any:
    """Apply a read cast to a raw value"""
    if is_custom_cast(cast):
        cast = resolve_custom_cast(cast)
        if hasattr(cast, "get"):
            return cast.get(record, key, value)
        return cast(value)

    if value is None:
        return None

    name = cast.lower()
    if name in INTEGER_CASTS:
        return int(value)
    if name in FLOAT_CASTS:
        return float(value)
    if name in BOOLEAN_CASTS:
        if isinstance(value, str):
            return value.strip().lower() not in ("", "0", "false")
        return bool(value)
    if name in STRING_CASTS:
        return str(value)
    if name == "date":
        return as_date_time(value, date_format).replace(hour=0, minute=0, second=0, microsecond=0)
    if name == "datetime":
        return as_date_time(value, date_format)
    if name == "timestamp":
        return as_timestamp(value, date_format)
    if name in JSON_CASTS:
        if isinstance(value, (str, bytes)):
            decoded, result = decode_json(value)
            return result if decoded else value
        return value

    logger.debug(f"Unknown cast '{cast}' for attribute '{key}', value left as is")
    return value

def cast_for_storage(record: Any, key: str, cast: Any, value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> Any:
    """Apply a write cast to an assigned value"""
    if is_custom_cast(cast):
        cast = resolve_custom_cast(cast)
        if hasattr(cast, "set"):
            return cast.set(record, key, value)
        return value

    if value is None:
        return None

    if is_json_cast(cast) and not isinstance(value, str):
        return encode_json(value)
    if is_date_cast(cast) and cast.lower() != "timestamp":
        return from_date_time(value, date_format)
    return value

__all__ = [
    "AttributeCast", "as_date_time", "from_date_time", "as_timestamp",
    "encode_json", "decode_json", "is_structured",
    "is_json_cast", "is_date_cast", "cast_to_python", "cast_for_storage",
    "DEFAULT_DATE_FORMAT"
]
