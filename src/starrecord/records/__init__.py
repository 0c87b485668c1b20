"""
Records - Row Backed Domain Objects

🏗️ Organized by Concern:
- lifecycle/: the Record class
- mixins/: attribute pipeline, events, relations, persistence, extensions
- casting: value coercion between storage and Python
- errors: record exceptions
"""

from .lifecycle import Record
from .mixins import RecordExtension
from .casting import AttributeCast, as_date_time
from .errors import (
    RecordError, AttributeNameError, JsonableConfigurationError,
    IdentityImmutableError, LazyLoadingViolationError, RelationNotFoundError,
    MassAssignmentError, ExtensionError
)

__all__ = [
    "Record", "RecordExtension", "AttributeCast", "as_date_time",
    "RecordError", "AttributeNameError", "JsonableConfigurationError",
    "IdentityImmutableError", "LazyLoadingViolationError", "RelationNotFoundError",
    "MassAssignmentError", "ExtensionError"
]
