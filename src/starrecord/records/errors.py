"""
Record Errors

Programming and configuration errors raised by records. A lifecycle hook
refusing an operation is not an error: the operation returns False.
"""

class RecordError(Exception):
    """Base exception for record operations"""
    pass

class AttributeNameError(RecordError):
    """Raised when an attribute is set without a name"""
    pass

class JsonableConfigurationError(RecordError):
    """Raised when a structured value is saved into a non-jsonable attribute"""

    def __init__(self, attribute: str):
        self.attribute = attribute
        super().__init__(
            f'Unexpected type of array when attempting to save attribute "{attribute}", '
            f"try adding it to the jsonable property."
        )

class IdentityImmutableError(RecordError):
    """Raised when the key of a persisted record is changed"""
    pass

class LazyLoadingViolationError(RecordError):
    """Raised when a relation would be lazy loaded while lazy loading is forbidden"""

    def __init__(self, record_type: str, relation: str):
        self.record_type = record_type
        self.relation = relation
        super().__init__(f"Attempted to lazy load [{relation}] on record [{record_type}] but lazy loading is disabled")

class RelationNotFoundError(RecordError):
    """Raised when a relation name is not defined on the record"""
    pass

class MassAssignmentError(RecordError):
    """Raised when filling a record whose attributes are all guarded"""
    pass

class ExtensionError(RecordError):
    """Raised when an extension cannot be attached"""
    pass

__all__ = [
    "RecordError", "AttributeNameError", "JsonableConfigurationError",
    "IdentityImmutableError", "LazyLoadingViolationError", "RelationNotFoundError",
    "MassAssignmentError", "ExtensionError"
]
