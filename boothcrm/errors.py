"""
Error taxonomy for Booth CRM.
Client errors (validation, not found, conflict) are raised before any mutation.
"""

from typing import Optional


class BoothCRMError(Exception):
    """Base exception for Booth CRM"""
    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(BoothCRMError, ValueError):
    """Missing or malformed input field"""
    def __init__(self, message: str = "Validation failed", field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundError(BoothCRMError, LookupError):
    """No record with the given id"""
    def __init__(self, resource: str = "Record", resource_id: Optional[str] = None):
        self.resource = resource
        self.resource_id = resource_id
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} '{resource_id}' not found"
        super().__init__(message)


class ConflictError(BoothCRMError):
    """Record with the same unique value already exists"""
    def __init__(self, resource: str = "Record", field: Optional[str] = None, value: Optional[str] = None):
        self.field = field
        if field and value:
            message = f"{resource} with {field} '{value}' already exists"
        else:
            message = f"{resource} already exists"
        super().__init__(message)


class StorageError(BoothCRMError, RuntimeError):
    """Read or write failure in the persistence layer"""


class NotificationError(BoothCRMError, RuntimeError):
    """Best-effort side effect (email, CRM sync) failed"""
