from __future__ import annotations


class ValidationError(ValueError):
    """Malformed or missing input. The caller must fix the request."""


class InvalidEnumError(ValidationError):
    """A day, period or other closed-set value outside its enumeration."""


class InvalidCategoryError(InvalidEnumError):
    pass


class ConflictError(ValidationError):
    """A uniqueness invariant would be violated by the requested write."""


class NotFoundError(LookupError):
    pass


class StorageReclaimWarning(UserWarning):
    """Backing storage for a removed record could not be deleted.

    Collected on results, never raised: the logical mutation already committed.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f'Failed to reclaim {path}: {reason}')
        self.path = path
        self.reason = reason


class AccessDeniedError(PermissionError):
    pass
