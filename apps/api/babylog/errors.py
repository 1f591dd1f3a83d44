"""Error taxonomy shared by the service, the stores and the HTTP layer."""
from __future__ import annotations


class BabyLogError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500
    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(BabyLogError, ValueError):
    """A required field is missing or malformed. Raised before any write."""

    status_code = 400
    code = "validation"


class MissingFamilyCode(ValidationFailure):
    status_code = 401
    code = "missing_family_code"

    def __init__(self, message: str = "Family code is required.") -> None:
        super().__init__(message)


class UnknownResourceError(ValidationFailure):
    """The requested table or entity kind is not one we store."""

    code = "unknown_resource"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown table: {name}")
        self.name = name


class StorageFailure(BabyLogError):
    """The backing store is unavailable or rejected a write."""

    status_code = 500
    code = "storage"
