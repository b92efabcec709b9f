"""
Error taxonomy for Goto Platform.

Every failure the store or a storage backend can report is one of these
types. The API layer maps each one to a single HTTP status:

    ValidationError  -> 400
    ConflictError    -> 409
    NotFoundError    -> 404
    PersistenceError -> 500
    DecodeError      -> fatal at startup (never reaches a request)
"""

__all__ = [
    "GotoError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "DecodeError",
    "PersistenceError",
]


class GotoError(Exception):
    """Base class for all Goto Platform errors."""


class ValidationError(GotoError, ValueError):
    """Malformed short code or target URL."""


class ConflictError(GotoError):
    """The short code is already mapped to a target."""

    def __init__(self, code: str):
        super().__init__(f"short code {code!r} is already registered")
        self.code = code


class NotFoundError(GotoError):
    """No mapping exists for the short code."""

    def __init__(self, code: str):
        super().__init__(f"short code {code!r} not found")
        self.code = code


class DecodeError(GotoError, ValueError):
    """The persisted mapping file exists but cannot be parsed."""


class PersistenceError(GotoError):
    """Reading or writing the persisted mapping file failed."""
