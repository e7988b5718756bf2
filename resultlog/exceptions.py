"""Custom exception classes for resultlog."""


class ResultLogError(Exception):
    """Base class for resultlog exceptions."""


class OutputStoreError(ResultLogError, OSError):
    """Raised when captured output cannot be written or read."""


class SerializationError(ResultLogError, OSError):
    """Raised when class results cannot be persisted or loaded."""
