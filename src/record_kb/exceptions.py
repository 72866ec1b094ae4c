from __future__ import annotations


class RecordKBError(Exception):
    """Base class for errors raised by the record knowledge base."""


class ValidationError(RecordKBError, ValueError):
    """Raised for a missing owner, blank text or query, or a non-positive limit."""


class StoreError(RecordKBError):
    """Raised when the persistence backend fails to read or write."""


class StoreCancelledError(StoreError):
    """Raised when a store call is cancelled before it committed anything."""


class ConfigurationError(RecordKBError):
    """Raised for invalid or missing configuration."""
