"""Domain exceptions for the record cache.

Lookups report absence by returning None; these exceptions cover the
failures a caller must handle: missing pre-images on mutation, KV-store
transport failures, malformed cached payloads and unsupported operations.
"""

from typing import Any


class RecordCacheException(Exception):
    """Base exception for all record cache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. key, record_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class RecordNotFoundError(RecordCacheException):
    """Raised when a mutation targets a record that does not exist in the store."""

    def __init__(self, table: str, record_id: Any) -> None:
        super().__init__(
            f"Record not found: {table}/{record_id}",
            "RECORD_NOT_FOUND",
            {"table": table, "record_id": record_id},
        )


class CacheTransportError(RecordCacheException):
    """KV-store communication failure or per-call timeout."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Cache {operation} failed: {reason}",
            "CACHE_TRANSPORT_ERROR",
            {"operation": operation, "reason": reason},
        )


class CacheSerializationError(RecordCacheException):
    """Cached payload could not be encoded or decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Malformed cache payload for key {key!r}",
            "CACHE_SERIALIZATION_ERROR",
            {"key": key, "reason": reason},
        )


class UnsupportedOperationError(RecordCacheException):
    """Operation not supported by this engine or storage backend."""

    def __init__(self, operation: str, backend: str, hint: str | None = None) -> None:
        message = f"Operation '{operation}' not supported by {backend}"
        if hint:
            message = f"{message}; {hint}"
        super().__init__(
            message,
            "UNSUPPORTED_OPERATION",
            {"operation": operation, "backend": backend},
        )


class UnknownIndexFieldError(RecordCacheException):
    """No value extractor registered for a unique index field."""

    def __init__(self, field: str) -> None:
        super().__init__(
            f"No field getter registered for unique index field '{field}'",
            "UNKNOWN_INDEX_FIELD",
            {"field": field},
        )


class DocumentExistsError(RecordCacheException):
    """Document store rejected a create because the document ID already exists."""

    def __init__(self, document_id: str) -> None:
        super().__init__(
            f"Document already exists: {document_id}",
            "DOCUMENT_EXISTS",
            {"document_id": document_id},
        )
