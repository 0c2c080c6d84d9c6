"""
Exception hierarchy for chatstore.

All chatstore exceptions inherit from ChatStoreError, allowing callers to
catch every store-specific failure with a single except clause.

Exception Categories:
    - StoreUnavailableError: No usable embedded store on this host
    - SchemaVersionConflictError: Stored schema is newer than this code
    - StoreError: A storage transaction failed (read, write, constraint)
    - InvalidTimestampError / InvalidRecordError / EmptyDescriptionError /
      MessageNotFoundError: Caller input rejected before any write happens

Schema conflicts are recovered internally by the schema manager and only
surface through logging. Input errors are raised immediately, never retried.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Store lifecycle errors: 1xxx
ERROR_STORE_UNAVAILABLE = 1001
ERROR_SCHEMA_VERSION_CONFLICT = 1002

# Storage errors: 2xxx
ERROR_STORAGE_READ = 2001
ERROR_STORAGE_WRITE = 2002
ERROR_CONSTRAINT_VIOLATION = 2003
ERROR_PERSIST_FAILED = 2004

# Input errors: 3xxx
ERROR_INVALID_TIMESTAMP = 3001
ERROR_EMPTY_DESCRIPTION = 3002
ERROR_MESSAGE_NOT_FOUND = 3003
ERROR_SESSION_NOT_FOUND = 3004
ERROR_IMPORT_FORMAT = 3005
ERROR_INVALID_RECORD = 3006


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ChatStoreError(Exception):
    """
    Base exception for all chatstore errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Store Lifecycle Errors
# =============================================================================


@dataclass
class StoreUnavailableError(ChatStoreError):
    """
    Raised when the host cannot provide an embedded store.

    Non-fatal: callers should fall back to running without history.
    """

    db_path: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Chat history store unavailable at {self.db_path}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_STORE_UNAVAILABLE
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        self.context.update({
            "db_path": self.db_path,
            "reason": self.reason,
        })


@dataclass
class SchemaVersionConflictError(ChatStoreError):
    """Raised when the stored schema version is not one this code can open."""

    db_path: str = ""
    found_version: int = 0
    supported_version: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Schema version {self.found_version} in {self.db_path} "
                f"does not match supported version {self.supported_version}"
            )
        if self.code == 0:
            self.code = ERROR_SCHEMA_VERSION_CONFLICT
        self.context.update({
            "db_path": self.db_path,
            "found_version": self.found_version,
            "supported_version": self.supported_version,
        })


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StoreError(ChatStoreError):
    """
    Base class for storage transaction errors.

    Attributes:
        operation: The operation that failed (e.g., "put", "get_all")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageReadError(StoreError):
    """Raised when a read transaction fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageWriteError(StoreError):
    """Raised when a write transaction fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class ConstraintViolationError(StoreError):
    """
    Raised when a write collides with another record's slug.

    The primary key never collides on put, since put replaces by id.
    """

    session_id: str = ""
    url_id: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Slug {self.url_id!r} is already used by another session"
        if self.code == 0:
            self.code = ERROR_CONSTRAINT_VIOLATION
        super().__post_init__()
        self.context.update({
            "session_id": self.session_id,
            "url_id": self.url_id,
        })


@dataclass
class PersistFailedError(StoreError):
    """Raised when a save still fails after the slug collision retry."""

    session_id: str = ""
    attempted_url_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Could not persist session {self.session_id} "
                f"after {len(self.attempted_url_ids)} attempts"
            )
        if self.code == 0:
            self.code = ERROR_PERSIST_FAILED
        super().__post_init__()
        self.context.update({
            "session_id": self.session_id,
            "attempted_url_ids": self.attempted_url_ids,
        })


# =============================================================================
# Input Errors
# =============================================================================


@dataclass
class InvalidTimestampError(ChatStoreError):
    """Raised when a caller-supplied timestamp is not ISO-8601."""

    timestamp: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid timestamp: {self.timestamp!r}"
        if self.code == 0:
            self.code = ERROR_INVALID_TIMESTAMP
        if not self.suggestion:
            self.suggestion = "Use an ISO-8601 datetime such as 2024-01-31T12:00:00Z"
        self.context["timestamp"] = self.timestamp


@dataclass
class EmptyDescriptionError(ChatStoreError):
    """Raised when a description update is blank."""

    session_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Description cannot be empty"
        if self.code == 0:
            self.code = ERROR_EMPTY_DESCRIPTION
        self.context["session_id"] = self.session_id


@dataclass
class MessageNotFoundError(ChatStoreError):
    """Raised when a fork point is not among the session's messages."""

    session_id: str = ""
    message_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Message {self.message_id} not found in session {self.session_id}"
        if self.code == 0:
            self.code = ERROR_MESSAGE_NOT_FOUND
        self.context.update({
            "session_id": self.session_id,
            "message_id": self.message_id,
        })


@dataclass
class SessionNotFoundError(ChatStoreError):
    """Raised when an id or slug does not resolve to a stored session."""

    id_or_slug: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Session not found: {self.id_or_slug}"
        if self.code == 0:
            self.code = ERROR_SESSION_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Run 'chatstore list' to see stored sessions"
        self.context["id_or_slug"] = self.id_or_slug


@dataclass
class ImportFormatError(ChatStoreError):
    """Raised when an import payload matches no known export layout."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unsupported chat import format: {self.detail}"
        if self.code == 0:
            self.code = ERROR_IMPORT_FORMAT
        self.context["detail"] = self.detail


@dataclass
class InvalidRecordError(ChatStoreError):
    """Raised when a session cannot be built from the caller's values."""

    session_id: str = ""
    errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            detail = "; ".join(self.errors) or "invalid values"
            self.message = f"Invalid session {self.session_id!r}: {detail}"
        if self.code == 0:
            self.code = ERROR_INVALID_RECORD
        if not self.suggestion:
            self.suggestion = "Use a non-empty id and a list of message objects"
        self.context.update({
            "session_id": self.session_id,
            "errors": self.errors,
        })
