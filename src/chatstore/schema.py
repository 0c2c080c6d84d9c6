"""
Schema definitions for chatstore.

This module defines the Pydantic models used throughout chatstore:
- ChatRecord: The single persisted entity (one chat session)
- StoreConfig: Where the store lives and how it allocates and recovers
- RecoveryMode: What to do when the stored schema version conflicts

Message entries are opaque. The store never inspects their content; it only
preserves their order and count. The one exception is fork, which matches an
entry by its "id" key.
"""

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatstore.errors import InvalidTimestampError


# =============================================================================
# Enums
# =============================================================================


class RecoveryMode(str, Enum):
    """
    Behaviour when an existing store has an unsupported schema version.

    RECREATE destroys the store and starts again at version 1 (all history
    is lost). BACKUP moves the old file aside before recreating. DISABLED
    leaves the file untouched and reports the store as unavailable.
    """

    RECREATE = "recreate"
    BACKUP = "backup"
    DISABLED = "disabled"


# =============================================================================
# Timestamp Helpers
# =============================================================================


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Naive values are taken to be UTC.

    Raises:
        InvalidTimestampError: If the value does not parse
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError) as e:
        raise InvalidTimestampError(timestamp=str(value)) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# =============================================================================
# Record Model
# =============================================================================


class ChatRecord(BaseModel):
    """
    A persisted chat session.

    Attributes:
        id: Primary key, immutable once assigned
        url_id: Unique human-shareable slug (serialized as "urlId")
        description: Free text title, may be absent
        messages: Ordered, opaque message entries
        timestamp: ISO-8601 time of the last write
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(..., description="Primary key", min_length=1)
    url_id: str | None = Field(
        default=None,
        alias="urlId",
        description="Unique human-shareable slug",
    )
    description: str | None = Field(default=None, description="Session title")
    messages: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Ordered opaque message entries",
    )
    timestamp: str = Field(
        default_factory=now_iso,
        description="ISO-8601 time of the last write",
    )

    @field_validator("url_id")
    @classmethod
    def blank_slug_is_none(cls, v: str | None) -> str | None:
        """A blank slug means no slug, so it stays out of the unique index."""
        if v is None or not v.strip():
            return None
        return v

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        """Reject timestamps that do not parse."""
        try:
            parse_timestamp(v)
        except InvalidTimestampError as e:
            raise ValueError(e.message) from e
        return v

    @property
    def written_at(self) -> datetime:
        """The record timestamp as an aware datetime."""
        return parse_timestamp(self.timestamp)


# =============================================================================
# Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """
    Configuration for opening and using a chat store.

    Attributes:
        db_path: SQLite file holding the store (":memory:" for tests)
        max_slug_suffix: Highest numeric suffix probed before falling back
        random_slug_prefix: Prefix for slugs minted without any seed
        recovery: What to do on a schema version conflict
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    db_path: Path = Field(
        default=Path("chat_history.db"),
        description="SQLite file holding the store",
    )
    max_slug_suffix: int = Field(
        default=1000,
        description="Highest numeric suffix probed for a colliding slug",
        ge=2,
    )
    random_slug_prefix: str = Field(
        default="chat-",
        description="Prefix for slugs minted without a seed",
        min_length=1,
    )
    recovery: RecoveryMode = Field(
        default=RecoveryMode.RECREATE,
        description="Behaviour on a schema version conflict",
    )


def load_config(path: Path | str) -> StoreConfig:
    """
    Load store configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return StoreConfig.model_validate(data or {})


def load_config_from_string(content: str) -> StoreConfig:
    """Load store configuration from a YAML string."""
    data = yaml.safe_load(content)
    return StoreConfig.model_validate(data or {})
