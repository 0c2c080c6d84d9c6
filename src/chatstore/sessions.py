"""
Session operations for chatstore.

ChatHistory is the layer collaborators call. It resolves slugs through the
SlugAllocator, mints ids through an IdStrategy and persists through the
RecordStore. Each call is built from independent transactions; the only
automatic retry is the single slug-collision retry in save_messages.

Usage:
    handle = open_store("history.db")
    if handle is None:
        ...  # run without history
    history = ChatHistory(handle)
    history.save_messages("1", [{"id": "m1", "role": "user", "content": "hi"}])
    slug = history.fork_session("1", "m1")
"""

import copy
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from chatstore.errors import (
    ConstraintViolationError,
    EmptyDescriptionError,
    InvalidRecordError,
    MessageNotFoundError,
    PersistFailedError,
    SessionNotFoundError,
    StoreError,
)
from chatstore.ids import IdStrategy, NumericIdStrategy
from chatstore.log import get_logger
from chatstore.schema import ChatRecord, StoreConfig, now_iso, parse_timestamp
from chatstore.slugs import SlugAllocator
from chatstore.store import RecordStore, SchemaManager, StoreHandle

logger = get_logger(__name__)

FORK_SUFFIX = " (fork)"
COPY_SUFFIX = " (copy)"
DEFAULT_FORK_DESCRIPTION = "Forked chat"
DEFAULT_COPY_DESCRIPTION = "Chat"


def _format_validation_error(err: Any) -> str:
    location = ".".join(str(part) for part in err["loc"])
    return f"{location}: {err['msg']}" if location else err["msg"]


class ChatHistory:
    """
    Create, read, update, delete, fork and duplicate chat sessions.

    Attributes:
        handle: The open store every operation runs against
        records: Record primitives over the handle
        allocator: Slug allocator
        id_strategy: Primary key scheme for new sessions
    """

    def __init__(
        self,
        handle: StoreHandle,
        config: StoreConfig | None = None,
        allocator: SlugAllocator | None = None,
        id_strategy: IdStrategy | None = None,
    ) -> None:
        config = config or StoreConfig()
        self.handle = handle
        self.records = RecordStore(handle)
        self.allocator = allocator or SlugAllocator(
            max_suffix=config.max_slug_suffix,
            random_prefix=config.random_slug_prefix,
        )
        self.id_strategy = id_strategy or NumericIdStrategy()

    @classmethod
    def open(cls, config: StoreConfig | None = None) -> "ChatHistory | None":
        """Open the configured store; None if it is unavailable."""
        config = config or StoreConfig()
        handle = SchemaManager(config).open()
        if handle is None:
            return None
        return cls(handle, config=config)

    def close(self) -> None:
        self.handle.close()

    def __enter__(self) -> "ChatHistory":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_all_sessions(self) -> list[ChatRecord]:
        """All sessions, newest first."""
        return sorted(self.records.get_all(), key=lambda r: r.written_at, reverse=True)

    def get_session(self, id_or_slug: str) -> ChatRecord | None:
        """Look up by primary id, then by slug. None means not found."""
        return self.records.get_by_id(id_or_slug) or self.records.get_by_slug(id_or_slug)

    def _require_session(self, id_or_slug: str) -> ChatRecord:
        record = self.get_session(id_or_slug)
        if record is None:
            raise SessionNotFoundError(id_or_slug=id_or_slug)
        return record

    # =========================================================================
    # Ids and Slugs
    # =========================================================================

    def next_id(self) -> str:
        """Mint a primary key for a new session."""
        return self.id_strategy.next_id(self.records.all_ids())

    def allocate_slug(self, seed: str | None, owner_id: str | None = None) -> str:
        """
        Scan the stored slugs, then allocate one from seed.

        Args:
            seed: Text the slug is derived from
            owner_id: Record whose own current slug does not count as taken
        """
        existing = self.records.scan_slugs(exclude_id=owner_id)
        return self.allocator.allocate(seed, existing)

    # =========================================================================
    # Writes
    # =========================================================================

    def save_messages(
        self,
        session_id: str,
        messages: Sequence[dict[str, Any]],
        url_id: str | None = None,
        description: str | None = None,
        timestamp: str | None = None,
    ) -> ChatRecord:
        """
        Write the full session, replacing any stored one with this id.

        Args:
            session_id: Primary key
            messages: Ordered message entries, stored as given
            url_id: Slug to use; allocated from session_id when omitted
            description: Session title
            timestamp: ISO-8601 write time; defaults to now

        Returns:
            The record as persisted, including the slug that was used

        Raises:
            InvalidTimestampError: If timestamp does not parse (nothing is written)
            InvalidRecordError: If the id is empty or a message is not an object
            PersistFailedError: If the write fails again after a slug collision
            StoreError: For any other storage failure
        """
        if timestamp:
            parse_timestamp(timestamp)

        final_url_id = url_id or self.allocate_slug(session_id, owner_id=session_id)
        try:
            record = ChatRecord(
                id=session_id,
                url_id=final_url_id,
                description=description,
                messages=list(messages),
                timestamp=timestamp or now_iso(),
            )
        except ValidationError as e:
            raise InvalidRecordError(
                session_id=str(session_id),
                errors=[_format_validation_error(err) for err in e.errors()],
            ) from e

        try:
            self.records.put(record)
        except ConstraintViolationError:
            return self._retry_with_new_slug(record)

        logger.debug("session_saved", session_id=session_id, url_id=final_url_id)
        return record

    def _retry_with_new_slug(self, record: ChatRecord) -> ChatRecord:
        seed = f"{record.url_id}-{self.allocator.clock()}"
        retry_url_id = self.allocate_slug(seed, owner_id=record.id)
        logger.warning(
            "slug_collision_retry",
            session_id=record.id,
            url_id=record.url_id,
            retry_url_id=retry_url_id,
        )

        retry = record.model_copy(update={"url_id": retry_url_id})
        try:
            self.records.put(retry)
        except StoreError as e:
            raise PersistFailedError(
                operation="save_messages",
                session_id=record.id,
                attempted_url_ids=[record.url_id or "", retry_url_id],
            ) from e
        return retry

    def delete_session(self, session_id: str) -> None:
        """Remove the session; absent ids are a no-op."""
        self.records.delete_by_id(session_id)
        logger.debug("session_deleted", session_id=session_id)

    def create_from_messages(self, description: str, messages: Sequence[dict[str, Any]]) -> str:
        """
        Store messages as a brand new session.

        Returns:
            The new session's slug, which is what callers link to
        """
        new_id = self.next_id()
        url_id = self.allocate_slug(new_id)
        record = self.save_messages(new_id, messages, url_id=url_id, description=description)
        return record.url_id or url_id

    def fork_session(self, id_or_slug: str, message_id: str) -> str:
        """
        Branch a session at a message.

        The new session holds every message up to and including message_id.

        Returns:
            The new session's slug

        Raises:
            SessionNotFoundError: If the session does not exist
            MessageNotFoundError: If no message has this id
        """
        record = self._require_session(id_or_slug)

        index = next(
            (i for i, message in enumerate(record.messages) if message.get("id") == message_id),
            None,
        )
        if index is None:
            raise MessageNotFoundError(session_id=record.id, message_id=message_id)

        messages = copy.deepcopy(record.messages[: index + 1])
        if record.description:
            description = f"{record.description}{FORK_SUFFIX}"
        else:
            description = DEFAULT_FORK_DESCRIPTION
        return self.create_from_messages(description, messages)

    def duplicate_session(self, id_or_slug: str) -> str:
        """Copy a session with all of its messages; returns the new slug."""
        record = self._require_session(id_or_slug)
        description = f"{record.description or DEFAULT_COPY_DESCRIPTION}{COPY_SUFFIX}"
        return self.create_from_messages(description, copy.deepcopy(record.messages))

    def update_description(self, id_or_slug: str, description: str) -> ChatRecord:
        """
        Rename a session, keeping its messages, slug and timestamp.

        Raises:
            EmptyDescriptionError: If description is blank
            SessionNotFoundError: If the session does not exist
        """
        if not description.strip():
            raise EmptyDescriptionError(session_id=id_or_slug)

        record = self._require_session(id_or_slug)
        return self.save_messages(
            record.id,
            record.messages,
            url_id=record.url_id,
            description=description,
            timestamp=record.timestamp,
        )
