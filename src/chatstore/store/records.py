"""
Record primitives over the ``chats`` collection.

Every method runs in its own transaction. Nothing here composes several
operations into one atomic unit, so a caller that reads the slug list and
then writes is racing any other writer in between. The unique slug index
is the only guard; it surfaces as ConstraintViolationError from put().
"""

import json
import sqlite3

from chatstore.errors import ConstraintViolationError, StorageReadError, StorageWriteError
from chatstore.schema import ChatRecord
from chatstore.store.db import StoreHandle

# Keyed on id only, so a slug collision raises instead of replacing another row
UPSERT_SQL = """
INSERT INTO chats (id, url_id, description, messages_json, timestamp)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    url_id = excluded.url_id,
    description = excluded.description,
    messages_json = excluded.messages_json,
    timestamp = excluded.timestamp
"""


def _row_to_record(row: sqlite3.Row) -> ChatRecord:
    return ChatRecord(
        id=row["id"],
        url_id=row["url_id"],
        description=row["description"],
        messages=json.loads(row["messages_json"]),
        timestamp=row["timestamp"],
    )


class RecordStore:
    """
    Get, put, delete and scan primitives for chat records.

    Usage:
        records = RecordStore(handle)
        records.put(ChatRecord(id="1", url_id="1", messages=[...]))
        records.get_by_slug("1")
    """

    def __init__(self, handle: StoreHandle) -> None:
        self.handle = handle

    def get_all(self) -> list[ChatRecord]:
        """Return every record, in no particular order."""
        try:
            with self.handle.transaction() as conn:
                rows = conn.execute("SELECT * FROM chats").fetchall()
            return [_row_to_record(row) for row in rows]
        except sqlite3.Error as e:
            raise StorageReadError(operation="get_all", underlying_error=str(e)) from e

    def get_by_id(self, session_id: str) -> ChatRecord | None:
        """Primary key lookup."""
        return self._get_one("get_by_id", "SELECT * FROM chats WHERE id = ?", session_id)

    def get_by_slug(self, url_id: str) -> ChatRecord | None:
        """Slug index lookup."""
        return self._get_one("get_by_slug", "SELECT * FROM chats WHERE url_id = ?", url_id)

    def _get_one(self, operation: str, sql: str, key: str) -> ChatRecord | None:
        try:
            with self.handle.transaction() as conn:
                row = conn.execute(sql, (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(operation=operation, underlying_error=str(e)) from e
        if row is None:
            return None
        return _row_to_record(row)

    def put(self, record: ChatRecord) -> None:
        """
        Insert or replace the record with this id.

        Raises:
            ConstraintViolationError: If another record already owns the slug
            StorageWriteError: For any other write failure
        """
        try:
            messages_json = json.dumps(record.messages)
        except (TypeError, ValueError) as e:
            raise StorageWriteError(operation="put", underlying_error=str(e)) from e

        try:
            with self.handle.transaction() as conn:
                conn.execute(
                    UPSERT_SQL,
                    (
                        record.id,
                        record.url_id,
                        record.description,
                        messages_json,
                        record.timestamp,
                    ),
                )
        except sqlite3.IntegrityError as e:
            if "url_id" in str(e):
                raise ConstraintViolationError(
                    operation="put",
                    session_id=record.id,
                    url_id=record.url_id,
                ) from e
            raise StorageWriteError(operation="put", underlying_error=str(e)) from e
        except sqlite3.Error as e:
            raise StorageWriteError(operation="put", underlying_error=str(e)) from e

    def delete_by_id(self, session_id: str) -> None:
        """Remove the record; deleting an absent id is a successful no-op."""
        try:
            with self.handle.transaction() as conn:
                conn.execute("DELETE FROM chats WHERE id = ?", (session_id,))
        except sqlite3.Error as e:
            raise StorageWriteError(operation="delete_by_id", underlying_error=str(e)) from e

    def scan_slugs(self, exclude_id: str | None = None) -> list[str]:
        """
        Collect every non-empty slug with a full forward scan.

        Args:
            exclude_id: Skip the slug owned by this record id
        """
        slugs: list[str] = []
        try:
            with self.handle.transaction() as conn:
                for row in conn.execute("SELECT id, url_id FROM chats"):
                    if not row["url_id"] or row["id"] == exclude_id:
                        continue
                    slugs.append(row["url_id"])
        except sqlite3.Error as e:
            raise StorageReadError(operation="scan_slugs", underlying_error=str(e)) from e
        return slugs

    def all_ids(self) -> list[str]:
        """Every primary key in the collection."""
        try:
            with self.handle.transaction() as conn:
                return [row["id"] for row in conn.execute("SELECT id FROM chats")]
        except sqlite3.Error as e:
            raise StorageReadError(operation="all_ids", underlying_error=str(e)) from e

    def count(self) -> int:
        try:
            with self.handle.transaction() as conn:
                row = conn.execute("SELECT count(*) FROM chats").fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(operation="count", underlying_error=str(e)) from e
        return row[0] if row else 0
