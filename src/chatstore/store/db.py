"""
SQLite handle and schema management for chatstore.

Opening a store walks a small state machine:

    UNOPENED -> PROBING_VERSION -> OPENING -> READY
                       |              |
                       v              v
                    FAILED        RECOVERING -> READY | FAILED

The probe reads ``PRAGMA user_version``. Version 0 is a fresh file and gets
the schema created and stamped. The supported version is opened as-is, with
the collection created only if it is missing. Anything else is a version
conflict, which is recovered according to ``StoreConfig.recovery``. The
default (``recreate``) destroys the file and starts again at version 1, so
every conflict is logged at error level.

``open_store()`` never raises. It returns a ready ``StoreHandle`` or None,
and callers must treat None as "no history available".
"""

import sqlite3
import time
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Generator

from chatstore.errors import SchemaVersionConflictError, StoreUnavailableError
from chatstore.log import get_logger
from chatstore.schema import RecoveryMode, StoreConfig

logger = get_logger(__name__)

# Schema version stamped into PRAGMA user_version
SCHEMA_VERSION = 1

MEMORY_PATH = ":memory:"

COLLECTION_COLUMNS = frozenset({"id", "url_id", "description", "messages_json", "timestamp"})

CREATE_COLLECTION_SQL = """
-- One row per chat session, keyed by id
CREATE TABLE IF NOT EXISTS chats (
    id TEXT PRIMARY KEY,
    url_id TEXT,
    description TEXT,
    messages_json TEXT NOT NULL,
    timestamp TEXT NOT NULL
);

-- Unique lookups by primary id and by slug; NULL slugs never collide
CREATE UNIQUE INDEX IF NOT EXISTS idx_chats_id ON chats(id);
CREATE UNIQUE INDEX IF NOT EXISTS idx_chats_url_id ON chats(url_id);
"""

# Files SQLite may keep beside the main database
_SIDECAR_SUFFIXES = ("-journal", "-wal", "-shm")


class SchemaState(str, Enum):
    """Where a SchemaManager is in the open sequence."""

    UNOPENED = "unopened"
    PROBING_VERSION = "probing_version"
    OPENING = "opening"
    RECOVERING = "recovering"
    READY = "ready"
    FAILED = "failed"


def _connect(db_path: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def _current_millis() -> int:
    return time.time_ns() // 1_000_000


class StoreHandle:
    """
    A ready connection to an opened chat store.

    The handle is created by SchemaManager and passed explicitly to every
    consumer; there is no process-wide handle.

    Usage:
        handle = open_store("history.db")
        if handle is not None:
            with handle:
                records = RecordStore(handle).get_all()
    """

    def __init__(
        self,
        db_path: Path | str,
        conn: sqlite3.Connection,
        schema_version: int = SCHEMA_VERSION,
    ) -> None:
        self.db_path = db_path if str(db_path) == MEMORY_PATH else Path(db_path)
        self.schema_version = schema_version
        self._conn: sqlite3.Connection | None = conn

    @property
    def connection(self) -> sqlite3.Connection:
        """The live connection; raises if the handle was closed."""
        if self._conn is None:
            raise StoreUnavailableError(
                db_path=str(self.db_path),
                reason="handle is closed",
            )
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run the enclosed statements as one transaction."""
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "StoreHandle":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"StoreHandle(db_path={str(self.db_path)!r}, schema_version={self.schema_version})"


class SchemaManager:
    """
    Opens, creates and recovers the chat store.

    Attributes:
        config: Store configuration (path and recovery mode)
        state: Current SchemaState, READY or FAILED once open() returns
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config or StoreConfig()
        self.state = SchemaState.UNOPENED

    @property
    def db_path(self) -> Path | str:
        path = self.config.db_path
        return MEMORY_PATH if str(path) == MEMORY_PATH else path

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY_PATH

    def open(self) -> StoreHandle | None:
        """
        Produce a ready handle, or None if no store can be opened.

        Never raises; every failure is logged and mapped to None.
        """
        self.state = SchemaState.PROBING_VERSION
        try:
            conn = _connect(self.db_path)
            version = self._probe_version(conn)
        except sqlite3.Error as e:
            logger.error("store_probe_failed", db_path=str(self.db_path), error=str(e))
            self.state = SchemaState.FAILED
            return None

        self.state = SchemaState.OPENING
        try:
            handle = self._open_at_version(conn, version)
        except SchemaVersionConflictError as e:
            conn.close()
            return self._recover(e)
        except sqlite3.Error as e:
            conn.close()
            logger.error("store_open_failed", db_path=str(self.db_path), error=str(e))
            self.state = SchemaState.FAILED
            return None

        self.state = SchemaState.READY
        return handle

    def _probe_version(self, conn: sqlite3.Connection) -> int:
        try:
            row = conn.execute("PRAGMA user_version").fetchone()
        except sqlite3.Error:
            conn.close()
            raise
        return row[0] if row else 0

    def _open_at_version(self, conn: sqlite3.Connection, version: int) -> StoreHandle:
        if version == 0:
            self._create_schema(conn)
            logger.info("store_created", db_path=str(self.db_path), version=SCHEMA_VERSION)
            return StoreHandle(self.db_path, conn, SCHEMA_VERSION)

        if version != SCHEMA_VERSION:
            raise SchemaVersionConflictError(
                db_path=str(self.db_path),
                found_version=version,
                supported_version=SCHEMA_VERSION,
            )

        columns = {row["name"] for row in conn.execute("PRAGMA table_info(chats)")}
        if columns and not COLLECTION_COLUMNS <= columns:
            raise SchemaVersionConflictError(
                message=f"Collection layout in {self.db_path} does not match version {version}",
                db_path=str(self.db_path),
                found_version=version,
                supported_version=SCHEMA_VERSION,
            )

        # Existing store at the supported version: create the collection only if missing
        conn.executescript(CREATE_COLLECTION_SQL).close()
        conn.commit()
        return StoreHandle(self.db_path, conn, version)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(CREATE_COLLECTION_SQL).close()
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        conn.commit()

    def _recover(self, conflict: SchemaVersionConflictError) -> StoreHandle | None:
        self.state = SchemaState.RECOVERING
        mode = self.config.recovery

        logger.error(
            "schema_version_conflict",
            db_path=str(self.db_path),
            found_version=conflict.found_version,
            supported_version=conflict.supported_version,
            recovery=mode.value,
            data_loss=mode == RecoveryMode.RECREATE,
        )

        if mode == RecoveryMode.DISABLED:
            self.state = SchemaState.FAILED
            return None

        try:
            if not self.in_memory:
                self._discard_store_files(keep_backup=mode == RecoveryMode.BACKUP)
            conn = _connect(self.db_path)
            self._create_schema(conn)
        except (OSError, sqlite3.Error) as e:
            logger.error("store_recovery_failed", db_path=str(self.db_path), error=str(e))
            self.state = SchemaState.FAILED
            return None

        logger.warning("store_recreated", db_path=str(self.db_path), version=SCHEMA_VERSION)
        self.state = SchemaState.READY
        return StoreHandle(self.db_path, conn, SCHEMA_VERSION)

    def _discard_store_files(self, keep_backup: bool) -> None:
        path = Path(self.db_path)
        backup = path.with_name(f"{path.name}.conflict-{_current_millis()}") if keep_backup else None

        # Sidecars follow the main file into the backup
        for suffix in _SIDECAR_SUFFIXES:
            sidecar = path.with_name(path.name + suffix)
            if not sidecar.exists():
                continue
            if backup is not None:
                sidecar.rename(backup.with_name(backup.name + suffix))
            else:
                sidecar.unlink()

        if backup is not None:
            path.rename(backup)
            logger.warning("store_backed_up", db_path=str(path), backup_path=str(backup))
        else:
            path.unlink(missing_ok=True)


def open_store(
    db_path: Path | str | None = None,
    config: StoreConfig | None = None,
) -> StoreHandle | None:
    """
    Open the chat store at db_path (or config.db_path).

    Returns:
        A ready StoreHandle, or None if the store is unavailable
    """
    config = config or StoreConfig()
    if db_path is not None:
        config = config.model_copy(update={"db_path": Path(db_path)})
    return SchemaManager(config).open()
