"""
Storage module for chatstore.

This module provides SQLite-based persistence for chat sessions:
    - db: StoreHandle, SchemaManager and open_store()
    - records: RecordStore get/put/delete/scan primitives

Tables:
    - chats: One row per session (id, url_id, description, messages, timestamp)
"""

from chatstore.store.db import SCHEMA_VERSION, SchemaManager, SchemaState, StoreHandle, open_store
from chatstore.store.records import RecordStore

__all__ = [
    "SCHEMA_VERSION",
    "RecordStore",
    "SchemaManager",
    "SchemaState",
    "StoreHandle",
    "open_store",
]
