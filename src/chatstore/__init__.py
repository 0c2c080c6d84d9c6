"""
chatstore - Local, transactional storage for chat session histories.

chatstore keeps every chat session (an ordered message history plus its
metadata) in a single SQLite file and provides:
- Create, read, update and delete of sessions by id or slug
- Unique, human-shareable slugs with collision recovery
- Fork (branch at a message) and duplicate of sessions
- Schema version checks with configurable recovery
- JSON export and import of the whole history

Example usage:
    $ chatstore list --db history.db
    $ chatstore fork 12 msg-3 --db history.db
    $ chatstore export --out backup.json
"""

from chatstore.ids import IdStrategy, NumericIdStrategy, UuidIdStrategy
from chatstore.schema import ChatRecord, RecoveryMode, StoreConfig
from chatstore.sessions import ChatHistory
from chatstore.slugs import SlugAllocator
from chatstore.store import RecordStore, SchemaManager, StoreHandle, open_store

__version__ = "0.1.0"
__author__ = "Chatstore Contributors"

__all__ = [
    "ChatHistory",
    "ChatRecord",
    "IdStrategy",
    "NumericIdStrategy",
    "RecordStore",
    "RecoveryMode",
    "SchemaManager",
    "SlugAllocator",
    "StoreConfig",
    "StoreHandle",
    "UuidIdStrategy",
    "open_store",
    "__author__",
    "__version__",
]
