"""
Bulk export, import and purge of chat sessions.

Export writes a versioned backup document:

    {"version": "1.0", "timestamp": "...", "history": [ {id, urlId, ...}, ... ]}

Import accepts that document and the other layouts chats are commonly
shared in: a single exported chat ({"messages": [...]}), a {"chats": [...]}
bundle, or a bare list of chats. Every imported chat is written through
ChatHistory.save_messages, so slugs are allocated and collisions retried
exactly as for any other save.
"""

import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from chatstore.errors import ImportFormatError
from chatstore.log import get_logger
from chatstore.schema import ChatRecord, now_iso
from chatstore.sessions import ChatHistory

logger = get_logger(__name__)

EXPORT_FORMAT_VERSION = "1.0"
DEFAULT_IMPORT_DESCRIPTION = "Imported chat"


@dataclass(frozen=True)
class ImportedChat:
    """A chat read from an import document, ready to be saved."""

    id: str
    messages: list[dict[str, Any]]
    url_id: str | None
    description: str


def export_session(record: ChatRecord) -> dict[str, Any]:
    """Single-chat export document."""
    return {
        "messages": record.messages,
        "description": record.description,
        "exportDate": now_iso(),
    }


def export_sessions(history: ChatHistory) -> dict[str, Any]:
    """Backup document holding every stored session."""
    records = history.get_all_sessions()
    return {
        "version": EXPORT_FORMAT_VERSION,
        "timestamp": now_iso(),
        "history": [record.model_dump(by_alias=True) for record in records],
    }


def _new_id() -> str:
    return str(uuid.uuid4())


def _parse_item(item: Any, position: int) -> ImportedChat:
    if not isinstance(item, dict):
        raise ImportFormatError(detail=f"entry {position} is not an object")

    messages = item.get("messages")
    if not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages):
        raise ImportFormatError(detail=f"entry {position} has no list of message objects")

    return ImportedChat(
        id=str(item.get("id") or _new_id()),
        messages=messages,
        url_id=item.get("urlId") or None,
        description=item.get("description") or DEFAULT_IMPORT_DESCRIPTION,
    )


def parse_import(data: Any) -> list[ImportedChat]:
    """
    Normalize an import document into chats.

    Raises:
        ImportFormatError: If the document matches no supported layout
    """
    if isinstance(data, dict) and isinstance(data.get("messages"), list):
        chat_id = _new_id()
        chat = _parse_item({**data, "id": chat_id, "urlId": chat_id}, 0)
        return [chat]

    if isinstance(data, dict):
        for key in ("chats", "history"):
            if isinstance(data.get(key), list):
                return [_parse_item(item, i) for i, item in enumerate(data[key])]
        raise ImportFormatError(detail=f"object with keys {sorted(data)}")

    if isinstance(data, list):
        return [_parse_item(item, i) for i, item in enumerate(data)]

    raise ImportFormatError(detail=type(data).__name__)


def load_import_file(path: Path | str) -> Any:
    """Read a JSON import document from disk."""
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ImportFormatError(detail=f"{path.name} is not valid JSON: {e.msg}") from e


def import_sessions(history: ChatHistory, data: Any) -> int:
    """
    Save every chat in an import document.

    Returns:
        Number of chats written
    """
    chats = parse_import(data)
    for chat in chats:
        history.save_messages(
            chat.id,
            chat.messages,
            url_id=chat.url_id,
            description=chat.description,
        )
    logger.info("sessions_imported", count=len(chats))
    return len(chats)


def delete_all_sessions(history: ChatHistory) -> int:
    """Delete every stored session; returns how many were removed."""
    records = history.records.get_all()
    for record in records:
        history.delete_session(record.id)
    logger.info("sessions_purged", count=len(records))
    return len(records)
