"""
Unit tests for schema models and configuration loading.

Tests cover:
- ChatRecord parsing, aliases and timestamp validation
- Timestamp helpers
- StoreConfig defaults and YAML loading
"""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from chatstore.errors import InvalidTimestampError
from chatstore.schema import (
    ChatRecord,
    RecoveryMode,
    StoreConfig,
    load_config,
    load_config_from_string,
    now_iso,
    parse_timestamp,
)


class TestChatRecord:
    """Tests for the ChatRecord model."""

    def test_minimal_record(self) -> None:
        """A record only needs an id."""
        record = ChatRecord(id="1")
        assert record.url_id is None
        assert record.description is None
        assert record.messages == []
        parse_timestamp(record.timestamp)

    def test_alias_population(self) -> None:
        """urlId alias and field name are both accepted."""
        by_alias = ChatRecord.model_validate({"id": "1", "urlId": "one"})
        by_name = ChatRecord(id="1", url_id="one")
        assert by_alias.url_id == by_name.url_id == "one"

    def test_dump_by_alias(self) -> None:
        """Exports use the urlId key."""
        record = ChatRecord(id="1", url_id="one", timestamp="2024-05-01T10:00:00+00:00")
        data = record.model_dump(by_alias=True)
        assert data["urlId"] == "one"
        assert "url_id" not in data

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_slug_becomes_none(self, blank: str) -> None:
        assert ChatRecord(id="1", url_id=blank).url_id is None

    def test_message_order_preserved(self) -> None:
        """Messages keep the order they were given in."""
        msgs = [{"id": str(i)} for i in range(10, 0, -1)]
        record = ChatRecord(id="1", messages=msgs)
        assert [m["id"] for m in record.messages] == [str(i) for i in range(10, 0, -1)]

    def test_invalid_timestamp_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChatRecord(id="1", timestamp="yesterday-ish")

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChatRecord(id="")

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChatRecord.model_validate({"id": "1", "owner": "me"})

    def test_frozen(self) -> None:
        record = ChatRecord(id="1")
        with pytest.raises(ValidationError):
            record.description = "changed"  # type: ignore[misc]

    def test_written_at(self) -> None:
        record = ChatRecord(id="1", timestamp="2024-05-01T10:00:00Z")
        assert record.written_at == datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


class TestTimestamps:
    """Tests for timestamp helpers."""

    def test_now_iso_parses(self) -> None:
        assert parse_timestamp(now_iso()).tzinfo is not None

    def test_naive_is_utc(self) -> None:
        assert parse_timestamp("2024-01-31T12:00:00").tzinfo == UTC

    def test_date_only(self) -> None:
        assert parse_timestamp("2024-01-31") == datetime(2024, 1, 31, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["not-a-date", "", "31/01/2024", "2024-13-01"])
    def test_invalid_values(self, value: str) -> None:
        with pytest.raises(InvalidTimestampError):
            parse_timestamp(value)


class TestStoreConfig:
    """Tests for StoreConfig and YAML loading."""

    def test_defaults(self) -> None:
        config = StoreConfig()
        assert config.db_path == Path("chat_history.db")
        assert config.max_slug_suffix == 1000
        assert config.random_slug_prefix == "chat-"
        assert config.recovery == RecoveryMode.RECREATE

    def test_load_from_string(self) -> None:
        config = load_config_from_string(
            """
db_path: /tmp/chats.db
max_slug_suffix: 50
recovery: backup
"""
        )
        assert config.db_path == Path("/tmp/chats.db")
        assert config.max_slug_suffix == 50
        assert config.recovery == RecoveryMode.BACKUP

    def test_empty_document_uses_defaults(self) -> None:
        assert load_config_from_string("") == StoreConfig()

    def test_load_from_file(self, temp_dir: Path) -> None:
        path = temp_dir / "chatstore.yaml"
        path.write_text("recovery: disabled\n")
        assert load_config(path).recovery == RecoveryMode.DISABLED

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "missing.yaml")

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            load_config_from_string("max_slug_suffix: 1\n")
        with pytest.raises(ValidationError):
            load_config_from_string("recovery: sometimes\n")
        with pytest.raises(ValidationError):
            load_config_from_string("unknown_key: true\n")
