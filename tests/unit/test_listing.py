"""
Unit tests for history listing helpers.

Tests cover:
- Hiding sessions without a slug or description
- Description search
- Date categories and bin ordering
"""

from datetime import UTC, datetime, timedelta

import pytest

from chatstore.listing import bin_by_date, date_category, visible_sessions
from chatstore.schema import ChatRecord

# Wednesday 2024-05-15 12:00 UTC; that week starts on Sunday 2024-05-12
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


def _at(when: datetime, session_id: str = "1", **kwargs) -> ChatRecord:
    return ChatRecord(id=session_id, timestamp=when.isoformat(), **kwargs)


class TestVisibleSessions:
    """Tests for visible_sessions."""

    def test_hides_incomplete_sessions(self) -> None:
        records = [
            ChatRecord(id="1", url_id="one", description="Shown"),
            ChatRecord(id="2", url_id="two"),
            ChatRecord(id="3", description="No slug"),
            ChatRecord(id="4", url_id="four", description=""),
        ]
        assert [r.id for r in visible_sessions(records)] == ["1"]

    def test_search_is_case_insensitive(self) -> None:
        records = [
            ChatRecord(id="1", url_id="a", description="Deploy pipeline"),
            ChatRecord(id="2", url_id="b", description="Landing page"),
        ]
        assert [r.id for r in visible_sessions(records, search="DEPLOY")] == ["1"]
        assert len(visible_sessions(records, search="  ")) == 2


class TestDateCategory:
    """Tests for date_category."""

    @pytest.mark.parametrize(
        ("when", "expected"),
        [
            (NOW - timedelta(hours=2), "Today"),
            (NOW - timedelta(days=1), "Yesterday"),
            (datetime(2024, 5, 12, 9, 0, tzinfo=UTC), "Sunday"),
            (datetime(2024, 5, 11, 9, 0, tzinfo=UTC), "Past 30 days"),
            (datetime(2024, 4, 20, 9, 0, tzinfo=UTC), "Past 30 days"),
            (datetime(2024, 2, 3, 9, 0, tzinfo=UTC), "February"),
            (datetime(2023, 7, 4, 9, 0, tzinfo=UTC), "July 2023"),
        ],
    )
    def test_categories(self, when: datetime, expected: str) -> None:
        assert date_category(when, NOW) == expected


class TestBinByDate:
    """Tests for bin_by_date."""

    def test_bins_newest_first(self) -> None:
        records = [
            _at(datetime(2023, 7, 4, tzinfo=UTC), "old"),
            _at(NOW - timedelta(hours=1), "today-1"),
            _at(NOW - timedelta(days=1), "yesterday"),
            _at(NOW - timedelta(hours=3), "today-2"),
        ]

        bins = bin_by_date(records, now=NOW)

        assert [b.category for b in bins] == ["Today", "Yesterday", "July 2023"]
        assert [r.id for r in bins[0].items] == ["today-1", "today-2"]

    def test_empty(self) -> None:
        assert bin_by_date([], now=NOW) == []
