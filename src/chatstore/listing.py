"""
Helpers for presenting stored sessions as a history list.

Sessions without a slug or a description are not linkable from a list and
are hidden. The rest are grouped into date bins, newest first.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from chatstore.schema import ChatRecord

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass
class DateBin:
    """A labelled group of sessions."""

    category: str
    items: list[ChatRecord] = field(default_factory=list)


def visible_sessions(records: Iterable[ChatRecord], search: str | None = None) -> list[ChatRecord]:
    """
    Sessions that can be listed: they have a slug and a description.

    Args:
        records: Sessions to filter
        search: Optional case-insensitive substring of the description
    """
    needle = search.strip().casefold() if search else ""
    visible = []
    for record in records:
        if not record.url_id or not record.description:
            continue
        if needle and needle not in record.description.casefold():
            continue
        visible.append(record)
    return visible


def date_category(when: datetime, now: datetime) -> str:
    """Label for the bin a timestamp falls into, relative to now."""
    if now.tzinfo is None:
        now = now.astimezone()
    when = when.astimezone(now.tzinfo)
    day = when.date()
    today = now.date()

    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"

    # Weeks start on Sunday
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    if week_start <= day < week_start + timedelta(days=7):
        return WEEKDAY_NAMES[day.weekday()]

    if when > now - timedelta(days=30):
        return "Past 30 days"

    month = MONTH_NAMES[day.month - 1]
    if day.year == today.year:
        return month
    return f"{month} {day.year}"


def bin_by_date(records: Iterable[ChatRecord], now: datetime | None = None) -> list[DateBin]:
    """
    Sort sessions newest first and group them by date category.

    Bins keep the order in which their first session appears.
    """
    now = now or datetime.now().astimezone()
    ordered = sorted(records, key=lambda r: r.written_at, reverse=True)

    bins: list[DateBin] = []
    lookup: dict[str, DateBin] = {}
    for record in ordered:
        category = date_category(record.written_at, now)
        if category not in lookup:
            lookup[category] = DateBin(category=category)
            bins.append(lookup[category])
        lookup[category].items.append(record)
    return bins
