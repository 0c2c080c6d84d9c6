"""
Primary id schemes for new sessions.

New sessions created by fork, duplicate or import need a fresh primary key.
The scheme sits behind IdStrategy so stores whose keys are not numeric
strings can plug in their own.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable


class IdStrategy(ABC):
    """Mints a new primary key given the keys already in use."""

    @abstractmethod
    def next_id(self, existing_ids: Iterable[str]) -> str:
        """Return an id not present in existing_ids."""
        ...


class NumericIdStrategy(IdStrategy):
    """
    Monotonic counter over numeric string ids.

    Returns max + 1 as a string. Keys that are not integers count as 0, so
    "1", "7", "abc" yields "8" and an empty store yields "1".
    """

    def next_id(self, existing_ids: Iterable[str]) -> str:
        highest = 0
        for key in existing_ids:
            try:
                value = int(key)
            except (TypeError, ValueError):
                value = 0
            highest = max(highest, value)
        return str(highest + 1)


class UuidIdStrategy(IdStrategy):
    """Random uuid4 ids, for stores that do not use numeric keys."""

    def next_id(self, existing_ids: Iterable[str]) -> str:
        taken = set(existing_ids)
        new_id = str(uuid.uuid4())
        while new_id in taken:
            new_id = str(uuid.uuid4())
        return new_id
