"""
Slug allocation for chat sessions.

A slug (stored as ``url_id``) is the human-shareable key a session is
linked by. The allocator is pure: it is handed the slugs already taken and
returns one that is not among them. The list comes from a separate read,
so two writers can still pick the same slug; the unique index rejects the
loser and ChatHistory.save_messages retries it once.
"""

import re
import time
import uuid
from collections.abc import Callable, Iterable

# Anything outside this set becomes "-"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9\-_]")

RANDOM_SUFFIX_LENGTH = 13


def sanitize_slug(seed: str) -> str:
    """Replace every character outside [A-Za-z0-9-_] with '-'."""
    return _UNSAFE_CHARS.sub("-", seed)


def current_millis() -> int:
    """Milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class SlugAllocator:
    """
    Derives unique slugs from a seed.

    Attributes:
        max_suffix: Highest "-N" suffix probed before the timestamp fallback
        random_prefix: Prefix for slugs minted from an empty seed
        clock: Millisecond clock used for the fallback suffix
    """

    def __init__(
        self,
        max_suffix: int = 1000,
        random_prefix: str = "chat-",
        clock: Callable[[], int] = current_millis,
    ) -> None:
        self.max_suffix = max_suffix
        self.random_prefix = random_prefix
        self.clock = clock

    def random_slug(self) -> str:
        return f"{self.random_prefix}{uuid.uuid4().hex[:RANDOM_SUFFIX_LENGTH]}"

    def allocate(self, seed: str | None, existing_slugs: Iterable[str]) -> str:
        """
        Return a slug derived from seed that is not in existing_slugs.

        An empty seed yields a random slug. Otherwise the sanitized seed is
        used if free, then seed-2, seed-3 ... seed-<max_suffix>, and finally
        seed-<millis>, which is not checked again.
        """
        if not seed:
            return self.random_slug()

        clean = sanitize_slug(seed)
        taken = set(existing_slugs)
        if clean not in taken:
            return clean

        for suffix in range(2, self.max_suffix + 1):
            candidate = f"{clean}-{suffix}"
            if candidate not in taken:
                return candidate

        return f"{clean}-{self.clock()}"
