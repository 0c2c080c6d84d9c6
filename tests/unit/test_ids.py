"""Unit tests for primary id strategies."""

import uuid

import pytest

from chatstore.ids import IdStrategy, NumericIdStrategy, UuidIdStrategy


class TestNumericIdStrategy:
    """Tests for the numeric counter."""

    @pytest.mark.parametrize(
        ("existing", "expected"),
        [
            ([], "1"),
            (["1"], "2"),
            (["1", "2", "10"], "11"),
            (["9", "abc"], "10"),
            (["abc", "chat-x"], "1"),
            (["007"], "8"),
        ],
    )
    def test_next_id(self, existing: list[str], expected: str) -> None:
        assert NumericIdStrategy().next_id(existing) == expected

    def test_is_an_id_strategy(self) -> None:
        assert isinstance(NumericIdStrategy(), IdStrategy)


class TestUuidIdStrategy:
    """Tests for the uuid alternative."""

    def test_returns_uuid(self) -> None:
        new_id = UuidIdStrategy().next_id(["1", "2"])
        assert uuid.UUID(new_id).version == 4


class TestAbstractBase:
    def test_cannot_instantiate(self) -> None:
        with pytest.raises(TypeError):
            IdStrategy()  # type: ignore[abstract]
