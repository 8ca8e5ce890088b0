"""Unit tests for the sub-item codec.

Tests cover:
- Encoded form is a JSON object with id, text and completed
- Legacy plain-text and malformed values degrade to unchecked sub-items
- Missing ids are synthesized from the element index
- Duplicate ids are made unique on decode and before a write
- New sub-item ids are unique within the checklist
"""

from __future__ import annotations

import json

import pytest

from phaseboard.board import subitems
from phaseboard.board.models import SubItem


class TestEncode:
    """Test the stored string form."""

    def test_encode_writes_json_object(self) -> None:
        """Encoded sub-items are JSON objects with all three keys."""
        raw = subitems.encode(SubItem(id="sub-1", text="Call venue", completed=True))
        assert json.loads(raw) == {"id": "sub-1", "text": "Call venue", "completed": True}

    def test_encode_keeps_non_ascii_text(self) -> None:
        """Text is stored as-is, not escaped."""
        raw = subitems.encode(SubItem(id="sub-1", text="Café ✓"))
        assert "Café ✓" in raw

    def test_decode_inverts_encode(self) -> None:
        """A well-formed value decodes to the same sub-item."""
        original = SubItem(id="sub-9", text='Quote "this"', completed=True)
        assert subitems.decode(subitems.encode(original), 0) == original


class TestDecodeFallback:
    """Test that decoding never fails."""

    def test_plain_text_becomes_unchecked_sub_item(self) -> None:
        """Legacy plain strings keep their text and get an index id."""
        assert subitems.decode("Buy milk", 3) == SubItem(id="sub-3", text="Buy milk")

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            '{"id": "x"',
            "[1, 2]",
            "42",
            "null",
            '"just a string"',
            '{"id": "x", "text": 5}',
            "[" * 100_000,
        ],
        ids=["empty", "truncated", "array", "number", "null", "string", "bad-text", "deep"],
    )
    def test_unusable_json_falls_back_to_raw_text(self, raw: str) -> None:
        """Malformed or non-object JSON is kept verbatim as text."""
        assert subitems.decode(raw, 1) == SubItem(id="sub-1", text=raw, completed=False)

    def test_object_without_id_keeps_text_and_flag(self) -> None:
        """An object missing its id gets a synthesized one."""
        decoded = subitems.decode('{"text": "Book room", "completed": true}', 2)
        assert decoded == SubItem(id="sub-2", text="Book room", completed=True)

    def test_non_boolean_completed_is_false(self) -> None:
        """Only a literal true marks a sub-item complete."""
        decoded = subitems.decode('{"id": "a", "text": "t", "completed": "yes"}', 0)
        assert decoded.completed is False

    def test_decode_all_handles_none(self) -> None:
        """A NULL column decodes to an empty checklist."""
        assert subitems.decode_all(None) == ()


class TestDecodeAll:
    """Test decoding of a whole sub_items array."""

    def test_mixed_array_keeps_order(self) -> None:
        """Encoded and legacy values decode in stored order."""
        raw = [
            subitems.encode(SubItem(id="sub-100", text="first", completed=True)),
            "second",
        ]
        decoded = subitems.decode_all(raw)

        assert [s.text for s in decoded] == ["first", "second"]
        assert decoded[0].completed is True
        assert decoded[1].id == "sub-1"

    def test_duplicate_ids_are_made_unique(self) -> None:
        """Colliding ids (including synthesized ones) are disambiguated."""
        raw = [
            '{"id": "sub-1", "text": "a"}',
            "b",
            '{"id": "sub-1", "text": "c"}',
        ]
        decoded = subitems.decode_all(raw)
        ids = [s.id for s in decoded]

        assert len(set(ids)) == 3
        assert ids[0] == "sub-1"
        assert [s.text for s in decoded] == ["a", "b", "c"]

    def test_encode_all_then_decode_all_preserves_checklist(self) -> None:
        """A checklist survives a store round trip."""
        checklist = (
            SubItem(id="sub-1", text="one"),
            SubItem(id="sub-2", text="two", completed=True),
        )
        assert subitems.decode_all(subitems.encode_all(checklist)) == checklist


class TestWithUniqueIds:
    """Test id normalization before a checklist is written."""

    def test_blank_and_repeated_ids_get_index_ids(self) -> None:
        """The first holder of an id keeps it; the rest use their index."""
        checklist = [
            SubItem(id="a", text="one"),
            SubItem(id="a", text="two"),
            SubItem(id="", text="three"),
        ]
        assert [s.id for s in subitems.with_unique_ids(checklist)] == ["a", "sub-1", "sub-2"]

    def test_index_id_already_taken_is_suffixed(self) -> None:
        """A synthesized id that collides with a kept one is bumped."""
        checklist = [SubItem(id="sub-1", text="one"), SubItem(id=" ", text="two")]
        assert [s.id for s in subitems.with_unique_ids(checklist)] == ["sub-1", "sub-1-1"]

    def test_normalized_ids_survive_store_round_trip(self) -> None:
        """Ids written after normalization are the ids read back."""
        checklist = subitems.with_unique_ids(
            [SubItem(id="a", text="one"), SubItem(id="a", text="two"), SubItem(id="", text="x")]
        )
        assert subitems.decode_all(subitems.encode_all(checklist)) == checklist

    def test_unique_ids_are_untouched(self) -> None:
        """Texts, flags and distinct ids pass through unchanged."""
        checklist = (SubItem(id="x", text="one", completed=True), SubItem(id="y", text="two"))
        assert subitems.with_unique_ids(checklist) == checklist


class TestNewSubItemId:
    """Test id generation for new sub-items."""

    def test_id_has_prefix(self) -> None:
        """Generated ids use the sub- prefix."""
        assert subitems.new_sub_item_id().startswith("sub-")

    def test_id_avoids_existing_ids(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A clashing timestamp is bumped until unique."""
        monkeypatch.setattr(subitems.time, "time", lambda: 1.0)
        existing = [SubItem(id="sub-1000", text="a"), SubItem(id="sub-1001", text="b")]

        assert subitems.new_sub_item_id(existing) == "sub-1002"
