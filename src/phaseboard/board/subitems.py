"""Sub-item codec.

Sub-items are stored as elements of an item's flat ``sub_items`` string
array, one JSON object per element::

    {"id": "sub-1718000000000", "text": "Call the venue", "completed": false}

Older rows hold plain text instead. Decoding is total: anything that is not
a usable JSON object degrades to an unchecked sub-item carrying the raw
string, never to an error. Only the board repository encodes and decodes;
the drawer uses the id helpers, and the rest of the board works with
``SubItem`` values.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterable, Sequence
from dataclasses import replace

from phaseboard.board.models import SubItem

FALLBACK_PREFIX = "sub-"


def encode(sub_item: SubItem) -> str:
    """Serialize a sub-item to its stored string form."""
    return json.dumps(
        {"id": sub_item.id, "text": sub_item.text, "completed": sub_item.completed},
        ensure_ascii=False,
    )


def fallback_id(index: int) -> str:
    return f"{FALLBACK_PREFIX}{index}"


def decode(raw: str, fallback_index: int) -> SubItem:
    """Parse a stored sub-item string.

    Args:
        raw: Stored element of ``sub_items``.
        fallback_index: Index of the element, used to synthesize an id.

    Returns:
        The decoded sub-item. Malformed JSON, non-object JSON and objects
        without a string ``text`` yield ``SubItem("sub-<index>", raw, False)``.
        An object with text but no id keeps its text and completion flag.
    """
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        return SubItem(id=fallback_id(fallback_index), text=str(raw), completed=False)

    if not isinstance(parsed, dict) or not isinstance(parsed.get("text"), str):
        return SubItem(id=fallback_id(fallback_index), text=raw, completed=False)

    sub_id = parsed.get("id")
    if sub_id is None or sub_id == "":
        sub_id = fallback_id(fallback_index)
    return SubItem(
        id=str(sub_id),
        text=parsed["text"],
        completed=parsed.get("completed") is True,
    )


def decode_all(raw_items: Iterable[str] | None) -> tuple[SubItem, ...]:
    """Decode a stored ``sub_items`` array, keeping ids unique within it."""
    return with_unique_ids(decode(raw, index) for index, raw in enumerate(raw_items or ()))


def with_unique_ids(sub_items: Iterable[SubItem]) -> tuple[SubItem, ...]:
    """Give blank or repeated ids a fresh one derived from the element index.

    The first sub-item using an id keeps it. Applying this before a write
    makes the stored ids the ones ``decode_all`` returns on the next load.
    """
    unique: list[SubItem] = []
    seen: set[str] = set()
    for index, sub_item in enumerate(sub_items):
        if not sub_item.id.strip() or sub_item.id in seen:
            sub_item = replace(sub_item, id=_unused_id(fallback_id(index), seen))
        seen.add(sub_item.id)
        unique.append(sub_item)
    return tuple(unique)


def encode_all(sub_items: Iterable[SubItem]) -> list[str]:
    return [encode(sub_item) for sub_item in sub_items]


def new_sub_item_id(existing: Sequence[SubItem] = ()) -> str:
    """Timestamp-derived id for a new sub-item, unique within ``existing``."""
    taken = {sub_item.id for sub_item in existing}
    stamp = int(time.time() * 1000)
    candidate = fallback_id(stamp)
    while candidate in taken:
        stamp += 1
        candidate = fallback_id(stamp)
    return candidate


def _unused_id(candidate: str, taken: set[str]) -> str:
    suffix = 1
    unique = candidate
    while unique in taken:
        unique = f"{candidate}-{suffix}"
        suffix += 1
    return unique
