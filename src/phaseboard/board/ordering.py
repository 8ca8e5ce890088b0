"""Dense, zero-based ordering of same-parent entities.

Phases within a project and items within a phase each carry a ``position``
that must be exactly ``0..n-1`` after every write. Reordering is a single
element move-and-shift; positions are then reassigned from list index so
the dense invariant holds regardless of whatever values were stored
before.

Sub-items have no position field (their index is their position) and use
``move`` directly.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import replace
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class Positioned(Protocol):
    @property
    def id(self) -> Any: ...

    @property
    def position(self) -> int: ...


P = TypeVar("P", bound=Positioned)


def move(seq: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Remove the element at old_index and reinsert it at new_index.

    Every element between the two indices shifts by one. This is not a
    swap: moving index 0 to 2 in ``[A, B, C, D]`` gives ``[B, C, A, D]``.

    Raises:
        IndexError: If either index is out of range.
    """
    size = len(seq)
    if not (0 <= old_index < size and 0 <= new_index < size):
        raise IndexError(f"move({old_index}, {new_index}) out of range for {size} elements")
    result = list(seq)
    result.insert(new_index, result.pop(old_index))
    return result


def reindex(seq: Sequence[P]) -> tuple[P, ...]:
    """Reassign positions from list index, copying only entities that change."""
    return tuple(
        entity if entity.position == index else replace(entity, position=index)  # type: ignore[type-var]
        for index, entity in enumerate(seq)
    )


def reorder(seq: Sequence[P], old_index: int, new_index: int) -> tuple[P, ...]:
    """Move one entity and reassign positions 0..n-1.

    ``old_index == new_index`` and out-of-range indices (the drag target
    vanished) leave the input untouched.
    """
    if old_index == new_index:
        return tuple(seq)
    size = len(seq)
    if not (0 <= old_index < size and 0 <= new_index < size):
        return tuple(seq)
    return reindex(move(seq, old_index, new_index))


def index_of(seq: Sequence[Any], entity_id: Hashable) -> int:
    """Index of the entity with the given id, or -1."""
    for index, entity in enumerate(seq):
        if entity.id == entity_id:
            return index
    return -1


def reorder_by_id(
    seq: Sequence[P],
    active_id: Hashable,
    over_id: Hashable | None,
) -> tuple[P, ...] | None:
    """Resolve a drag gesture by ids.

    Returns:
        The reordered sequence, or None when the gesture is a no-op
        (dropped in place, dropped outside a target, or an id no longer
        present in the list).
    """
    if over_id is None or over_id == active_id:
        return None
    old_index = index_of(seq, active_id)
    new_index = index_of(seq, over_id)
    if old_index == -1 or new_index == -1:
        return None
    return reorder(seq, old_index, new_index)


def move_by_id(seq: Sequence[T], active_id: Hashable, over_id: Hashable | None) -> list[T] | None:
    """Same as reorder_by_id for sequences without a position field."""
    if over_id is None or over_id == active_id:
        return None
    old_index = index_of(seq, active_id)
    new_index = index_of(seq, over_id)
    if old_index == -1 or new_index == -1:
        return None
    return move(seq, old_index, new_index)


def position_changes(
    before: Sequence[Positioned],
    after: Sequence[Positioned],
) -> list[tuple[Any, int]]:
    """Minimal ``(id, position)`` writes turning ``before`` into ``after``.

    An entity is written when its new position differs from the stored one,
    which also repairs positions that drifted upstream.
    """
    stored = {entity.id: entity.position for entity in before}
    return [
        (entity.id, entity.position)
        for entity in after
        if stored.get(entity.id) != entity.position
    ]


def is_dense(seq: Sequence[Positioned]) -> bool:
    """True if the positions are exactly 0..n-1 without duplicates."""
    return sorted(entity.position for entity in seq) == list(range(len(seq)))


def next_position(seq: Sequence[Any]) -> int:
    """Position for an entity appended to the collection."""
    return len(seq)
