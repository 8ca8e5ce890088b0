"""Item edit drawer state.

The drawer edits a copy of one item: title, notes, assignee, due date and
its sub-item checklist. Sub-item changes (add, toggle, remove, reorder)
stay in memory until the drawer is saved, which writes every field of the
item in a single update.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from uuid import UUID

from phaseboard.board import ordering, subitems
from phaseboard.board.models import Item, SubItem


@dataclass
class ItemDraft:
    """Editable copy of an item."""

    item_id: UUID
    phase_id: UUID
    title: str
    notes: str = ""
    assigned_to: UUID | None = None
    due_date: date | None = None
    sub_items: list[SubItem] = field(default_factory=list)

    @classmethod
    def from_item(cls, item: Item) -> ItemDraft:
        return cls(
            item_id=item.id,
            phase_id=item.phase_id,
            title=item.title,
            notes=item.notes or "",
            assigned_to=item.assigned_to,
            due_date=item.due_date,
            sub_items=list(item.sub_items),
        )

    def add_sub_item(self, text: str) -> SubItem | None:
        """Append an unchecked sub-item; blank text is ignored."""
        text = text.strip()
        if not text:
            return None
        sub_item = SubItem(id=subitems.new_sub_item_id(self.sub_items), text=text)
        self.sub_items.append(sub_item)
        return sub_item

    def toggle_sub_item(self, sub_id: str) -> bool:
        index = ordering.index_of(self.sub_items, sub_id)
        if index == -1:
            return False
        current = self.sub_items[index]
        self.sub_items[index] = replace(current, completed=not current.completed)
        return True

    def remove_sub_item(self, sub_id: str) -> bool:
        index = ordering.index_of(self.sub_items, sub_id)
        if index == -1:
            return False
        del self.sub_items[index]
        return True

    def move_sub_item(self, active_id: str, over_id: str | None) -> bool:
        """Reorder the checklist by a drag gesture; no persistence."""
        moved = ordering.move_by_id(self.sub_items, active_id, over_id)
        if moved is None:
            return False
        self.sub_items = moved
        return True

    def apply_to(self, item: Item) -> Item:
        """The item as it will be saved.

        Blank notes are stored as None, and blank or repeated sub-item ids are
        replaced so the saved ids survive a reload unchanged.
        """
        return replace(
            item,
            title=self.title.strip(),
            notes=self.notes.strip() or None,
            assigned_to=self.assigned_to,
            due_date=self.due_date,
            sub_items=subitems.with_unique_ids(self.sub_items),
        )
