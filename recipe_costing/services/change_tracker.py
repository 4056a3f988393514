"""
Change tracking for a recipe's ingredient table.

The tracker owns the working copy (ordered rows, mutated synchronously) and
the pending change set that the batch reconciler commits.

Row lifecycle:
    persisted: clean -> MODIFIED -> (saved -> clean | discarded -> clean)
    provisional: none -> NEW -> (saved -> clean | discarded -> removed)
    persisted: clean|MODIFIED -> DELETED (row removed now, store delete on save)

Invariants:
- A provisional id is only ever NEW or absent; deleting it drops it.
- A persisted id is only ever MODIFIED or DELETED, never NEW.
"""

from collections import OrderedDict
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .exceptions import LineNotFound
from .recipe_lines import (
    CompleteLine,
    LineId,
    RecipeLine,
    is_provisional,
    make_line,
    new_provisional_id,
    with_changes,
)


class ChangeType(str, Enum):
    """Pending change recorded for one row."""

    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"


class ChangeTracker:
    """
    Working copy plus pending change set for one recipe's ingredient lines.

    Attributes:
        pending: Mapping of line id -> ChangeType
    """

    def __init__(self, lines: Iterable[RecipeLine] = ()):
        self._lines: "OrderedDict[LineId, RecipeLine]" = OrderedDict()
        self.pending: Dict[LineId, ChangeType] = {}
        self._originals: Dict[LineId, RecipeLine] = {}
        self._deleted_positions: Dict[LineId, int] = {}
        self.reset(lines)

    # ------------------------------------------------------------------
    # Working set
    # ------------------------------------------------------------------

    @property
    def lines(self) -> List[RecipeLine]:
        return list(self._lines.values())

    def __contains__(self, line_id: LineId) -> bool:
        return line_id in self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def get(self, line_id: LineId) -> RecipeLine:
        try:
            return self._lines[line_id]
        except KeyError:
            raise LineNotFound(line_id)

    def find(self, line_id: LineId) -> Optional[RecipeLine]:
        return self._lines.get(line_id)

    def reset(self, lines: Iterable[RecipeLine]) -> None:
        """Replace the working set (after a reload) and clear pending changes."""
        self._lines = OrderedDict((line.id, line) for line in lines)
        self.pending = {}
        self._originals = {}
        self._deleted_positions = {}

    def add_line(self, recipe_id: Optional[int] = None) -> RecipeLine:
        """Append a provisional empty row and mark it NEW."""
        line = make_line(new_provisional_id(), recipe_id=recipe_id, sort_order=len(self._lines))
        self._lines[line.id] = line
        self.record(line.id, ChangeType.NEW)
        return line

    def ensure_placeholder_rows(self, recipe_id: Optional[int] = None, count: int = 3) -> List[RecipeLine]:
        """
        Seed an empty working set with untracked placeholder rows.

        Placeholders are not recorded as pending; they count as unsaved only
        once they hold complete data.

        Returns:
            The rows added (empty if the working set was not empty)
        """
        if self._lines:
            return []
        added = []
        for index in range(count):
            line = make_line(new_provisional_id(), recipe_id=recipe_id, sort_order=index)
            self._lines[line.id] = line
            added.append(line)
        return added

    def replace_line(self, line: RecipeLine) -> None:
        """Overwrite a row in place without touching the pending set."""
        if line.id not in self._lines:
            raise LineNotFound(line.id)
        self._lines[line.id] = line

    def snapshot(self, line_id: LineId) -> Tuple[RecipeLine, int]:
        """The current row and its position, for rolling back an optimistic edit."""
        return self.get(line_id), self.position(line_id)

    def restore(self, line: RecipeLine, position: Optional[int] = None) -> None:
        """Put a snapshot back into the working set (rollback)."""
        if line.id in self._lines or position is None:
            self._lines[line.id] = line
            return
        items = list(self._lines.items())
        items.insert(min(position, len(items)), (line.id, line))
        self._lines = OrderedDict(items)

    def position(self, line_id: LineId) -> int:
        for index, key in enumerate(self._lines):
            if key == line_id:
                return index
        raise LineNotFound(line_id)

    def update_line(self, line_id: LineId, **changes) -> RecipeLine:
        """Apply field changes to a row and mark it modified."""
        current = self.get(line_id)
        if not current.is_provisional and line_id not in self.pending:
            self._originals[line_id] = current
        line = with_changes(current, **changes)
        self._lines[line_id] = line
        self.mark_modified(line_id)
        return line

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def record(self, line_id: LineId, change: ChangeType) -> None:
        """
        Record a pending change, enforcing the id/state asymmetry.

        Raises:
            ValueError: If a provisional id is recorded as anything but NEW,
                or a persisted id as NEW
        """
        if is_provisional(line_id) != (change == ChangeType.NEW):
            kind = "provisional" if is_provisional(line_id) else "persisted"
            raise ValueError(f"Cannot record {kind} line {line_id} as {change.value}")
        self.pending[line_id] = change

    def mark_modified(self, line_id: LineId) -> None:
        """
        Record an edit.

        Provisional rows become (or stay) NEW; persisted rows become MODIFIED
        the first time they are touched and stay there.
        """
        if is_provisional(line_id):
            if line_id not in self.pending:
                self.record(line_id, ChangeType.NEW)
        elif self.pending.get(line_id) != ChangeType.DELETED:
            self.record(line_id, ChangeType.MODIFIED)

    def mark_deleted(self, line_id: LineId) -> None:
        """
        Delete a row from the working set immediately.

        A provisional row is forgotten entirely; a persisted row is recorded
        as DELETED so the reconciler issues the store delete.

        Raises:
            LineNotFound: If the row is not in the working set
        """
        position = self.position(line_id)
        removed = self._lines.pop(line_id)
        if is_provisional(line_id):
            self.pending.pop(line_id, None)
            return
        self._originals.setdefault(line_id, removed)
        self._deleted_positions[line_id] = position
        self.record(line_id, ChangeType.DELETED)

    def discard(self, line_id: LineId) -> None:
        """
        Cancel an edit.

        Clears the pending entry; a provisional row is also removed, so an
        edit-then-cancel on a new row leaves nothing behind. A persisted row
        goes back to the values it had before its first edit, and a deleted
        one reappears where it was.
        """
        self.pending.pop(line_id, None)
        original = self._originals.pop(line_id, None)
        position = self._deleted_positions.pop(line_id, None)
        if is_provisional(line_id):
            self._lines.pop(line_id, None)
        elif original is not None:
            self.restore(original, position)

    def mark_saved(self, line_id: LineId, saved_line: Optional[RecipeLine] = None) -> None:
        """
        Confirm a successful store write.

        Clears the pending entry. When a saved row is supplied it replaces the
        working row in place, swapping a provisional id for the persisted one.
        A provisional row saved without a returned row is dropped; it now
        lives only in the store.
        """
        self.pending.pop(line_id, None)
        self._originals.pop(line_id, None)
        self._deleted_positions.pop(line_id, None)
        if line_id not in self._lines:
            return
        if saved_line is None:
            if is_provisional(line_id):
                del self._lines[line_id]
            return
        if saved_line.id == line_id:
            self._lines[line_id] = saved_line
            return
        self._lines = OrderedDict(
            (saved_line.id, saved_line) if key == line_id else (key, line)
            for key, line in self._lines.items()
        )

    def confirm_write(self, line_id: LineId, saved_line: Optional[RecipeLine] = None) -> bool:
        """
        Settle a single-row write that may have raced a delete.

        If the row is still in the working set this is mark_saved. If it was
        deleted while the write was in flight the delete stands: a persisted
        row keeps its DELETED entry (the saved values become what a discard
        brings back) and a provisional row the store just inserted is
        recorded as DELETED under its new id.

        Returns:
            True if the row is still in the working set
        """
        if line_id in self._lines:
            self.mark_saved(line_id, saved_line)
            return True
        if saved_line is None or saved_line.is_provisional:
            return False
        if is_provisional(line_id):
            self.pending.pop(line_id, None)
            self._originals[saved_line.id] = saved_line
            self.record(saved_line.id, ChangeType.DELETED)
        elif self.pending.get(line_id) == ChangeType.DELETED:
            self._originals[line_id] = saved_line
        return False

    def rollback(
        self, line: RecipeLine, position: int, change: Optional[ChangeType] = None
    ) -> None:
        """
        Undo an optimistic edit.

        Puts the snapshot row back at its position and restores the pending
        entry the row had before the edit (None means it was clean). A row
        deleted or discarded while the write was in flight stays gone.
        """
        if line.id not in self._lines:
            return
        self.restore(line, position)
        if change is None:
            self.pending.pop(line.id, None)
            self._originals.pop(line.id, None)
        else:
            self.record(line.id, change)

    def clear_pending(self) -> None:
        """Forget every pending change (leaving edit mode)."""
        self.pending = {}
        self._originals = {}
        self._deleted_positions = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def change_for(self, line_id: LineId) -> Optional[ChangeType]:
        return self.pending.get(line_id)

    def untracked_complete_rows(self) -> List[RecipeLine]:
        """Provisional rows that hold complete data but were never marked."""
        return [
            line
            for line in self._lines.values()
            if line.is_provisional
            and isinstance(line, CompleteLine)
            and line.id not in self.pending
        ]

    def deleted_ids(self) -> List[LineId]:
        return [key for key, change in self.pending.items() if change == ChangeType.DELETED]

    @property
    def has_unsaved_changes(self) -> bool:
        """True if anything is pending or a placeholder row has become complete."""
        return bool(self.pending) or bool(self.untracked_complete_rows())

    @property
    def pending_count(self) -> int:
        return len(self.pending) + len(self.untracked_complete_rows())
