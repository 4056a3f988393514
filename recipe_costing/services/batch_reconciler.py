"""
Batch Reconciler - commits a recipe's pending ingredient changes.

save_all() walks the change tracker, builds the minimal work list
(insert / update / delete), recomputes every cost from freshly fetched
ingredient data and writes each row through the persistence sink.

Failure semantics:
- Each row is an independent unit of failure; partial success is normal
- Row-level errors are collected into the BatchResult, never raised
- Rows that fail stay pending so the caller can retry
- An empty work list yields a no-op result, distinct from "everything failed"
"""

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Callable, List, Optional, Protocol

from .change_tracker import ChangeTracker, ChangeType
from .costing_service import compute_line_cost, resolve_unit_cost
from .dto import IngredientCostData, LinePayload
from .exceptions import PersistenceError, ServiceError, ValidationError
from .logging_utils import get_service_logger, log_operation
from .recipe_lines import CompleteLine, LineId, RecipeLine
from ..utils.validators import validate_line_fields

logger = get_service_logger(__name__)

IngredientLookup = Callable[[int], IngredientCostData]


class LineSink(Protocol):
    """
    Persistence collaborator for recipe ingredient lines.

    Each operation reports failure by raising; the reconciler treats every
    call as an independent unit of failure.
    """

    def insert_line(self, payload: LinePayload) -> RecipeLine:
        ...

    def update_line(self, line_id: LineId, payload: LinePayload) -> RecipeLine:
        ...

    def delete_line(self, line_id: LineId) -> Any:
        ...


class Action(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class WorkItem:
    """One store operation the batch will attempt."""

    action: Action
    line_id: LineId
    line: Optional[RecipeLine] = None

    @property
    def label(self) -> str:
        return self.line.label if self.line is not None else "Row"


@dataclass(frozen=True)
class RowError:
    """A row that could not be saved, with a user-facing message."""

    line_id: LineId
    action: Action
    message: str


@dataclass
class BatchResult:
    """
    Outcome of a save_all() call.

    Attributes:
        no_op: True when there was nothing to save
        inserted: Rows inserted
        updated: Rows updated
        deleted: Rows deleted
        errors: Per-row failures, in processing order
        max_errors: How many errors the summary lists
    """

    no_op: bool = False
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    errors: List[RowError] = field(default_factory=list)
    max_errors: int = 3

    @property
    def succeeded(self) -> int:
        return self.inserted + self.updated + self.deleted

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @property
    def success(self) -> bool:
        """True when nothing failed (including the no-op case)."""
        return not self.errors

    @property
    def first_errors(self) -> List[str]:
        return [error.message for error in self.errors[: self.max_errors]]

    def get_summary(self) -> str:
        """
        User-facing summary of the batch.

        Examples:
            "Saved: 3 added, 1 updated"
            "Saved: 3 added; 1 failed: Flour has no cost data"
            "Save failed: Flour has no cost data"
            "No changes to save"
        """
        if self.no_op:
            return "No changes to save"

        parts = []
        if self.inserted:
            parts.append(f"{self.inserted} added")
        if self.updated:
            parts.append(f"{self.updated} updated")
        if self.deleted:
            parts.append(f"{self.deleted} deleted")

        if not self.errors:
            return f"Saved: {', '.join(parts)}"

        reasons = "; ".join(self.first_errors)
        if self.failed > self.max_errors:
            reasons += f" (and {self.failed - self.max_errors} more)"
        if self.succeeded == 0:
            return f"Save failed: {reasons}"
        return f"Saved: {', '.join(parts)}; {self.failed} failed: {reasons}"


def build_work_list(tracker: ChangeTracker) -> List[WorkItem]:
    """
    Collect the store operations implied by the working copy.

    - provisional rows with complete data -> insert (tracked or not)
    - persisted rows marked MODIFIED -> update
    - ids marked DELETED -> delete

    Incomplete provisional rows are simply left out; they are not errors.
    """
    items = []
    for line in tracker.lines:
        if line.is_provisional:
            if isinstance(line, CompleteLine):
                items.append(WorkItem(Action.INSERT, line.id, line))
        elif tracker.change_for(line.id) == ChangeType.MODIFIED:
            items.append(WorkItem(Action.UPDATE, line.id, line))

    for line_id in tracker.deleted_ids():
        items.append(WorkItem(Action.DELETE, line_id))
    return items


def prepare_payload(
    line: RecipeLine,
    fetch_ingredient: IngredientLookup,
    recipe_id: Optional[int] = None,
    sort_order: Optional[int] = None,
) -> LinePayload:
    """
    Validate a row and build its authoritative payload.

    The ingredient is fetched fresh; cached cost fields on the row are ignored.

    Raises:
        ValidationError: Missing ingredient, non-positive quantity or missing unit
        IngredientNotFound: The ingredient no longer exists
        CostDataMissingError: The ingredient has no usable cost
    """
    errors = validate_line_fields(line.ingredient_id, line.quantity, line.unit_id, line.ingredient_name)
    if errors:
        raise ValidationError(errors)

    ingredient = fetch_ingredient(line.ingredient_id)
    line_cost = compute_line_cost(ingredient, line.quantity)
    unit_cost = resolve_unit_cost(ingredient.unit_cost, ingredient.pack_cost, ingredient.pack_size)

    return LinePayload(
        recipe_id=recipe_id if recipe_id is not None else line.recipe_id,
        ingredient_id=line.ingredient_id,
        quantity=line.quantity,
        unit_id=line.unit_id,
        line_cost=line_cost,
        unit_cost=unit_cost,
        sort_order=line.sort_order if sort_order is None else sort_order,
    )


def _row_message(item: WorkItem, error: Exception) -> str:
    if isinstance(error, ValidationError):
        return "; ".join(error.errors)
    message = str(error)
    if item.action == Action.DELETE:
        return f"Failed to delete line {item.line_id}: {message}"
    if item.line is None or item.label in message:
        return message
    return f"{item.label}: {message}"


def _record_failure(result: BatchResult, item: WorkItem, error: Exception) -> None:
    result.errors.append(RowError(item.line_id, item.action, _row_message(item, error)))
    log_operation(
        logger,
        operation="save_row",
        outcome="error",
        level=logging.WARNING,
        line_id=item.line_id,
        action=item.action.value,
        error=str(error),
    )


def save_all(
    tracker: ChangeTracker,
    fetch_ingredient: IngredientLookup,
    sink: LineSink,
    recipe_id: Optional[int] = None,
    max_errors: int = 3,
) -> BatchResult:
    """
    Commit every pending change in the tracker.

    Args:
        tracker: Working copy and pending change set (updated in place)
        fetch_ingredient: Ingredient lookup, called fresh for every row
        sink: Persistence collaborator
        recipe_id: Recipe the rows belong to (defaults to each row's recipe_id)
        max_errors: Number of error messages included in the summary

    Returns:
        BatchResult with per-category counts and per-row errors
    """
    work = build_work_list(tracker)
    if not work:
        log_operation(logger, operation="save_all", outcome="no_op", level=logging.DEBUG,
                      recipe_id=recipe_id)
        return BatchResult(no_op=True, max_errors=max_errors)

    result = BatchResult(max_errors=max_errors)

    for item in work:
        try:
            if item.action == Action.DELETE:
                sink.delete_line(item.line_id)
                tracker.mark_saved(item.line_id)
                result.deleted += 1
                continue

            payload = prepare_payload(
                item.line,
                fetch_ingredient,
                recipe_id=recipe_id,
                sort_order=tracker.position(item.line_id),
            )
            if item.action == Action.INSERT:
                saved = sink.insert_line(payload)
                result.inserted += 1
            else:
                saved = sink.update_line(item.line_id, payload)
                result.updated += 1
            tracker.mark_saved(item.line_id, saved)

        except ServiceError as e:
            _record_failure(result, item, e)
        except Exception as e:
            _record_failure(result, item, PersistenceError(str(e), e))

    log_operation(
        logger,
        operation="save_all",
        outcome="success" if result.success else "partial_failure",
        level=logging.INFO if result.success else logging.WARNING,
        recipe_id=recipe_id,
        inserted=result.inserted,
        updated=result.updated,
        deleted=result.deleted,
        failed=result.failed,
    )
    return result
