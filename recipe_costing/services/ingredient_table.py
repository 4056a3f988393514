"""
Recipe ingredient table - the editing session for one recipe's lines.

RecipeIngredientTable ties the engine together on a single event loop:
- the ChangeTracker working copy, mutated synchronously by edits
- debounced display recompute of line_cost while quantities are typed
- optimistic single-row saves with snapshot rollback
- batch save through the reconciler
- cancel-then-replace reloads, also triggered by ingredient price changes
- change-detection-guarded yield propagation to the recipe

Collaborators are plain callables/objects so the table runs against the
SQLAlchemy services or any in-memory substitute. Sink and loader results
that are awaitable are awaited by the async operations.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from ..utils.config import Config, get_config
from ..utils.constants import PRICE_FIELDS
from . import batch_reconciler
from .batch_reconciler import BatchResult, IngredientLookup, LineSink, prepare_payload
from .change_tracker import ChangeTracker
from .costing_service import calculate_recipe_cost, display_line_cost, lines_missing_cost_data
from .dto import LinePayload
from .exceptions import PersistenceError, ServiceError, StaleRequestDiscarded
from .logging_utils import get_service_logger, log_operation
from .recipe_lines import (
    LineId,
    RecipeLine,
    is_provisional,
    line_values,
    with_changes,
    with_ingredient,
)
from .scheduling import AsyncioScheduler, Debouncer, LatestRequest, Scheduler
from .unit_converter import UnitCatalog, UnitRef
from .yield_service import YieldTracker, calculate_yield, propagate_recipe_yield

logger = get_service_logger(__name__)


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def price_fields_changed(old: Any, new: Any) -> bool:
    """True if any cost-relevant field differs between two ingredient records."""
    return any(_field(old, name) != _field(new, name) for name in PRICE_FIELDS)


class RecipeIngredientTable:
    """
    Editing session for the ingredient lines of one recipe.

    Args:
        recipe_id: Recipe being edited
        catalog: Unit catalog snapshot for the session
        fetch_ingredient: Fresh ingredient lookup (IngredientNotFound if missing)
        sink: Persistence sink for lines
        load_lines: Callable returning the recipe's stored lines (sync or async)
        yield_unit: Recipe yield unit; None selects the legacy raw-sum yield
        set_recipe_yield: Recipe Update collaborator; None disables propagation
        scheduler: Scheduler for the debounced recompute (asyncio by default)
        config: Configuration (global config by default)
    """

    def __init__(
        self,
        recipe_id: Optional[int],
        catalog: UnitCatalog,
        fetch_ingredient: IngredientLookup,
        sink: LineSink,
        load_lines: Callable[[int], Any],
        yield_unit: UnitRef = None,
        set_recipe_yield: Optional[Callable[[int, float], Any]] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[Config] = None,
    ):
        self.recipe_id = recipe_id
        self.catalog = catalog
        self.fetch_ingredient = fetch_ingredient
        self.sink = sink
        self.load_lines = load_lines
        self.yield_unit = yield_unit
        self.set_recipe_yield = set_recipe_yield
        self.config = config or get_config()

        self.tracker = ChangeTracker()
        self.editing = False
        self.yield_qty: Optional[float] = None
        self.last_result: Optional[BatchResult] = None

        self._yield_tracker = YieldTracker(self.config.yield_epsilon)
        self._reload = LatestRequest()
        self._scheduler = scheduler or AsyncioScheduler()
        self._cost_debouncers: Dict[LineId, Debouncer] = {}

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def lines(self) -> List[RecipeLine]:
        return self.tracker.lines

    @property
    def total_cost(self) -> float:
        return calculate_recipe_cost(self.tracker.lines)

    @property
    def has_unsaved_changes(self) -> bool:
        return self.tracker.has_unsaved_changes

    @property
    def pending_count(self) -> int:
        return self.tracker.pending_count

    @property
    def recompute_pending(self) -> bool:
        """True while a debounced line_cost recompute is waiting to run."""
        return any(d.pending for d in self._cost_debouncers.values())

    # ------------------------------------------------------------------
    # Edit mode
    # ------------------------------------------------------------------

    def start_editing(self) -> None:
        """Enter edit mode, seeding placeholder rows for an empty recipe."""
        self.editing = True
        self.tracker.ensure_placeholder_rows(self.recipe_id, self.config.placeholder_rows)

    def stop_editing(self) -> None:
        """Leave edit mode, discarding every unsaved change."""
        self._cancel_recompute()
        for line_id in list(self.tracker.pending):
            self.tracker.discard(line_id)
        for line in self.tracker.lines:
            if line.is_provisional:
                self.tracker.discard(line.id)
        self.editing = False

    # ------------------------------------------------------------------
    # Working-copy edits
    # ------------------------------------------------------------------

    def add_line(self) -> RecipeLine:
        return self.tracker.add_line(self.recipe_id)

    def update_line(self, line_id: LineId, **changes) -> RecipeLine:
        return self.tracker.update_line(line_id, **changes)

    def select_ingredient(self, line_id: LineId, ingredient_id: int) -> RecipeLine:
        """
        Select an ingredient on a row, caching its cost fields for display.

        Raises:
            IngredientNotFound: If the ingredient doesn't exist
        """
        ingredient = self.fetch_ingredient(ingredient_id)
        line = with_ingredient(self.tracker.get(line_id), ingredient)
        return self.tracker.update_line(line_id, **line_values(line))

    def set_quantity(self, line_id: LineId, quantity: Any) -> RecipeLine:
        """
        Update a row's quantity; its line_cost is recomputed after the
        debounce window, using the last quantity entered.
        """
        line = self.tracker.update_line(line_id, quantity=quantity)
        self._debouncer_for(line_id).trigger(line_id)
        return line

    def set_unit(self, line_id: LineId, unit_id: UnitRef) -> RecipeLine:
        return self.tracker.update_line(line_id, unit_id=unit_id)

    def delete_line(self, line_id: LineId) -> None:
        """Remove a row now; a persisted row is deleted from the store on save."""
        self.tracker.mark_deleted(line_id)

    def cancel_edit(self, line_id: LineId) -> None:
        self.tracker.discard(line_id)

    def flush_recompute(self) -> bool:
        """Run every waiting line_cost recompute immediately."""
        flushed = [d.flush() for d in list(self._cost_debouncers.values())]
        self._cost_debouncers.clear()
        return any(flushed)

    def _cancel_recompute(self) -> None:
        for debouncer in self._cost_debouncers.values():
            debouncer.cancel()
        self._cost_debouncers.clear()

    def _debouncer_for(self, line_id: LineId) -> Debouncer:
        debouncer = self._cost_debouncers.get(line_id)
        if debouncer is None:
            debouncer = Debouncer(
                self._scheduler, self.config.debounce_seconds, self._recompute_line_cost
            )
            self._cost_debouncers[line_id] = debouncer
        return debouncer

    def _recompute_line_cost(self, line_id: LineId) -> None:
        line = self.tracker.find(line_id)
        if line is None:
            return
        cost = display_line_cost(with_changes(line, line_cost=None))
        self.tracker.replace_line(with_changes(line, line_cost=cost))

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def _payload(self, line: RecipeLine, position: int) -> LinePayload:
        return prepare_payload(
            line, self.fetch_ingredient, recipe_id=self.recipe_id, sort_order=position
        )

    async def _send(self, line_id: LineId, payload: LinePayload) -> Optional[RecipeLine]:
        if is_provisional(line_id):
            result = self.sink.insert_line(payload)
        else:
            result = self.sink.update_line(line_id, payload)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def save_line(self, line_id: LineId, **changes) -> Optional[RecipeLine]:
        """
        Save one row optimistically.

        The edit (with its freshly computed cost) is applied to the working
        copy before the store write. If the write fails the row is rolled
        back to its pre-edit snapshot and pending state, and the error is
        raised.

        Returns:
            The saved row as it now stands in the working copy, or None if
            the row was deleted while the write was in flight

        Raises:
            ValidationError: Missing ingredient, non-positive quantity or missing unit
            CostDataMissingError: The ingredient has no usable cost
            PersistenceError: The store write failed
        """
        before, position = self.tracker.snapshot(line_id)
        previous_change = self.tracker.change_for(line_id)

        candidate = with_changes(before, **changes)
        payload = self._payload(candidate, position)

        values = line_values(candidate)
        values["line_cost"] = payload.line_cost
        self.tracker.update_line(line_id, **values)

        try:
            saved = await self._send(line_id, payload)
        except (Exception, asyncio.CancelledError) as e:
            self.tracker.rollback(before, position, previous_change)
            log_operation(
                logger,
                operation="save_line",
                outcome="rolled_back",
                level=logging.WARNING,
                recipe_id=self.recipe_id,
                line_id=line_id,
                error=str(e),
            )
            if isinstance(e, (ServiceError, asyncio.CancelledError)):
                raise
            raise PersistenceError(str(e), e) from e

        kept = self.tracker.confirm_write(line_id, saved)
        log_operation(
            logger,
            operation="save_line",
            outcome="success" if kept else "deleted_meanwhile",
            level=logging.DEBUG,
            recipe_id=self.recipe_id,
            line_id=line_id,
        )
        self.recompute_yield()
        return self.tracker.find(saved.id) if kept and saved is not None else None

    async def add_ingredient(
        self, ingredient_id: int, quantity: float, unit_id: UnitRef = None
    ) -> Optional[RecipeLine]:
        """
        Append a complete row and insert it right away.

        The row appears immediately; if the insert fails it is removed again
        and the error is raised.
        """
        ingredient = self.fetch_ingredient(ingredient_id)
        line = self.tracker.add_line(self.recipe_id)
        line = with_ingredient(with_changes(line, quantity=quantity, unit_id=unit_id), ingredient)

        try:
            payload = self._payload(line, self.tracker.position(line.id))
            values = line_values(line)
            values["line_cost"] = payload.line_cost
            self.tracker.update_line(line.id, **values)
            saved = await self._send(line.id, payload)
        except (Exception, asyncio.CancelledError) as e:
            if line.id in self.tracker:
                self.tracker.mark_deleted(line.id)
            log_operation(
                logger,
                operation="add_ingredient",
                outcome="rolled_back",
                level=logging.WARNING,
                recipe_id=self.recipe_id,
                ingredient_id=ingredient_id,
                error=str(e),
            )
            if isinstance(e, (ServiceError, asyncio.CancelledError)):
                raise
            raise PersistenceError(str(e), e) from e

        kept = self.tracker.confirm_write(line.id, saved)
        self.recompute_yield()
        return self.tracker.find(saved.id) if kept and saved is not None else None

    def save_all(self) -> BatchResult:
        """
        Commit every pending change through the batch reconciler.

        Requires a sink with synchronous operations. The recipe yield is
        recomputed afterwards when anything was saved.
        """
        self.flush_recompute()
        result = batch_reconciler.save_all(
            self.tracker,
            self.fetch_ingredient,
            self.sink,
            recipe_id=self.recipe_id,
            max_errors=self.config.max_summary_errors,
        )
        self.last_result = result
        if result.succeeded:
            self.recompute_yield()
        return result

    # ------------------------------------------------------------------
    # Reloading
    # ------------------------------------------------------------------

    async def _fetch_lines(self) -> List[RecipeLine]:
        result = self.load_lines(self.recipe_id)
        if inspect.isawaitable(result):
            result = await result
        return list(result)

    async def reload(self) -> bool:
        """
        Replace the working copy with the stored lines.

        A newer reload cancels this one; the superseded call returns False
        without touching the working copy.

        Returns:
            True if this reload's lines were applied
        """
        try:
            lines = await self._reload.run(self._fetch_lines)
        except StaleRequestDiscarded:
            return False

        self._cancel_recompute()
        self.tracker.reset(lines)
        if self.editing:
            self.tracker.ensure_placeholder_rows(self.recipe_id, self.config.placeholder_rows)

        missing = lines_missing_cost_data(lines)
        if missing:
            logger.warning(
                f"Recipe {self.recipe_id}: {len(missing)} line(s) without cost data: "
                f"{', '.join(line.label for line in missing)}"
            )

        log_operation(
            logger,
            operation="reload",
            outcome="success",
            level=logging.DEBUG,
            recipe_id=self.recipe_id,
            lines=len(lines),
        )
        self.recompute_yield()
        return True

    async def on_ingredient_changed(self, old: Any, new: Any) -> bool:
        """
        Handle an ingredient library change notification.

        Reloads when a cost-relevant field changed.

        Returns:
            True if a reload was applied
        """
        if not price_fields_changed(old, new):
            return False
        logger.info(
            f"Ingredient {_field(new, 'name') or _field(new, 'id')} price changed; "
            f"reloading recipe {self.recipe_id}"
        )
        return await self.reload()

    # ------------------------------------------------------------------
    # Yield
    # ------------------------------------------------------------------

    def recompute_yield(self) -> float:
        """
        Recompute the yield from the working copy.

        The recipe is updated only when the value moved by more than the
        configured epsilon; a failed update is retried on the next call.
        """
        self.yield_qty = calculate_yield(self.tracker.lines, self.yield_unit, self.catalog)
        if self.recipe_id is None or self.set_recipe_yield is None:
            return self.yield_qty
        if self._yield_tracker.update(self.yield_qty):
            if not propagate_recipe_yield(self.recipe_id, self.yield_qty, self.set_recipe_yield):
                self._yield_tracker.reset()
        return self.yield_qty
