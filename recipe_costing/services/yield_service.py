"""
Yield aggregation for recipes.

The recipe's yield quantity is the sum of its ingredient quantities, each
converted into the recipe's yield unit.

When the recipe has no yield unit, raw quantities are summed as-is. This
legacy mode is imprecise: lines in different units (e.g. 500 g + 1 kg) are
added together unconverted. A warning is logged whenever that happens.
"""

import logging
from typing import Callable, Iterable, Optional

from .logging_utils import get_service_logger, log_operation
from .recipe_lines import RecipeLine
from .unit_converter import UnitCatalog, UnitRef, convert_quantity
from ..utils.constants import YIELD_EPSILON

logger = get_service_logger(__name__)


def calculate_yield(
    lines: Iterable[RecipeLine], yield_unit: UnitRef, catalog: UnitCatalog
) -> float:
    """
    Sum recipe lines into the recipe's yield unit.

    Args:
        lines: Working-copy rows
        yield_unit: Recipe yield unit (id, abbreviation or name); None selects
            the legacy raw-sum mode
        catalog: Unit catalog snapshot

    Returns:
        Total yield quantity. Rows without an ingredient, a unit or a positive
        quantity are skipped. Rows that cannot be converted contribute their
        unconverted quantity.
    """
    lines = list(lines)

    if yield_unit is None:
        return _legacy_sum(lines, catalog)

    total = 0.0
    for line in lines:
        if line.ingredient_id is None or line.unit_id is None or line.quantity <= 0:
            continue
        _, value, _ = convert_quantity(catalog, line.quantity, line.unit_id, yield_unit)
        total += value
    return total


def _legacy_sum(lines, catalog: UnitCatalog) -> float:
    total = sum(line.quantity or 0.0 for line in lines)
    units = {catalog.label(line.unit_id) for line in lines if line.unit_id is not None}
    if len(units) > 1:
        logger.warning(
            f"Recipe has no yield unit; summing raw quantities across units "
            f"{sorted(units)} without conversion"
        )
    return total


class YieldTracker:
    """
    Change detection for recomputed yields.

    A new value is propagated only when it differs from the last propagated
    value by more than epsilon; the first value always propagates.
    """

    def __init__(self, epsilon: float = YIELD_EPSILON):
        self.epsilon = epsilon
        self.last_value: Optional[float] = None

    def update(self, value: float) -> bool:
        """Record a recomputed value; True if it should be propagated."""
        if self.last_value is not None and abs(value - self.last_value) <= self.epsilon:
            return False
        self.last_value = value
        return True

    def reset(self) -> None:
        self.last_value = None


def propagate_recipe_yield(
    recipe_id: int,
    yield_qty: float,
    set_recipe_yield: Callable[[int, float], object],
) -> bool:
    """
    Push a recomputed yield to the recipe, best-effort.

    Failures are logged and reported; they never block line-level saves.

    Returns:
        True if the recipe was updated
    """
    try:
        set_recipe_yield(recipe_id, yield_qty)
    except Exception as e:
        log_operation(
            logger,
            operation="propagate_recipe_yield",
            outcome="error",
            level=logging.WARNING,
            recipe_id=recipe_id,
            yield_qty=yield_qty,
            error=str(e),
        )
        return False

    log_operation(
        logger,
        operation="propagate_recipe_yield",
        outcome="success",
        level=logging.DEBUG,
        recipe_id=recipe_id,
        yield_qty=yield_qty,
    )
    return True
