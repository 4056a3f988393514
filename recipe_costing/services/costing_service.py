"""
Line costing for recipe ingredients.

Formula:
    unit_cost  = ingredient.unit_cost              (when present and non-zero)
               = ingredient.pack_cost / pack_size  (otherwise)
    line_cost  = (unit_cost * quantity) / (yield_percent / 100)

Yield/wastage inflates the effective cost per unit consumed. It is applied
once, in the line cost, never folded into unit_cost.

Two entry points deliberately differ:
- compute_line_cost() is the save path. It always costs from fresh ingredient
  data and raises CostDataMissingError rather than defaulting to zero.
- display_line_cost() is the read path. It trusts a cached non-zero line_cost
  and shows 0.0 as a placeholder when cost data is missing.
"""

from typing import Iterable, List, Optional

from ..utils.constants import DEFAULT_YIELD_PERCENT
from .dto import IngredientCostData
from .exceptions import CostDataMissingError, ValidationError
from .recipe_lines import RecipeLine


def resolve_unit_cost(
    unit_cost: Optional[float],
    pack_cost: Optional[float],
    pack_size: Optional[float],
) -> Optional[float]:
    """
    Resolve the cost per base unit of an ingredient.

    Args:
        unit_cost: Direct unit cost (authoritative when non-zero)
        pack_cost: Cost of one pack
        pack_size: Pack size in base units

    Returns:
        Unit cost, or None when neither source is available
    """
    if unit_cost:
        return float(unit_cost)
    if pack_cost and pack_size and float(pack_size) > 0:
        return float(pack_cost) / float(pack_size)
    return None


def calculate_line_cost(
    quantity: float, unit_cost: float, yield_percent: Optional[float] = None
) -> float:
    """
    Calculate the yield-adjusted cost of one recipe line.

    Args:
        quantity: Quantity used (<= 0 costs nothing)
        unit_cost: Cost per unit of quantity
        yield_percent: Usable share in percent; None defaults to 100

    Returns:
        Line cost

    Raises:
        ValidationError: If yield_percent is zero or negative
    """
    if yield_percent is None:
        yield_percent = DEFAULT_YIELD_PERCENT
    if yield_percent <= 0:
        raise ValidationError([f"Yield percent must be greater than 0 (got {yield_percent:g})"])
    if quantity is None or quantity <= 0:
        return 0.0
    return (unit_cost * quantity) / (yield_percent / 100)


def compute_line_cost(ingredient: IngredientCostData, quantity: float) -> float:
    """
    Authoritative line cost from freshly fetched ingredient data.

    Raises:
        CostDataMissingError: If the ingredient has no direct or derivable cost
        ValidationError: If the ingredient's yield percent is not positive
    """
    unit_cost = resolve_unit_cost(ingredient.unit_cost, ingredient.pack_cost, ingredient.pack_size)
    if unit_cost is None:
        raise CostDataMissingError(ingredient.name)
    return calculate_line_cost(quantity, unit_cost, ingredient.yield_percent)


def display_line_cost(line: RecipeLine) -> float:
    """
    Line cost for display.

    Prefers a cached non-zero line_cost (e.g., as loaded from the store),
    otherwise recomputes from the row's cached ingredient fields. Never use
    this value for persistence.
    """
    if line.line_cost is not None and line.line_cost > 0:
        return line.line_cost

    unit_cost = resolve_unit_cost(line.unit_cost, line.pack_cost, line.pack_size)
    if unit_cost is None:
        return 0.0
    yield_percent = line.yield_percent or DEFAULT_YIELD_PERCENT
    if yield_percent <= 0:
        return 0.0
    return calculate_line_cost(line.quantity, unit_cost, yield_percent)


def effective_unit_cost(unit_cost: float, yield_percent: Optional[float] = None) -> float:
    """
    Yield-adjusted unit cost, so that line total = effective cost x quantity.

    Example:
        >>> effective_unit_cost(2.0, 80)
        2.5
    """
    yield_percent = yield_percent or DEFAULT_YIELD_PERCENT
    if 0 < yield_percent < 100:
        return unit_cost / (yield_percent / 100)
    return unit_cost


def has_cost_data(line: RecipeLine) -> bool:
    """True if the row's cached ingredient fields can produce a unit cost."""
    return resolve_unit_cost(line.unit_cost, line.pack_cost, line.pack_size) is not None


def lines_missing_cost_data(lines: Iterable[RecipeLine]) -> List[RecipeLine]:
    """Rows with a selected ingredient that has no usable cost data."""
    return [line for line in lines if line.ingredient_id is not None and not has_cost_data(line)]


def calculate_recipe_cost(lines: Iterable[RecipeLine]) -> float:
    """Total recipe cost: the sum of each row's display line cost."""
    return sum(display_line_cost(line) for line in lines)


def calculate_cost_per_yield_unit(total_recipe_cost: float, yield_quantity: Optional[float]) -> float:
    """
    Cost per unit of recipe yield.

    Returns:
        total / yield, or 0.0 when the yield is unknown or not positive
    """
    if not yield_quantity or yield_quantity <= 0:
        return 0.0
    return total_recipe_cost / yield_quantity


def format_cost(amount: float, currency_symbol: str = "£", precision: int = 2) -> str:
    """
    Format a cost value for display.

    Example:
        >>> format_cost(4)
        '£4.00'
    """
    return f"{currency_symbol}{amount:.{precision}f}"
