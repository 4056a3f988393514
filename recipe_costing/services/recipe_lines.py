"""Working-copy rows of a recipe's ingredient table.

A row is one of three explicit states:

- EmptyLine: no ingredient selected yet (draft placeholder, never persisted)
- PartialLine: ingredient selected, but quantity <= 0 or unit missing
- CompleteLine: ingredient, positive quantity and unit set (save-eligible)

Rows are immutable. make_line() and with_changes() always return the state
that matches the fields, so save eligibility is isinstance(line, CompleteLine).

Row ids are either persisted integer ids or provisional strings prefixed
with "temp-" for rows that have never been saved.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple, Union
import uuid

from ..utils.constants import PROVISIONAL_ID_PREFIX
from .dto import IngredientCostData

LineId = Union[int, str]


def new_provisional_id() -> str:
    """Generate a fresh provisional line id."""
    return f"{PROVISIONAL_ID_PREFIX}{uuid.uuid4().hex}"


def is_provisional(line_id: LineId) -> bool:
    """True if the id has never been assigned by the store."""
    return isinstance(line_id, str) and line_id.startswith(PROVISIONAL_ID_PREFIX)


@dataclass(frozen=True)
class RecipeLine:
    """Common fields of every row state.

    The unit_cost/pack_cost/pack_size/yield_percent fields are a display cache
    of the selected ingredient. They are never used on the save path, and
    neither are the sub-recipe flag and allergens.
    """

    id: LineId
    recipe_id: Optional[int] = None
    ingredient_id: Optional[int] = None
    ingredient_name: str = ""
    quantity: float = 0.0
    unit_id: Any = None
    line_cost: Optional[float] = None
    sort_order: int = 0
    unit_cost: Optional[float] = None
    pack_cost: Optional[float] = None
    pack_size: Optional[float] = None
    yield_percent: Optional[float] = None
    is_sub_recipe: bool = False
    linked_recipe_id: Optional[int] = None
    allergens: Tuple[str, ...] = ()

    @property
    def is_provisional(self) -> bool:
        return is_provisional(self.id)

    @property
    def label(self) -> str:
        return self.ingredient_name or "Row"


@dataclass(frozen=True)
class EmptyLine(RecipeLine):
    """Placeholder row with no ingredient selected."""


@dataclass(frozen=True)
class PartialLine(RecipeLine):
    """Row with an ingredient but no positive quantity or no unit yet."""


@dataclass(frozen=True)
class CompleteLine(RecipeLine):
    """Row with ingredient, positive quantity and unit."""


def _classify(ingredient_id, quantity, unit_id) -> type:
    if ingredient_id is None:
        return EmptyLine
    if (quantity or 0) > 0 and unit_id is not None:
        return CompleteLine
    return PartialLine


def make_line(line_id: LineId, **values) -> RecipeLine:
    """
    Build a row in the state matching its fields.

    Args:
        line_id: Persisted or provisional line id
        **values: Any RecipeLine field

    Returns:
        EmptyLine, PartialLine or CompleteLine
    """
    quantity = values.get("quantity")
    values["quantity"] = float(quantity) if quantity not in (None, "") else 0.0
    cls = _classify(values.get("ingredient_id"), values["quantity"], values.get("unit_id"))
    return cls(id=line_id, **values)


def line_values(line: RecipeLine) -> Dict[str, Any]:
    """Field values of a row, without its id."""
    return {f.name: getattr(line, f.name) for f in fields(RecipeLine) if f.name != "id"}


def with_changes(line: RecipeLine, **changes) -> RecipeLine:
    """Copy a row with changed fields, reclassifying its state."""
    values = line_values(line)
    values.update(changes)
    return make_line(line.id, **values)


def with_ingredient(line: RecipeLine, ingredient: IngredientCostData) -> RecipeLine:
    """
    Select an ingredient on a row.

    Refreshes the display cache from the ingredient and clears the stale
    line_cost so it is recomputed.
    """
    return with_changes(
        line,
        ingredient_id=ingredient.id,
        ingredient_name=ingredient.name,
        unit_cost=ingredient.unit_cost,
        pack_cost=ingredient.pack_cost,
        pack_size=ingredient.pack_size,
        yield_percent=ingredient.yield_percent,
        is_sub_recipe=ingredient.is_prep_item or ingredient.linked_recipe_id is not None,
        linked_recipe_id=ingredient.linked_recipe_id,
        allergens=ingredient.allergens,
        unit_id=line.unit_id if line.unit_id is not None else ingredient.base_unit_id,
        line_cost=None,
    )