"""Data Transfer Objects for the costing engine boundary.

These are the in-memory structures exchanged with the collaborators:
- IngredientCostData: what the ingredient lookup returns
- LinePayload: what the persistence sink receives for insert/update
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class IngredientCostData:
    """Cost-relevant fields of an ingredient library record.

    Attributes:
        id: Ingredient ID
        name: Ingredient name, used in error messages
        unit_cost: Direct cost per base unit (authoritative when non-zero)
        pack_cost: Cost of one pack
        pack_size: Pack size in base units
        yield_percent: Usable share in (0, 100]; None means 100
        supplier: Supplier name (display only)
        base_unit_id: Unit that unit_cost and pack_size are expressed in
        is_prep_item: Made in house from a sub-recipe
        linked_recipe_id: Recipe that produces a prep item
        allergens: Allergen keys, display only
    """

    id: int
    name: str
    unit_cost: Optional[float] = None
    pack_cost: Optional[float] = None
    pack_size: Optional[float] = None
    yield_percent: Optional[float] = None
    supplier: Optional[str] = None
    base_unit_id: Optional[int] = None
    is_prep_item: bool = False
    linked_recipe_id: Optional[int] = None
    allergens: Tuple[str, ...] = ()

    @classmethod
    def from_model(cls, ingredient) -> "IngredientCostData":
        return cls(
            id=ingredient.id,
            name=ingredient.name,
            unit_cost=ingredient.unit_cost,
            pack_cost=ingredient.pack_cost,
            pack_size=ingredient.pack_size,
            yield_percent=ingredient.yield_percent,
            supplier=ingredient.supplier,
            base_unit_id=ingredient.base_unit_id,
            is_prep_item=bool(ingredient.is_prep_item),
            linked_recipe_id=ingredient.linked_recipe_id,
            allergens=tuple(ingredient.allergens or ()),
        )


@dataclass(frozen=True)
class LinePayload:
    """Authoritative field values written for one recipe ingredient line.

    line_cost and unit_cost are always recomputed from a fresh ingredient
    lookup before a payload is built.
    """

    recipe_id: Optional[int]
    ingredient_id: int
    quantity: float
    unit_id: Any
    line_cost: float
    unit_cost: float
    sort_order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
