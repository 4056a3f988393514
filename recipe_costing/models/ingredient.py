"""
Ingredient library model.

The ingredient library owns the money-relevant fields that recipe lines are
costed from. The costing engine reads these rows fresh at save time.
"""

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient master record.

    Attributes:
        name: Ingredient name (e.g., "Flour")
        supplier: Supplier name
        unit_cost: Cost per base unit; authoritative when non-zero
        pack_cost: Cost of one pack
        pack_size: Pack size in base units (used when unit_cost is missing)
        yield_percent: Usable share after trim/wastage, in (0, 100]
        base_unit_id: Unit that unit_cost and pack_size are expressed in
        is_prep_item: True if the ingredient is made in house from a sub-recipe
        linked_recipe_id: The sub-recipe that produces it, if any
        allergens: List of allergen keys (e.g. ["gluten", "milk"])
    """

    __tablename__ = "ingredients"

    name = Column(String(200), nullable=False, index=True)
    supplier = Column(String(200), nullable=True)

    unit_cost = Column(Float, nullable=True)
    pack_cost = Column(Float, nullable=True)
    pack_size = Column(Float, nullable=True)
    yield_percent = Column(Float, nullable=True, default=100.0)

    base_unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)
    base_unit = relationship("Unit", lazy="joined")

    is_prep_item = Column(Boolean, nullable=False, default=False)
    linked_recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True)
    allergens = Column(JSON, nullable=True)

    recipe_ingredients = relationship("RecipeIngredient", back_populates="ingredient")

    __table_args__ = (
        CheckConstraint(
            "yield_percent IS NULL OR (yield_percent > 0 AND yield_percent <= 100)",
            name="ck_ingredient_yield_percent_range",
        ),
    )
