"""
Recipe models.

This module contains:
- Recipe: recipe header with the derived yield quantity
- RecipeIngredient: one costed ingredient line of a recipe
"""

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class Recipe(BaseModel):
    """
    Recipe model.

    Attributes:
        name: Recipe name
        yield_qty: Total produced quantity, recomputed from the ingredient lines
        yield_unit_id: Unit the yield is expressed in (None = legacy raw sum)
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False, index=True)
    yield_qty = Column(Float, nullable=True)
    yield_unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)

    yield_unit = relationship("Unit", lazy="joined")
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.sort_order",
    )


class RecipeIngredient(BaseModel):
    """
    Ingredient line of a recipe.

    Attributes:
        recipe_id: Foreign key to Recipe
        ingredient_id: Foreign key to Ingredient
        quantity: Amount used, in unit_id
        unit_id: Unit of the quantity
        line_cost: Yield-adjusted cost of the line at save time
        unit_cost: Resolved unit cost the line_cost was computed from
        sort_order: Position in the recipe's ingredient table
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Float, nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    line_cost = Column(Float, nullable=True)
    unit_cost = Column(Float, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    ingredient = relationship("Ingredient", back_populates="recipe_ingredients", lazy="joined")
    unit = relationship("Unit", lazy="joined")

    __table_args__ = (
        Index("idx_recipe_ingredient_recipe", "recipe_id"),
        Index("idx_recipe_ingredient_ingredient", "ingredient_id"),
    )

    def __repr__(self) -> str:
        return (
            f"RecipeIngredient(recipe_id={self.recipe_id}, "
            f"ingredient_id={self.ingredient_id}, "
            f"quantity={self.quantity}, unit_id={self.unit_id})"
        )
