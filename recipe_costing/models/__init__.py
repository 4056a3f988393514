"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .unit import Unit
from .ingredient import Ingredient
from .recipe import Recipe, RecipeIngredient

__all__ = [
    "Base",
    "BaseModel",
    "Unit",
    "Ingredient",
    "Recipe",
    "RecipeIngredient",
]
