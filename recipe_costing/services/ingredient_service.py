"""
Ingredient Service - the ingredient library collaborator.

Provides CRUD for ingredient library records and the fresh cost lookup the
batch reconciler uses at save time. Lookups never cache: every call reads
the current row.
"""

from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Ingredient
from ..utils.validators import validate_ingredient_data
from .database import session_scope
from .dto import IngredientCostData
from .exceptions import IngredientNotFound, PersistenceError, ValidationError


def create_ingredient(data: Dict, session: Optional[Session] = None) -> IngredientCostData:
    """
    Create an ingredient library record.

    Args:
        data: Dictionary with name, supplier, unit_cost, pack_cost, pack_size,
            yield_percent, base_unit_id, is_prep_item, linked_recipe_id, allergens
        session: Optional database session

    Returns:
        Cost data of the created ingredient

    Raises:
        ValidationError: If data validation fails
        PersistenceError: If database operation fails
    """
    is_valid, errors = validate_ingredient_data(data)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> IngredientCostData:
        ingredient = Ingredient(
            name=data["name"],
            supplier=data.get("supplier"),
            unit_cost=data.get("unit_cost"),
            pack_cost=data.get("pack_cost"),
            pack_size=data.get("pack_size"),
            yield_percent=data.get("yield_percent", 100.0),
            base_unit_id=data.get("base_unit_id"),
            is_prep_item=bool(data.get("is_prep_item", False)),
            linked_recipe_id=data.get("linked_recipe_id"),
            allergens=data.get("allergens"),
        )
        sess.add(ingredient)
        sess.flush()
        return IngredientCostData.from_model(ingredient)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to create ingredient '{data.get('name')}'", e)


def update_ingredient(
    ingredient_id: int, data: Dict, session: Optional[Session] = None
) -> IngredientCostData:
    """
    Update fields of an ingredient library record.

    Raises:
        IngredientNotFound: If the ingredient doesn't exist
        ValidationError: If the merged data is invalid
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> IngredientCostData:
        ingredient = sess.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise IngredientNotFound(ingredient_id)

        merged = ingredient.to_dict()
        merged.update(data)
        is_valid, errors = validate_ingredient_data(merged)
        if not is_valid:
            raise ValidationError(errors)

        ingredient.update_from_dict(data)
        sess.flush()
        return IngredientCostData.from_model(ingredient)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update ingredient {ingredient_id}", e)


def fetch_ingredient_cost_data(
    ingredient_id: int, session: Optional[Session] = None
) -> IngredientCostData:
    """
    Fetch the current cost fields of an ingredient.

    Args:
        ingredient_id: Ingredient ID
        session: Optional database session

    Returns:
        IngredientCostData read fresh from the library

    Raises:
        IngredientNotFound: If the ingredient doesn't exist
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> IngredientCostData:
        ingredient = sess.get(Ingredient, ingredient_id)
        if ingredient is None:
            raise IngredientNotFound(ingredient_id)
        return IngredientCostData.from_model(ingredient)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to fetch cost data for ingredient {ingredient_id}", e)


def search_ingredients(query: str = "", limit: int = 10) -> List[IngredientCostData]:
    """
    Ingredients whose name contains the query (case-insensitive).

    An empty query returns the first `limit` ingredients by name.
    """
    with session_scope() as session:
        q = session.query(Ingredient)
        if query.strip():
            q = q.filter(Ingredient.name.ilike(f"%{query.strip()}%"))
        return [
            IngredientCostData.from_model(i) for i in q.order_by(Ingredient.name).limit(limit).all()
        ]
