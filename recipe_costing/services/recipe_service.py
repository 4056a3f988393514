"""
Recipe Service - recipe headers, yield updates and cost breakdowns.

This service provides:
- Recipe creation and lookup
- set_recipe_yield(), the Recipe Update collaborator fed by the yield aggregator
- Cost breakdowns built from the stored ingredient lines
"""

from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Recipe
from ..utils.validators import validate_recipe_data
from .costing_service import (
    calculate_cost_per_yield_unit,
    calculate_recipe_cost,
    display_line_cost,
    effective_unit_cost,
    resolve_unit_cost,
)
from .database import session_scope
from .exceptions import PersistenceError, RecipeNotFound, ValidationError
from .recipe_ingredient_service import load_lines
from .unit_converter import UnitCatalog
from .yield_service import calculate_yield


# ============================================================================
# CRUD Operations
# ============================================================================


def create_recipe(recipe_data: Dict, session: Optional[Session] = None) -> Recipe:
    """
    Create a new recipe header.

    Args:
        recipe_data: Dictionary with name, optional yield_qty and yield_unit_id
        session: Optional database session

    Returns:
        Created Recipe instance

    Raises:
        ValidationError: If data validation fails
        PersistenceError: If database operation fails
    """
    is_valid, errors = validate_recipe_data(recipe_data)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Recipe:
        recipe = Recipe(
            name=recipe_data["name"],
            yield_qty=recipe_data.get("yield_qty"),
            yield_unit_id=recipe_data.get("yield_unit_id"),
        )
        sess.add(recipe)
        sess.flush()
        return recipe

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError("Failed to create recipe", e)


def get_recipe(recipe_id: int, session: Optional[Session] = None) -> Recipe:
    """
    Retrieve a recipe by ID.

    Raises:
        RecipeNotFound: If recipe doesn't exist
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> Recipe:
        recipe = sess.get(Recipe, recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)
        return recipe

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to retrieve recipe {recipe_id}", e)


def set_recipe_yield(recipe_id: int, yield_qty: float, session: Optional[Session] = None) -> None:
    """
    Store a recomputed yield quantity on a recipe.

    Raises:
        RecipeNotFound: If recipe doesn't exist
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> None:
        recipe = sess.get(Recipe, recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)
        recipe.yield_qty = yield_qty
        sess.flush()

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update yield of recipe {recipe_id}", e)


# ============================================================================
# Cost Calculations
# ============================================================================


def recompute_recipe_yield(recipe_id: int, catalog: UnitCatalog) -> float:
    """
    Recompute a recipe's yield from its stored lines and store it.

    Returns:
        The new yield quantity
    """
    recipe = get_recipe(recipe_id)
    yield_qty = calculate_yield(load_lines(recipe_id), recipe.yield_unit_id, catalog)
    set_recipe_yield(recipe_id, yield_qty)
    return yield_qty


def get_recipe_cost_breakdown(recipe_id: int, catalog: UnitCatalog) -> Dict:
    """
    Cost breakdown of a recipe from its stored lines.

    Args:
        recipe_id: Recipe ID
        catalog: Unit catalog used for labels and the yield

    Returns:
        Dictionary with:
        - recipe_id, recipe_name
        - lines: list of dicts (ingredient_name, quantity, unit, unit_cost,
          effective_unit_cost, yield_percent, line_cost, is_sub_recipe,
          allergens)
        - total_cost: sum of line costs
        - yield_qty, yield_unit: computed yield
        - cost_per_yield_unit

    Raises:
        RecipeNotFound: If recipe doesn't exist
    """
    recipe = get_recipe(recipe_id)
    lines = load_lines(recipe_id)

    breakdown: List[Dict] = []
    for line in lines:
        unit_cost = resolve_unit_cost(line.unit_cost, line.pack_cost, line.pack_size)
        breakdown.append(
            {
                "ingredient_name": line.ingredient_name,
                "quantity": line.quantity,
                "unit": catalog.label(line.unit_id),
                "unit_cost": unit_cost,
                "effective_unit_cost": (
                    effective_unit_cost(unit_cost, line.yield_percent)
                    if unit_cost is not None
                    else None
                ),
                "yield_percent": line.yield_percent,
                "line_cost": display_line_cost(line),
                "is_sub_recipe": line.is_sub_recipe,
                "allergens": list(line.allergens),
            }
        )

    total_cost = calculate_recipe_cost(lines)
    yield_qty = calculate_yield(lines, recipe.yield_unit_id, catalog)

    return {
        "recipe_id": recipe.id,
        "recipe_name": recipe.name,
        "lines": breakdown,
        "total_cost": total_cost,
        "yield_qty": yield_qty,
        "yield_unit": catalog.label(recipe.yield_unit_id) if recipe.yield_unit_id else "",
        "cost_per_yield_unit": calculate_cost_per_yield_unit(total_cost, yield_qty),
    }
