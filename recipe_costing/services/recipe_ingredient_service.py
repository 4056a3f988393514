"""
Recipe Ingredient Service - the persistence sink for recipe ingredient lines.

Provides:
- load_lines(): read a recipe's lines into working-copy rows
- insert_line() / update_line() / delete_line(): one store write per call
- SqlLineStore: the sink object the batch reconciler and editing session use

Each write runs in its own transaction, so every row is an independent unit
of failure. Database errors are wrapped in PersistenceError.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Recipe, RecipeIngredient
from .database import session_scope
from .dto import LinePayload
from .exceptions import LineNotFound, PersistenceError, RecipeNotFound
from .recipe_lines import LineId, RecipeLine, make_line


def line_from_model(recipe_ingredient: RecipeIngredient) -> RecipeLine:
    """
    Convert a stored line into a working-copy row.

    The ingredient's current cost fields are cached on the row for display.
    """
    ingredient = recipe_ingredient.ingredient
    return make_line(
        recipe_ingredient.id,
        recipe_id=recipe_ingredient.recipe_id,
        ingredient_id=recipe_ingredient.ingredient_id,
        ingredient_name=ingredient.name if ingredient else "",
        quantity=recipe_ingredient.quantity,
        unit_id=recipe_ingredient.unit_id,
        line_cost=recipe_ingredient.line_cost,
        sort_order=recipe_ingredient.sort_order or 0,
        unit_cost=ingredient.unit_cost if ingredient else None,
        pack_cost=ingredient.pack_cost if ingredient else None,
        pack_size=ingredient.pack_size if ingredient else None,
        yield_percent=ingredient.yield_percent if ingredient else None,
        is_sub_recipe=bool(ingredient and (ingredient.is_prep_item or ingredient.linked_recipe_id)),
        linked_recipe_id=ingredient.linked_recipe_id if ingredient else None,
        allergens=tuple(ingredient.allergens or ()) if ingredient else (),
    )


def load_lines(recipe_id: int, session: Optional[Session] = None) -> List[RecipeLine]:
    """
    Load a recipe's ingredient lines in table order.

    Args:
        recipe_id: Recipe ID
        session: Optional database session

    Returns:
        Working-copy rows ordered by sort_order

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> List[RecipeLine]:
        if sess.get(Recipe, recipe_id) is None:
            raise RecipeNotFound(recipe_id)
        rows = (
            sess.query(RecipeIngredient)
            .filter(RecipeIngredient.recipe_id == recipe_id)
            .order_by(RecipeIngredient.sort_order, RecipeIngredient.id)
            .all()
        )
        return [line_from_model(row) for row in rows]

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to load lines for recipe {recipe_id}", e)


def insert_line(payload: LinePayload, session: Optional[Session] = None) -> RecipeLine:
    """
    Insert one recipe ingredient line.

    Returns:
        The stored row, carrying its persisted id

    Raises:
        PersistenceError: If database operation fails (e.g. unknown recipe,
            ingredient or unit)
    """

    def _impl(sess: Session) -> RecipeLine:
        row = RecipeIngredient(**payload.to_dict())
        sess.add(row)
        sess.flush()
        sess.refresh(row)
        return line_from_model(row)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to insert line for ingredient {payload.ingredient_id}", e)


def update_line(line_id: LineId, payload: LinePayload, session: Optional[Session] = None) -> RecipeLine:
    """
    Overwrite one stored line with a recomputed payload.

    Raises:
        LineNotFound: If the line doesn't exist
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> RecipeLine:
        row = sess.get(RecipeIngredient, line_id)
        if row is None:
            raise LineNotFound(line_id)
        for key, value in payload.to_dict().items():
            if key == "recipe_id" and value is None:
                continue
            setattr(row, key, value)
        sess.flush()
        sess.refresh(row)
        return line_from_model(row)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to update line {line_id}", e)


def delete_line(line_id: LineId, session: Optional[Session] = None) -> None:
    """
    Delete one stored line.

    Raises:
        LineNotFound: If the line doesn't exist
        PersistenceError: If database operation fails
    """

    def _impl(sess: Session) -> None:
        row = sess.get(RecipeIngredient, line_id)
        if row is None:
            raise LineNotFound(line_id)
        sess.delete(row)
        sess.flush()

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to delete line {line_id}", e)


class SqlLineStore:
    """Line sink backed by the recipe_ingredients table."""

    def insert_line(self, payload: LinePayload) -> RecipeLine:
        return insert_line(payload)

    def update_line(self, line_id: LineId, payload: LinePayload) -> RecipeLine:
        return update_line(line_id, payload)

    def delete_line(self, line_id: LineId) -> None:
        delete_line(line_id)
