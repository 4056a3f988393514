"""Service layer exception classes for the recipe costing engine.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── CostDataMissingError
    ├── IngredientNotFound
    ├── RecipeNotFound
    ├── LineNotFound
    ├── PersistenceError
    └── StaleRequestDiscarded

Row-level errors raised while saving recipe ingredient lines are collected by
the batch reconciler; they never propagate past it.
"""


class ServiceError(Exception):
    """Base exception for all service layer errors."""

    pass


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class CostDataMissingError(ServiceError):
    """Raised when an ingredient has neither a unit cost nor pack cost data.

    Args:
        ingredient_name: Name of the ingredient that cannot be costed

    Example:
        >>> raise CostDataMissingError("Flour")
        CostDataMissingError: Flour has no cost data
    """

    def __init__(self, ingredient_name: str):
        self.ingredient_name = ingredient_name
        super().__init__(f"{ingredient_name or 'Ingredient'} has no cost data")


class IngredientNotFound(ServiceError):
    """Raised when an ingredient cannot be found by ID."""

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient with ID {ingredient_id} not found")


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID."""

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class LineNotFound(ServiceError):
    """Raised when a recipe ingredient line is not in the working set or the store."""

    def __init__(self, line_id):
        self.line_id = line_id
        super().__init__(f"Recipe ingredient line {line_id} not found")


class PersistenceError(ServiceError):
    """Raised when a store operation fails.

    Args:
        message: Description of the failed operation
        original_error: Underlying exception, if any
    """

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message)


class StaleRequestDiscarded(ServiceError):
    """Raised to a superseded request once a newer one has replaced it.

    Not user-visible; callers drop the stale result silently.
    """

    def __init__(self, generation: int):
        self.generation = generation
        super().__init__(f"Request generation {generation} was superseded")
