"""Services package - costing engine and persistence layer for Recipe Costing.

Architecture:
- Engine: pure costing/yield functions, the change tracker and the batch
  reconciler operate on in-memory rows (recipe_lines)
- Collaborators: SQLAlchemy-backed services supply ingredient lookups, the
  unit catalog, line persistence and recipe yield updates
- Transactions: Managed via session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy

Engine Modules:
- unit_converter: Unit catalog and quantity conversion
- costing_service: Unit cost and yield-adjusted line cost
- yield_service: Recipe yield aggregation and propagation
- change_tracker: Working copy and pending change set
- batch_reconciler: save_all() with per-row failure isolation
- scheduling: Debounce and cancel-then-replace primitives
- ingredient_table: Editing session for one recipe's lines

Collaborator Modules:
- unit_service: Unit reference table queries
- ingredient_service: Ingredient library CRUD and fresh cost lookups
- recipe_service: Recipe headers, yield updates, cost breakdowns
- recipe_ingredient_service: Line persistence sink
"""

from . import (
    batch_reconciler,
    change_tracker,
    costing_service,
    database,
    ingredient_service,
    recipe_ingredient_service,
    recipe_service,
    unit_converter,
    unit_service,
    yield_service,
)

from .exceptions import (
    CostDataMissingError,
    IngredientNotFound,
    LineNotFound,
    PersistenceError,
    RecipeNotFound,
    ServiceError,
    StaleRequestDiscarded,
    ValidationError,
)

__all__ = [
    "batch_reconciler",
    "change_tracker",
    "costing_service",
    "database",
    "ingredient_service",
    "recipe_ingredient_service",
    "recipe_service",
    "unit_converter",
    "unit_service",
    "yield_service",
    "ServiceError",
    "ValidationError",
    "CostDataMissingError",
    "IngredientNotFound",
    "RecipeNotFound",
    "LineNotFound",
    "PersistenceError",
    "StaleRequestDiscarded",
]
