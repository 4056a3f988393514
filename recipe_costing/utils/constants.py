"""
Constants for the recipe costing engine.

This module defines system-wide constants including:
- Application metadata
- Unit types and the seed unit catalog
- Costing defaults (yield percent, yield epsilon)
- Error message templates
"""

from typing import Dict, List, Tuple

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Recipe Costing"
APP_VERSION = "0.1.0"
DATABASE_FILENAME = "recipe_costing.db"

# ============================================================================
# Unit Types
# ============================================================================

UNIT_TYPE_MASS = "mass"
UNIT_TYPE_VOLUME = "volume"
UNIT_TYPE_COUNT = "count"

# Seed unit catalog: (abbreviation, name, unit_type, base_multiplier)
# Base units: g (mass), ml (volume), each (count)
SEED_UNITS: List[Tuple[str, str, str, float]] = [
    # Mass
    ("mg", "milligram", UNIT_TYPE_MASS, 0.001),
    ("g", "gram", UNIT_TYPE_MASS, 1.0),
    ("kg", "kilogram", UNIT_TYPE_MASS, 1000.0),
    ("oz", "ounce", UNIT_TYPE_MASS, 28.3495),
    ("lb", "pound", UNIT_TYPE_MASS, 453.592),
    # Volume
    ("ml", "millilitre", UNIT_TYPE_VOLUME, 1.0),
    ("l", "litre", UNIT_TYPE_VOLUME, 1000.0),
    ("tsp", "teaspoon", UNIT_TYPE_VOLUME, 4.92892),
    ("tbsp", "tablespoon", UNIT_TYPE_VOLUME, 14.7868),
    ("fl oz", "fluid ounce", UNIT_TYPE_VOLUME, 29.5735),
    ("cup", "cup", UNIT_TYPE_VOLUME, 236.588),
    # Count
    ("each", "each", UNIT_TYPE_COUNT, 1.0),
    ("dozen", "dozen", UNIT_TYPE_COUNT, 12.0),
]

# Last-resort conversions used when a unit is missing from the catalog.
# Keyed by (from_abbreviation, to_abbreviation) -> multiplier.
FALLBACK_CONVERSIONS: Dict[Tuple[str, str], float] = {
    ("mg", "g"): 1 / 1000,
    ("g", "mg"): 1000.0,
    ("mg", "kg"): 1 / 1_000_000,
    ("kg", "mg"): 1_000_000.0,
    ("g", "kg"): 1 / 1000,
    ("kg", "g"): 1000.0,
    ("ml", "l"): 1 / 1000,
    ("l", "ml"): 1000.0,
}

# Spellings folded onto a canonical abbreviation before fallback lookup
UNIT_ALIASES: Dict[str, str] = {
    "litre": "l",
    "liter": "l",
    "litres": "l",
    "liters": "l",
}

# ============================================================================
# Costing Defaults
# ============================================================================

DEFAULT_YIELD_PERCENT = 100.0

# Fields on the ingredient library that affect line costs
PRICE_FIELDS: Tuple[str, ...] = ("unit_cost", "pack_cost", "pack_size", "yield_percent")

# Recomputed yield must move by more than this before it is propagated
YIELD_EPSILON = 0.01

# Provisional (never persisted) line ids start with this prefix
PROVISIONAL_ID_PREFIX = "temp-"

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_SUPPLIER_LENGTH = 200
MAX_QUANTITY = 1e9
MAX_COST = 1e7

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_NON_NEGATIVE = "Cannot be negative"
ERROR_MISSING_INGREDIENT = "Row missing ingredient selection"
ERROR_QUANTITY_NOT_POSITIVE = "quantity must be > 0"
ERROR_MISSING_UNIT = "missing unit"
