"""
Input validation functions for the recipe costing engine.

This module provides validation functions for:
- Numeric validation (non-negative, yield percent)
- String validation (required fields, length)
- Ingredient and recipe records
- Recipe ingredient rows before persistence
"""

from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_MISSING_INGREDIENT,
    ERROR_MISSING_UNIT,
    ERROR_QUANTITY_NOT_POSITIVE,
    ERROR_REQUIRED_FIELD,
    MAX_COST,
    MAX_NAME_LENGTH,
    MAX_QUANTITY,
    MAX_SUPPLIER_LENGTH,
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """Validate that a string doesn't exceed maximum length."""
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_non_negative_number(
    value: Any, field_name: str = "Field", max_value: Optional[float] = None
) -> Tuple[bool, str]:
    """
    Validate that a value is a non-negative number (>= 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages
        max_value: Optional inclusive upper bound

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    if max_value is not None and num_value > max_value:
        return False, f"{field_name}: Must be at most {max_value:g}"
    return True, ""


def validate_yield_percent(value: Any) -> Tuple[bool, str]:
    """
    Validate a yield percentage, which must lie in (0, 100].

    A missing value is valid; it defaults to 100 when costing.
    """
    if value is None:
        return True, ""
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return False, f"Yield percent: {ERROR_INVALID_NUMBER}"
    if num_value <= 0 or num_value > 100:
        return False, "Yield percent: Must be greater than 0 and at most 100"
    return True, ""


def validate_ingredient_data(data: Dict) -> Tuple[bool, List[str]]:
    """
    Validate ingredient library data.

    Args:
        data: Dictionary with ingredient fields

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    is_valid, error = validate_required_string(data.get("name"), "Name")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data["name"], MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    is_valid, error = validate_string_length(data.get("supplier"), MAX_SUPPLIER_LENGTH, "Supplier")
    if not is_valid:
        errors.append(error)

    for field_name, label in (
        ("unit_cost", "Unit cost"),
        ("pack_cost", "Pack cost"),
        ("pack_size", "Pack size"),
    ):
        if data.get(field_name) is not None:
            is_valid, error = validate_non_negative_number(data[field_name], label, MAX_COST)
            if not is_valid:
                errors.append(error)

    is_valid, error = validate_yield_percent(data.get("yield_percent"))
    if not is_valid:
        errors.append(error)

    allergens = data.get("allergens")
    if allergens is not None and (
        not isinstance(allergens, (list, tuple))
        or not all(isinstance(key, str) and key.strip() for key in allergens)
    ):
        errors.append("Allergens: Must be a list of allergen names")

    return len(errors) == 0, errors


def validate_recipe_data(data: Dict) -> Tuple[bool, List[str]]:
    """
    Validate recipe data.

    Args:
        data: Dictionary with recipe fields

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    is_valid, error = validate_required_string(data.get("name"), "Name")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data["name"], MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    if data.get("yield_qty") is not None:
        is_valid, error = validate_non_negative_number(data["yield_qty"], "Yield quantity")
        if not is_valid:
            errors.append(error)

    return len(errors) == 0, errors


def validate_line_fields(
    ingredient_id: Any,
    quantity: Any,
    unit_id: Any,
    label: Optional[str] = None,
) -> List[str]:
    """
    Validate a recipe ingredient row before it is persisted.

    Args:
        ingredient_id: Selected ingredient (None when not selected)
        quantity: Row quantity
        unit_id: Selected unit (None when not selected)
        label: Name used to prefix messages (ingredient name when known)

    Returns:
        List of error messages, empty when the row is valid
    """
    if ingredient_id is None:
        return [ERROR_MISSING_INGREDIENT]

    prefix = label or "Row"
    errors = []
    try:
        qty = float(quantity or 0)
    except (ValueError, TypeError):
        qty = 0.0
    if qty <= 0:
        errors.append(f"{prefix}: {ERROR_QUANTITY_NOT_POSITIVE}")
    elif qty > MAX_QUANTITY:
        errors.append(f"{prefix}: quantity is unreasonably large")
    if unit_id is None:
        errors.append(f"{prefix}: {ERROR_MISSING_UNIT}")
    return errors
