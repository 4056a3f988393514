"""
Unit conversion for recipe ingredient quantities.

This module provides:
- UnitCatalog: an immutable snapshot of the unit reference table
- Unit resolution by id, abbreviation or display name
- Quantity conversion through each dimension's base unit
- A small hard-coded fallback table for common metric pairs

Conversion Strategy:
- Units sharing a unit_type convert via base_multiplier:
  result = quantity * from.base_multiplier / to.base_multiplier
- Units of different unit_type never convert
- Failed conversions return the input quantity with a warning; they never raise,
  so costing can proceed with best-effort numbers
"""

from dataclasses import dataclass
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ..utils.constants import FALLBACK_CONVERSIONS, UNIT_ALIASES

logger = logging.getLogger(__name__)

UnitRef = Union[int, str, None]


@dataclass(frozen=True)
class UnitRecord:
    """Read-only copy of one unit reference row."""

    id: int
    name: str
    abbreviation: str
    unit_type: str
    base_multiplier: float

    @classmethod
    def from_model(cls, unit) -> "UnitRecord":
        return cls(
            id=unit.id,
            name=unit.name,
            abbreviation=unit.abbreviation,
            unit_type=unit.unit_type,
            base_multiplier=float(unit.base_multiplier or 0.0),
        )


class UnitCatalog:
    """
    Immutable snapshot of the unit reference table.

    Loaded once per editing session and shared by the converter, the yield
    aggregator and the costing helpers.
    """

    def __init__(self, units: Iterable[UnitRecord] = ()):
        self._units: Tuple[UnitRecord, ...] = tuple(units)
        self._by_id: Dict[int, UnitRecord] = {u.id: u for u in self._units}
        self._by_abbreviation: Dict[str, UnitRecord] = {
            u.abbreviation.lower(): u for u in self._units if u.abbreviation
        }
        self._by_name: Dict[str, UnitRecord] = {u.name.lower(): u for u in self._units if u.name}

    @classmethod
    def from_models(cls, units: Iterable) -> "UnitCatalog":
        """Build a catalog from Unit ORM instances."""
        return cls(UnitRecord.from_model(u) for u in units)

    def __iter__(self) -> Iterator[UnitRecord]:
        return iter(self._units)

    def __len__(self) -> int:
        return len(self._units)

    def get(self, unit_id: int) -> Optional[UnitRecord]:
        return self._by_id.get(unit_id)

    def resolve(self, ref: UnitRef) -> Optional[UnitRecord]:
        """
        Resolve a unit reference against the catalog.

        Args:
            ref: Catalog id (int or numeric string), abbreviation or name.
                Abbreviations and names match case-insensitively.

        Returns:
            The matching UnitRecord, or None if the reference is unknown
        """
        if ref is None or isinstance(ref, bool):
            return None
        if isinstance(ref, int):
            return self._by_id.get(ref)

        text = str(ref).strip()
        if not text:
            return None
        if text.isdigit() and int(text) in self._by_id:
            return self._by_id[int(text)]

        key = text.lower()
        return self._by_abbreviation.get(key) or self._by_name.get(key)

    def units_of_type(self, unit_type: str) -> List[UnitRecord]:
        return [u for u in self._units if u.unit_type == unit_type]

    def label(self, ref: UnitRef) -> str:
        """Abbreviation for display, falling back to the raw reference."""
        unit = self.resolve(ref)
        if unit is not None:
            return unit.abbreviation
        return "" if ref is None else str(ref)


def _usable(unit: Optional[UnitRecord]) -> Optional[UnitRecord]:
    # A zero multiplier cannot be divided through; treat it as unresolved
    if unit is None or not unit.base_multiplier:
        return None
    return unit


def _fallback_key(unit: Optional[UnitRecord], ref: UnitRef) -> str:
    text = unit.abbreviation if unit is not None else ("" if ref is None else str(ref))
    text = text.strip().lower()
    return UNIT_ALIASES.get(text, text)


def convert_quantity(
    catalog: UnitCatalog, quantity: float, from_ref: UnitRef, to_ref: UnitRef
) -> Tuple[bool, float, str]:
    """
    Convert a quantity from one unit to another.

    Args:
        catalog: Unit catalog snapshot
        quantity: Quantity to convert
        from_ref: Source unit (id, abbreviation or name)
        to_ref: Target unit (id, abbreviation or name)

    Returns:
        Tuple of (converted, value, warning)
        - converted: True if the value is expressed in the target unit
        - value: Converted quantity, or the input quantity when conversion failed
        - warning: Description of why conversion failed (empty string on success)
    """
    if from_ref is None or to_ref is None:
        return False, quantity, "Cannot convert: unit not specified"

    if from_ref == to_ref:
        return True, quantity, ""

    from_unit = catalog.resolve(from_ref)
    to_unit = catalog.resolve(to_ref)

    if from_unit is not None and to_unit is not None and from_unit.id == to_unit.id:
        return True, quantity, ""

    usable_from = _usable(from_unit)
    usable_to = _usable(to_unit)

    if usable_from is None or usable_to is None:
        from_key = _fallback_key(from_unit, from_ref)
        to_key = _fallback_key(to_unit, to_ref)

        if from_key and from_key == to_key:
            return True, quantity, ""

        factor = FALLBACK_CONVERSIONS.get((from_key, to_key))
        if factor is not None:
            return True, quantity * factor, ""

        warning = f"Cannot convert from {from_ref} to {to_ref} - unit data not found"
        logger.warning(warning)
        return False, quantity, warning

    if usable_from.unit_type != usable_to.unit_type:
        warning = (
            f"Cannot convert between {usable_from.unit_type} and {usable_to.unit_type} "
            f"({usable_from.abbreviation} -> {usable_to.abbreviation})"
        )
        logger.warning(warning)
        return False, quantity, warning

    return True, quantity * usable_from.base_multiplier / usable_to.base_multiplier, ""


def convert(catalog: UnitCatalog, quantity: float, from_ref: UnitRef, to_ref: UnitRef) -> float:
    """Convert a quantity, returning the input unchanged when conversion fails."""
    _, value, _ = convert_quantity(catalog, quantity, from_ref, to_ref)
    return value


def units_compatible(catalog: UnitCatalog, first: UnitRef, second: UnitRef) -> bool:
    """
    Check if two units resolve and share a unit_type.

    Args:
        catalog: Unit catalog snapshot
        first: First unit reference
        second: Second unit reference

    Returns:
        True if quantities can be converted between the units
    """
    a = _usable(catalog.resolve(first))
    b = _usable(catalog.resolve(second))
    if a is None or b is None:
        return False
    return a.unit_type == b.unit_type


def format_conversion(
    catalog: UnitCatalog, value: float, from_ref: UnitRef, to_ref: UnitRef, precision: int = 2
) -> str:
    """
    Format a unit conversion for display.

    Returns:
        Formatted string (e.g., "500 g = 0.50 kg"), or an error description
    """
    converted, result, warning = convert_quantity(catalog, value, from_ref, to_ref)
    if not converted:
        return f"Error: {warning}"
    return f"{value:g} {catalog.label(from_ref)} = {result:.{precision}f} {catalog.label(to_ref)}"
