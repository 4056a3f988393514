"""
Unit tests for unit resolution and quantity conversion.

Tests cover:
- Resolution by id, numeric string, abbreviation and name
- Identity and round-trip conversions
- Incompatible dimensions (warning, never an exception)
- Fallback table for units missing from the catalog
- Display helpers
"""

import logging

import pytest

from recipe_costing.services.unit_converter import (
    UnitCatalog,
    UnitRecord,
    convert,
    convert_quantity,
    format_conversion,
    units_compatible,
)


class TestUnitCatalog:
    """Test unit reference resolution."""

    def test_resolve_by_id(self, unit_catalog):
        assert unit_catalog.resolve(2).abbreviation == "kg"

    def test_resolve_numeric_string(self, unit_catalog):
        assert unit_catalog.resolve("2").abbreviation == "kg"

    def test_resolve_abbreviation_case_insensitive(self, unit_catalog):
        assert unit_catalog.resolve("KG").id == 2
        assert unit_catalog.resolve(" ml ").id == 4

    def test_resolve_display_name(self, unit_catalog):
        assert unit_catalog.resolve("Kilogram").id == 2

    def test_resolve_unknown(self, unit_catalog):
        assert unit_catalog.resolve("pinch") is None
        assert unit_catalog.resolve(999) is None
        assert unit_catalog.resolve(None) is None
        assert unit_catalog.resolve("") is None

    def test_units_of_type(self, unit_catalog):
        abbreviations = [u.abbreviation for u in unit_catalog.units_of_type("volume")]
        assert abbreviations == ["ml", "l"]

    def test_label_falls_back_to_raw_reference(self, unit_catalog):
        assert unit_catalog.label(2) == "kg"
        assert unit_catalog.label("pinch") == "pinch"
        assert unit_catalog.label(None) == ""


class TestConversion:
    """Test conversions between units of one dimension."""

    def test_identity_for_every_unit(self, unit_catalog):
        """Converting a unit to itself returns the quantity unchanged."""
        for unit in unit_catalog:
            for quantity in (0.0, 1.0, 2.5, 1234.5):
                assert convert_quantity(unit_catalog, quantity, unit.id, unit.id) == (
                    True,
                    quantity,
                    "",
                )

    def test_identity_across_reference_forms(self, unit_catalog):
        assert convert_quantity(unit_catalog, 3.0, 2, "kilogram") == (True, 3.0, "")

    @pytest.mark.parametrize(
        "first,second",
        [("g", "kg"), ("mg", "kg"), ("mg", "g"), ("ml", "l")],
    )
    def test_round_trip(self, unit_catalog, first, second):
        quantity = 737.25
        there = convert(unit_catalog, quantity, first, second)
        back = convert(unit_catalog, there, second, first)
        assert back == pytest.approx(quantity)

    def test_grams_to_kilograms(self, unit_catalog):
        assert convert_quantity(unit_catalog, 500, "g", "kg") == (True, 0.5, "")

    def test_litres_to_millilitres_by_name(self, unit_catalog):
        assert convert(unit_catalog, 1.5, "litre", "millilitre") == pytest.approx(1500)

    def test_negative_quantity_converts_arithmetically(self, unit_catalog):
        assert convert(unit_catalog, -1000, "g", "kg") == pytest.approx(-1.0)


class TestConversionFailures:
    """Failed conversions return the input quantity with a warning."""

    def test_mass_to_volume_is_refused(self, unit_catalog, caplog):
        with caplog.at_level(logging.WARNING):
            converted, value, warning = convert_quantity(unit_catalog, 5.0, "g", "ml")

        assert converted is False
        assert value == 5.0
        assert "Cannot convert between mass and volume" in warning
        assert "Cannot convert between mass and volume" in caplog.text

    def test_missing_unit_reference(self, unit_catalog):
        converted, value, warning = convert_quantity(unit_catalog, 5.0, None, "g")
        assert converted is False
        assert value == 5.0
        assert warning

    def test_unknown_units_are_unchanged(self, unit_catalog):
        converted, value, warning = convert_quantity(unit_catalog, 3.0, "pinch", "g")
        assert (converted, value) == (False, 3.0)
        assert "unit data not found" in warning

    def test_zero_multiplier_is_unresolved(self, unit_catalog):
        converted, value, _ = convert_quantity(unit_catalog, 3.0, "brk", "g")
        assert (converted, value) == (False, 3.0)


class TestFallbackConversions:
    """Hard-coded metric pairs used when the catalog cannot help."""

    def test_empty_catalog_uses_fallback(self):
        catalog = UnitCatalog()
        converted, value, warning = convert_quantity(catalog, 500, "g", "kg")
        assert (converted, warning) == (True, "")
        assert value == pytest.approx(0.5)
        assert convert(catalog, 2, "kg", "mg") == pytest.approx(2_000_000)

    def test_litre_spellings(self):
        catalog = UnitCatalog()
        assert convert(catalog, 2, "litre", "ml") == pytest.approx(2000)
        assert convert(catalog, 250, "ml", "Liters") == pytest.approx(0.25)

    def test_same_unknown_spelling_is_identity(self):
        assert convert_quantity(UnitCatalog(), 7, "litre", "l") == (True, 7, "")

    def test_zero_multiplier_falls_back_on_abbreviation(self):
        catalog = UnitCatalog(
            [UnitRecord(1, "gram", "g", "mass", 1.0), UnitRecord(2, "kilogram", "kg", "mass", 0.0)]
        )
        assert convert_quantity(catalog, 3, 2, 1) == (True, 3000.0, "")


class TestHelpers:
    """Test compatibility and display helpers."""

    def test_units_compatible(self, unit_catalog):
        assert units_compatible(unit_catalog, "g", "kg") is True
        assert units_compatible(unit_catalog, "g", "ml") is False
        assert units_compatible(unit_catalog, "g", "pinch") is False

    def test_format_conversion(self, unit_catalog):
        assert format_conversion(unit_catalog, 500, "g", "kg") == "500 g = 0.50 kg"

    def test_format_conversion_error(self, unit_catalog):
        assert format_conversion(unit_catalog, 1, "g", "ml").startswith("Error: ")
