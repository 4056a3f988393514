"""Tests for recipe yield aggregation and propagation."""

import itertools
import logging

import pytest

from recipe_costing.services.recipe_lines import make_line
from recipe_costing.services.yield_service import (
    YieldTracker,
    calculate_yield,
    propagate_recipe_yield,
)


def _line(line_id, quantity, unit_id, ingredient_id=1):
    return make_line(line_id, ingredient_id=ingredient_id, quantity=quantity, unit_id=unit_id)


class TestCalculateYield:
    def test_grams_and_kilograms_sum_in_grams(self, unit_catalog):
        """500 g + 0.5 kg of different ingredients yields 1000 g."""
        lines = [_line(1, 500, 1, ingredient_id=1), _line(2, 0.5, 2, ingredient_id=2)]
        assert calculate_yield(lines, "g", unit_catalog) == pytest.approx(1000)

    def test_yield_unit_by_id(self, unit_catalog):
        lines = [_line(1, 500, 1), _line(2, 0.5, 2)]
        assert calculate_yield(lines, 2, unit_catalog) == pytest.approx(1.0)

    def test_order_independent(self, unit_catalog):
        lines = [_line(1, 500, 1), _line(2, 0.25, 2), _line(3, 1200, 3), _line(4, 3, 1)]
        expected = calculate_yield(lines, "g", unit_catalog)
        for permutation in itertools.permutations(lines):
            assert calculate_yield(permutation, "g", unit_catalog) == pytest.approx(expected)

    def test_idempotent(self, unit_catalog):
        lines = [_line(1, 500, 1), _line(2, 0.5, 2)]
        assert calculate_yield(lines, "g", unit_catalog) == calculate_yield(lines, "g", unit_catalog)

    def test_incomplete_rows_are_skipped(self, unit_catalog):
        lines = [
            _line(1, 500, 1),
            make_line("temp-a", quantity=200, unit_id=1),
            _line(2, 300, None),
            _line(3, 0, 1),
        ]
        assert calculate_yield(lines, "g", unit_catalog) == pytest.approx(500)

    def test_incompatible_row_contributes_unconverted(self, unit_catalog):
        lines = [_line(1, 500, 1), _line(2, 100, 4)]
        assert calculate_yield(lines, "g", unit_catalog) == pytest.approx(600)

    def test_empty_recipe(self, unit_catalog):
        assert calculate_yield([], "g", unit_catalog) == 0.0


class TestLegacyYield:
    """Without a yield unit, raw quantities are summed unconverted."""

    def test_raw_sum(self, unit_catalog):
        lines = [_line(1, 500, 1), _line(2, 250, 1)]
        assert calculate_yield(lines, None, unit_catalog) == pytest.approx(750)

    def test_mixed_units_are_summed_with_warning(self, unit_catalog, caplog):
        lines = [_line(1, 500, 1), _line(2, 1, 2)]
        with caplog.at_level(logging.WARNING):
            total = calculate_yield(lines, None, unit_catalog)

        assert total == pytest.approx(501)
        assert "without conversion" in caplog.text

    def test_single_unit_does_not_warn(self, unit_catalog, caplog):
        with caplog.at_level(logging.WARNING):
            calculate_yield([_line(1, 500, 1), _line(2, 5, 1)], None, unit_catalog)
        assert caplog.text == ""


class TestYieldTracker:
    def test_first_value_propagates(self):
        assert YieldTracker().update(0.0) is True

    def test_small_changes_are_ignored(self):
        tracker = YieldTracker(epsilon=0.01)
        assert tracker.update(1000.0) is True
        assert tracker.update(1000.005) is False
        assert tracker.update(1000.02) is True
        assert tracker.last_value == 1000.02

    def test_drift_is_measured_from_last_propagated_value(self):
        tracker = YieldTracker(epsilon=0.01)
        tracker.update(10.0)
        assert tracker.update(10.008) is False
        assert tracker.update(10.016) is True

    def test_reset(self):
        tracker = YieldTracker()
        tracker.update(5.0)
        tracker.reset()
        assert tracker.update(5.0) is True


class TestPropagateRecipeYield:
    def test_success(self):
        calls = []
        assert propagate_recipe_yield(7, 1000.0, lambda rid, qty: calls.append((rid, qty))) is True
        assert calls == [(7, 1000.0)]

    def test_failure_is_logged_not_raised(self, caplog):
        def failing(recipe_id, yield_qty):
            raise RuntimeError("store offline")

        with caplog.at_level(logging.WARNING):
            assert propagate_recipe_yield(7, 1000.0, failing) is False
        assert "propagate_recipe_yield: error" in caplog.text
