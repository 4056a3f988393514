"""
Tests for the batch reconciler (save all).

Tests cover:
- Work list construction (insert / update / delete, incomplete rows excluded)
- No-op results and idempotent saves
- Fresh ingredient lookups at save time
- Per-row failure isolation and retry
- Summary messages
"""

import pytest

from recipe_costing.services.batch_reconciler import (
    Action,
    BatchResult,
    RowError,
    build_work_list,
    prepare_payload,
    save_all,
)
from recipe_costing.services.change_tracker import ChangeTracker, ChangeType
from recipe_costing.services.dto import IngredientCostData
from recipe_costing.services.exceptions import ValidationError
from recipe_costing.services.recipe_lines import make_line


def _persisted(line_id, ingredient_id=1, quantity=2.0, name="Flour"):
    return make_line(
        line_id,
        recipe_id=7,
        ingredient_id=ingredient_id,
        ingredient_name=name,
        quantity=quantity,
        unit_id=2,
        line_cost=4.0,
    )


def _add_complete(tracker, ingredient_id, quantity=2.0, name=""):
    line = tracker.add_line(7)
    return tracker.update_line(
        line.id, ingredient_id=ingredient_id, ingredient_name=name, quantity=quantity, unit_id=2
    )


@pytest.fixture
def stocked_store(store):
    """Store already holding two Flour lines of recipe 7."""
    for line in (_persisted(1), _persisted(2, quantity=1.0)):
        store.rows[line.id] = line
    return store


@pytest.fixture
def tracker(stocked_store):
    return ChangeTracker(stocked_store.load(7))


class TestBuildWorkList:
    def test_classifies_rows(self, tracker):
        new = _add_complete(tracker, 2)
        tracker.update_line(1, quantity=3)
        tracker.mark_deleted(2)

        work = build_work_list(tracker)

        assert [(item.action, item.line_id) for item in work] == [
            (Action.UPDATE, 1),
            (Action.INSERT, new.id),
            (Action.DELETE, 2),
        ]

    def test_incomplete_provisional_row_is_excluded(self, tracker):
        """A new row with an ingredient but quantity 0 is simply not saved."""
        line = tracker.add_line(7)
        tracker.update_line(line.id, ingredient_id=1, quantity=0, unit_id=2)
        assert build_work_list(tracker) == []

    def test_untracked_complete_placeholder_is_inserted(self):
        tracker = ChangeTracker()
        placeholder = tracker.ensure_placeholder_rows(7)[0]
        tracker.replace_line(
            make_line(placeholder.id, recipe_id=7, ingredient_id=1, quantity=1, unit_id=2)
        )
        assert [item.action for item in build_work_list(tracker)] == [Action.INSERT]


class TestPreparePayload:
    def test_recomputes_from_fresh_ingredient(self, library):
        """Cached cost fields on the row are ignored."""
        line = make_line(
            "temp-a", recipe_id=7, ingredient_id=1, quantity=2, unit_id=2,
            unit_cost=100.0, line_cost=999.0,
        )
        payload = prepare_payload(line, library)

        assert payload.line_cost == pytest.approx(4.0)
        assert payload.unit_cost == pytest.approx(2.0)
        assert library.calls == [1]

    def test_validation_runs_before_lookup(self, library):
        line = make_line(5, ingredient_id=1, ingredient_name="Flour", quantity=0, unit_id=None)
        with pytest.raises(ValidationError) as exc_info:
            prepare_payload(line, library)

        assert exc_info.value.errors == ["Flour: quantity must be > 0", "Flour: missing unit"]
        assert library.calls == []


class TestSaveAll:
    def test_nothing_to_save_is_a_no_op(self, tracker, library, store):
        result = save_all(tracker, library, store)

        assert result.no_op
        assert result.success
        assert result.attempted == 0
        assert result.get_summary() == "No changes to save"

    def test_incomplete_row_is_not_an_error(self, tracker, library, store):
        line = tracker.add_line(7)
        tracker.update_line(line.id, ingredient_id=1, quantity=0, unit_id=2)

        result = save_all(tracker, library, store)

        assert result.no_op
        assert result.errors == []
        assert store.inserts == []

    def test_inserts_updates_and_deletes(self, tracker, library, stocked_store):
        _add_complete(tracker, 2, quantity=1.0)
        _add_complete(tracker, 3, quantity=4.0)
        tracker.update_line(1, quantity=3)
        tracker.mark_deleted(2)

        result = save_all(tracker, library, stocked_store, recipe_id=7)

        assert (result.inserted, result.updated, result.deleted) == (2, 1, 1)
        assert result.success
        assert result.get_summary() == "Saved: 2 added, 1 updated, 1 deleted"
        assert tracker.pending == {}
        assert not tracker.has_unsaved_changes
        assert 2 not in stocked_store.rows
        assert stocked_store.rows[1].line_cost == pytest.approx(6.0)
        assert all(not line.is_provisional for line in tracker.lines)

    def test_second_save_is_a_no_op(self, tracker, library, stocked_store):
        _add_complete(tracker, 1)
        tracker.mark_deleted(2)

        first = save_all(tracker, library, stocked_store, recipe_id=7)
        second = save_all(tracker, library, stocked_store, recipe_id=7)

        assert first.succeeded == 2
        assert second.no_op
        assert len(stocked_store.inserts) == 1
        assert stocked_store.deletes == [2]

    def test_partial_failure_is_isolated(self, tracker, library, stocked_store):
        """Three valid rows are saved even though the fourth fails."""
        _add_complete(tracker, 1, name="Flour")
        _add_complete(tracker, 2, name="Butter")
        ghost = _add_complete(tracker, 99, name="Ghost")
        _add_complete(tracker, 3, name="Sugar")

        result = save_all(tracker, library, stocked_store, recipe_id=7)

        assert result.inserted == 3
        assert result.failed == 1
        assert result.attempted == 4
        assert result.errors[0] == RowError(ghost.id, Action.INSERT, "Ghost: Ingredient with ID 99 not found")
        assert len(stocked_store.inserts) == 3
        assert tracker.change_for(ghost.id) == ChangeType.NEW
        assert result.get_summary() == (
            "Saved: 3 added; 1 failed: Ghost: Ingredient with ID 99 not found"
        )

    def test_persisted_row_without_ingredient(self, tracker, library, stocked_store):
        tracker.update_line(1, ingredient_id=None, ingredient_name="")
        tracker.update_line(2, quantity=5)

        result = save_all(tracker, library, stocked_store, recipe_id=7)

        assert result.updated == 1
        assert result.first_errors == ["Row missing ingredient selection"]
        assert tracker.change_for(1) == ChangeType.MODIFIED

    def test_missing_cost_data_names_ingredient(self, tracker, library, stocked_store):
        _add_complete(tracker, 2, name="Butter")
        _add_complete(tracker, 4, name="Saffron")

        result = save_all(tracker, library, stocked_store, recipe_id=7)

        assert result.get_summary() == "Saved: 1 added; 1 failed: Saffron has no cost data"

    def test_failed_rows_stay_pending_for_retry(self, tracker, library, stocked_store):
        new = _add_complete(tracker, 2, name="Butter")
        stocked_store.fail_on = {2}

        first = save_all(tracker, library, stocked_store, recipe_id=7)
        assert first.get_summary() == "Save failed: Butter: connection reset"
        assert tracker.change_for(new.id) == ChangeType.NEW

        stocked_store.fail_on = set()
        second = save_all(tracker, library, stocked_store, recipe_id=7)
        assert second.inserted == 1
        assert tracker.pending == {}

    def test_failed_delete_stays_pending(self, tracker, library, stocked_store):
        tracker.mark_deleted(1)
        stocked_store.fail_on = {1}

        result = save_all(tracker, library, stocked_store, recipe_id=7)

        assert result.first_errors == ["Failed to delete line 1: connection reset"]
        assert tracker.deleted_ids() == [1]

    def test_unexpected_sink_error_is_collected(self, tracker, library):
        class BrokenSink:
            def insert_line(self, payload):
                raise RuntimeError("disk full")

        _add_complete(tracker, 1, name="Flour")
        _add_complete(tracker, 3, name="Sugar")

        result = save_all(tracker, library, BrokenSink(), recipe_id=7)

        assert result.failed == 2
        assert result.first_errors == ["Flour: disk full", "Sugar: disk full"]

    def test_ingredient_price_read_at_save_time(self, tracker, library, stocked_store):
        new = _add_complete(tracker, 1)
        library.put(IngredientCostData(id=1, name="Flour", pack_cost=20.0, pack_size=5.0))

        save_all(tracker, library, stocked_store, recipe_id=7)

        saved = [line for line in tracker.lines if line.id not in (1, 2)][0]
        assert saved.id != new.id
        assert saved.line_cost == pytest.approx(8.0)

    def test_sort_order_follows_table_position(self, tracker, library, stocked_store):
        _add_complete(tracker, 3)
        save_all(tracker, library, stocked_store, recipe_id=7)
        assert stocked_store.inserts[0].sort_order == 2


class TestBatchResultSummary:
    def test_error_list_is_truncated(self):
        result = BatchResult(
            errors=[RowError(i, Action.INSERT, f"Row {i} failed") for i in range(5)],
            max_errors=3,
        )
        assert result.get_summary() == (
            "Save failed: Row 0 failed; Row 1 failed; Row 2 failed (and 2 more)"
        )

    def test_mixed_summary(self):
        result = BatchResult(
            inserted=3,
            updated=1,
            errors=[RowError(9, Action.INSERT, "Flour has no cost data")],
        )
        assert result.get_summary() == "Saved: 3 added, 1 updated; 1 failed: Flour has no cost data"
        assert not result.success
