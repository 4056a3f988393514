"""Pytest configuration and fixtures for the costing engine tests."""

import itertools

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker

from recipe_costing.models.base import Base
from recipe_costing.services.dto import IngredientCostData
from recipe_costing.services.exceptions import IngredientNotFound, LineNotFound, PersistenceError
from recipe_costing.services.recipe_lines import make_line
from recipe_costing.services.unit_converter import UnitCatalog, UnitRecord
from recipe_costing.utils.config import Config, reset_config


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    engine = create_engine("sqlite:///:memory:", echo=False)

    # Registers every model with Base.metadata
    import recipe_costing.models  # noqa: F401

    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import recipe_costing.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    db_module.get_session_factory = original_get_session_factory


@pytest.fixture(scope="function")
def seeded_catalog(test_db):
    """Seed the unit table and return the loaded catalog."""
    from recipe_costing.services.database import seed_units
    from recipe_costing.services.unit_service import load_unit_catalog

    seed_units()
    return load_unit_catalog()


@pytest.fixture(scope="function")
def sample_recipe(seeded_catalog):
    """Provide a recipe with a gram yield unit."""
    from recipe_costing.services import recipe_service

    return recipe_service.create_recipe(
        {"name": "Shortbread", "yield_unit_id": seeded_catalog.resolve("g").id}
    )


@pytest.fixture(scope="function")
def flour(seeded_catalog):
    """Flour: £10 per 5 kg pack, no wastage."""
    from recipe_costing.services import ingredient_service

    return ingredient_service.create_ingredient(
        {
            "name": "Flour",
            "supplier": "Mill Co",
            "pack_cost": 10.0,
            "pack_size": 5.0,
            "yield_percent": 100.0,
            "base_unit_id": seeded_catalog.resolve("kg").id,
        }
    )


@pytest.fixture(scope="function")
def butter(seeded_catalog):
    """Butter: £8 per kg direct unit cost, 80% yield."""
    from recipe_costing.services import ingredient_service

    return ingredient_service.create_ingredient(
        {
            "name": "Butter",
            "unit_cost": 8.0,
            "yield_percent": 80.0,
            "base_unit_id": seeded_catalog.resolve("kg").id,
        }
    )


@pytest.fixture(scope="function")
def saffron(seeded_catalog):
    """Saffron with no cost data at all."""
    from recipe_costing.services import ingredient_service

    return ingredient_service.create_ingredient(
        {"name": "Saffron", "base_unit_id": seeded_catalog.resolve("g").id}
    )


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing at a temporary data directory."""
    reset_config()
    config = Config(environment="development", data_dir=tmp_path)
    yield config
    reset_config()


# ============================================================================
# In-memory collaborators
# ============================================================================


@pytest.fixture
def unit_catalog():
    """Catalog snapshot without a database."""
    return UnitCatalog(
        [
            UnitRecord(1, "gram", "g", "mass", 1.0),
            UnitRecord(2, "kilogram", "kg", "mass", 1000.0),
            UnitRecord(3, "milligram", "mg", "mass", 0.001),
            UnitRecord(4, "millilitre", "ml", "volume", 1.0),
            UnitRecord(5, "litre", "l", "volume", 1000.0),
            UnitRecord(6, "each", "each", "count", 1.0),
            UnitRecord(7, "broken", "brk", "mass", 0.0),
        ]
    )


class FakeIngredientLibrary:
    """Ingredient lookup that counts calls and can be edited between lookups."""

    def __init__(self, ingredients=()):
        self.ingredients = {i.id: i for i in ingredients}
        self.calls = []

    def __call__(self, ingredient_id):
        self.calls.append(ingredient_id)
        try:
            return self.ingredients[ingredient_id]
        except KeyError:
            raise IngredientNotFound(ingredient_id)

    def put(self, ingredient):
        self.ingredients[ingredient.id] = ingredient


class FakeLineStore:
    """In-memory line sink; ids listed in fail_on raise PersistenceError."""

    def __init__(self):
        self.rows = {}
        self.fail_on = set()
        self.inserts = []
        self.updates = []
        self.deletes = []
        self._ids = itertools.count(100)

    def _row(self, line_id, payload):
        values = payload.to_dict()
        values.pop("unit_cost")
        return make_line(line_id, **values)

    def insert_line(self, payload):
        if payload.ingredient_id in self.fail_on:
            raise PersistenceError("connection reset")
        line = self._row(next(self._ids), payload)
        self.rows[line.id] = line
        self.inserts.append(payload)
        return line

    def update_line(self, line_id, payload):
        if line_id in self.fail_on or payload.ingredient_id in self.fail_on:
            raise PersistenceError("connection reset")
        if line_id not in self.rows:
            raise LineNotFound(line_id)
        line = self._row(line_id, payload)
        self.rows[line_id] = line
        self.updates.append((line_id, payload))
        return line

    def delete_line(self, line_id):
        if line_id in self.fail_on:
            raise PersistenceError("connection reset")
        if line_id not in self.rows:
            raise LineNotFound(line_id)
        del self.rows[line_id]
        self.deletes.append(line_id)

    def load(self, recipe_id):
        return [line for line in self.rows.values() if line.recipe_id == recipe_id]


class ManualScheduler:
    """Scheduler whose delayed callbacks run only when the test says so."""

    class Handle:
        def __init__(self, callback):
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = self.Handle(callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def run_all(self):
        for handle in self.active:
            handle.cancelled = True
            handle.callback()


FLOUR = IngredientCostData(
    id=1, name="Flour", pack_cost=10.0, pack_size=5.0, yield_percent=100.0, base_unit_id=2
)
BUTTER = IngredientCostData(id=2, name="Butter", unit_cost=8.0, yield_percent=80.0, base_unit_id=2)
SUGAR = IngredientCostData(id=3, name="Sugar", unit_cost=1.5, base_unit_id=2)
SAFFRON = IngredientCostData(id=4, name="Saffron", base_unit_id=1)


@pytest.fixture
def library():
    return FakeIngredientLibrary([FLOUR, BUTTER, SUGAR, SAFFRON])


@pytest.fixture
def store():
    return FakeLineStore()


@pytest.fixture
def scheduler():
    return ManualScheduler()
