"""
Engine, sessions and schema setup for the costing database.

Service functions open work through session_scope() unless the caller hands
them a session. The unit catalog is seeded from constants.SEED_UNITS.
"""

from contextlib import contextmanager
import logging
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.base import Base
from ..utils.config import get_config
from ..utils.constants import SEED_UNITS

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("units", "ingredients", "recipes", "recipe_ingredients")

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Build an engine for database_url, or for the configured SQLite file.

    In-memory URLs get a StaticPool so every session sees the same database.
    """
    if database_url is None:
        config = get_config()
        config.ensure_directories()
        database_url = config.database_url

    logger.info(f"Creating database engine: {database_url}")

    if ":memory:" in database_url:
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        database_url, echo=echo, connect_args={"check_same_thread": False, "timeout": 30}
    )


def get_engine() -> Engine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _SessionFactory


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One transaction: commit when the block exits cleanly, roll back on any
    exception (which is re-raised), close either way.

    Example:
        with session_scope() as session:
            session.add(Ingredient(name="Flour", pack_cost=10.0, pack_size=5.0))
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(engine: Optional[Engine] = None) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    from .. import models  # noqa: F401  (registers the tables on Base.metadata)

    Base.metadata.create_all(engine or get_engine())
    logger.info("Database tables ready")


def seed_units(session: Optional[Session] = None) -> int:
    """
    Insert the seed units that are not in the units table yet.

    Units are matched by abbreviation, so repeated calls insert nothing.

    Returns:
        Number of units inserted
    """
    from ..models.unit import Unit

    def _impl(sess: Session) -> int:
        existing = {abbr for (abbr,) in sess.query(Unit.abbreviation).all()}
        missing = [
            Unit(
                abbreviation=abbreviation,
                name=name,
                unit_type=unit_type,
                base_multiplier=multiplier,
                sort_order=position,
            )
            for position, (abbreviation, name, unit_type, multiplier) in enumerate(SEED_UNITS)
            if abbreviation not in existing
        ]
        sess.add_all(missing)
        sess.flush()
        return len(missing)

    if session is not None:
        count = _impl(session)
    else:
        with session_scope() as sess:
            count = _impl(sess)

    if count:
        logger.info(f"Seeded {count} unit(s)")
    return count


def verify_database(engine: Optional[Engine] = None) -> bool:
    """True if every costing table exists."""
    tables = set(inspect(engine or get_engine()).get_table_names())
    missing = [table for table in REQUIRED_TABLES if table not in tables]
    if missing:
        logger.warning(f"Database is missing table(s): {', '.join(missing)}")
    return not missing


def initialize_app_database() -> None:
    """Create the configured database file, its tables and the unit catalog."""
    config = get_config()
    verb = "Using existing" if config.database_exists() else "Creating new"
    logger.info(f"{verb} database at: {config.database_path}")

    init_database()
    seed_units()
    verify_database()
