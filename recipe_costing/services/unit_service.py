"""Unit Service - Query functions for the unit reference table.

All functions accept an optional session parameter to support being called from
other service functions that need to maintain transactional atomicity.

Example Usage:
    >>> from recipe_costing.services.unit_service import load_unit_catalog
    >>> catalog = load_unit_catalog()
    >>> catalog.resolve("kg").base_multiplier
    1000.0
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.unit import Unit
from .database import session_scope
from .unit_converter import UnitCatalog

logger = logging.getLogger(__name__)


def get_all_units(session: Optional[Session] = None) -> List[Unit]:
    """Get all units ordered by unit_type and sort_order.

    Args:
        session: Optional database session. If None, creates a new session.

    Returns:
        List of Unit objects
    """

    def _impl(sess: Session) -> List[Unit]:
        return sess.query(Unit).order_by(Unit.unit_type, Unit.sort_order).all()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_units_by_type(unit_type: str, session: Optional[Session] = None) -> List[Unit]:
    """Get units of one dimension ("mass", "volume", "count"), in display order."""

    def _impl(sess: Session) -> List[Unit]:
        return (
            sess.query(Unit)
            .filter(Unit.unit_type == unit_type)
            .order_by(Unit.sort_order)
            .all()
        )

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def get_unit_by_abbreviation(abbreviation: str, session: Optional[Session] = None) -> Optional[Unit]:
    """Get a unit by its abbreviation, or None if it doesn't exist."""

    def _impl(sess: Session) -> Optional[Unit]:
        return sess.query(Unit).filter(Unit.abbreviation == abbreviation).first()

    if session is not None:
        return _impl(session)
    with session_scope() as sess:
        return _impl(sess)


def load_unit_catalog(session: Optional[Session] = None) -> UnitCatalog:
    """
    Load the unit reference table into an immutable catalog snapshot.

    Call once per editing session; the snapshot does not track later changes.
    """
    catalog = UnitCatalog.from_models(get_all_units(session=session))
    logger.debug(f"Loaded unit catalog with {len(catalog)} unit(s)")
    return catalog
