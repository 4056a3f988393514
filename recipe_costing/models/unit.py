"""
Unit reference model.

Units are seeded on database initialization and are read-only to the
costing engine.
"""

from sqlalchemy import Column, Float, Integer, String

from .base import BaseModel


class Unit(BaseModel):
    """
    Reference table for measurement units.

    Attributes:
        name: Display name (e.g., "kilogram")
        abbreviation: Short form stored on lines and shown in the UI (e.g., "kg")
        unit_type: Physical dimension: "mass", "volume", "count"
        base_multiplier: Size of this unit in the base unit of its dimension
            (g for mass, ml for volume, each for count)
        sort_order: Display order within the dimension
    """

    __tablename__ = "units"

    name = Column(String(50), nullable=False)
    abbreviation = Column(String(20), unique=True, nullable=False, index=True)
    unit_type = Column(String(20), nullable=False, index=True)
    base_multiplier = Column(Float, nullable=False, default=1.0)
    sort_order = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"Unit(abbreviation='{self.abbreviation}', unit_type='{self.unit_type}')"
