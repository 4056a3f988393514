"""Utility modules for the recipe costing engine."""
