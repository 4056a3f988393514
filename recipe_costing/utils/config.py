"""
Configuration management for the recipe costing engine.

This module handles:
- Database path configuration
- Environment-specific configuration (development vs. production)
- Editing session tunables (debounce window, yield tolerance, summary size)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    DATABASE_FILENAME,
    YIELD_EPSILON,
)

logger = logging.getLogger(__name__)

ENVIRONMENT_VARIABLE = "RECIPE_COSTING_ENV"
DATA_DIR_VARIABLE = "RECIPE_COSTING_DATA_DIR"


class Config:
    """
    Application configuration manager.

    Handles database paths, environment settings and the tunables used by
    the ingredient editing session.
    """

    def __init__(self, environment: str = "production", data_dir: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
            data_dir: Optional directory for the database file. Overrides the
                environment default (and RECIPE_COSTING_DATA_DIR).
        """
        self.environment = environment

        if data_dir is None and os.environ.get(DATA_DIR_VARIABLE):
            data_dir = Path(os.environ[DATA_DIR_VARIABLE])

        if data_dir is not None:
            self._base_dir = Path(data_dir)
        elif environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_data_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME

        # Editing session tunables
        self.debounce_seconds = 0.3
        self.yield_epsilon = YIELD_EPSILON
        self.max_summary_errors = 3
        self.placeholder_rows = 3

    def _get_project_data_dir(self) -> Path:
        """Project-local data/ directory used in development."""
        project_root = Path(__file__).parent.parent.parent
        return project_root / "data"

    def _get_user_data_dir(self) -> Path:
        """Per-user application directory used in production."""
        return Path.home() / ".recipe_costing"

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL."""
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    def database_exists(self) -> bool:
        """Check if the database file exists."""
        return self._database_path.exists()

    def __repr__(self) -> str:
        return f"Config(environment='{self.environment}', database_path='{self._database_path}')"


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument; this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
            RECIPE_COSTING_ENV or defaults to production. Ignored if the
            singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENVIRONMENT_VARIABLE, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config() -> None:
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None
