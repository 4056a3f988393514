"""Structured logging helpers shared by the costing services.

    logger = get_service_logger(__name__)
    log_operation(logger, "save_all", "partial_failure", logging.WARNING,
                  recipe_id=7, succeeded=3, failed=1)
"""

import logging
from typing import Any

SERVICE_LOGGER_PREFIX = "recipe_costing.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Logger for a service module, namespaced under recipe_costing.services.

    Only the last dotted component of name is kept, so passing __name__ and
    passing the bare module name give the same logger.
    """
    return logging.getLogger(f"{SERVICE_LOGGER_PREFIX}.{name.rsplit('.', 1)[-1]}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log "<operation>: <outcome>" with the operation, outcome and context
    attached to the record (via extra) for handlers that format fields.
    """
    logger.log(
        level,
        f"{operation}: {outcome}",
        extra={"operation": operation, "outcome": outcome, **context},
    )
