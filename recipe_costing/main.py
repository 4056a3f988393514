"""
Command-line entry point for Recipe Costing.

Usage Examples:
    # Create the database tables and seed the unit catalog
    recipe-costing init-db

    # Insert any missing seed units
    recipe-costing seed-units

    # Print the cost breakdown of a recipe
    recipe-costing cost 7

    # Recompute and store a recipe's yield quantity
    recipe-costing recompute-yield 7
"""

import argparse
import logging
import sys
from typing import List, Optional

from .services.costing_service import format_cost
from .services.database import init_database, initialize_app_database, seed_units
from .services.exceptions import ServiceError
from .services.recipe_service import get_recipe_cost_breakdown, recompute_recipe_yield
from .services.unit_service import load_unit_catalog
from .utils.config import get_config
from .utils.constants import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for command-line use."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def init_db_cmd() -> int:
    """Create tables and seed units."""
    initialize_app_database()
    print(f"Database ready at {get_config().database_path}")
    return 0


def seed_units_cmd() -> int:
    init_database()
    count = seed_units()
    print(f"Seeded {count} unit(s)")
    return 0


def cost_cmd(recipe_id: int) -> int:
    """Print a recipe's line costs, total and cost per yield unit."""
    breakdown = get_recipe_cost_breakdown(recipe_id, load_unit_catalog())

    print(f"{breakdown['recipe_name']} (recipe {breakdown['recipe_id']})")
    for line in breakdown["lines"]:
        cost = format_cost(line["line_cost"])
        if line["unit_cost"] is None:
            cost += "  (no cost data)"
        name = line["ingredient_name"] + (" (sub-recipe)" if line["is_sub_recipe"] else "")
        print(f"  {name:<30} {line['quantity']:>10g} {line['unit']:<6} {cost:>12}")

    print(f"Total cost: {format_cost(breakdown['total_cost'])}")
    allergens = sorted({key for line in breakdown["lines"] for key in line["allergens"]})
    if allergens:
        print(f"Allergens: {', '.join(allergens)}")
    yield_unit = breakdown["yield_unit"] or "(no yield unit)"
    print(f"Yield: {breakdown['yield_qty']:g} {yield_unit}")
    print(f"Cost per yield unit: {format_cost(breakdown['cost_per_yield_unit'], precision=4)}")
    return 0


def recompute_yield_cmd(recipe_id: int) -> int:
    yield_qty = recompute_recipe_yield(recipe_id, load_unit_catalog())
    print(f"Recipe {recipe_id} yield set to {yield_qty:g}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="recipe-costing",
        description="Recipe ingredient costing utility",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create tables and seed the unit catalog")
    subparsers.add_parser("seed-units", help="Insert missing seed units")

    cost_parser = subparsers.add_parser("cost", help="Print a recipe cost breakdown")
    cost_parser.add_argument("recipe_id", type=int, help="Recipe ID")

    yield_parser = subparsers.add_parser("recompute-yield", help="Recompute a recipe's yield")
    yield_parser.add_argument("recipe_id", type=int, help="Recipe ID")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.verbose)

    try:
        if args.command == "init-db":
            return init_db_cmd()
        elif args.command == "seed-units":
            return seed_units_cmd()
        elif args.command == "cost":
            return cost_cmd(args.recipe_id)
        elif args.command == "recompute-yield":
            return recompute_yield_cmd(args.recipe_id)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except ServiceError as e:
        logger.error(str(e))
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
