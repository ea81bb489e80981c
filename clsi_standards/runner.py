#!/usr/bin/env python3
"""CLI for CLSI breakpoint interpretation.

Usage:
    clsi-standards init-db
    clsi-standards seed
    clsi-standards interpret escherichia_coli AMP 18 --method disk_diffusion
    clsi-standards compare escherichia_coli CIP
    clsi-standards rules --stats
    clsi-standards serve --port 5000
"""

import argparse
import logging
import sys

from .config import Config
from .exceptions import InvalidMeasurementError
from .models import RuleType, TestMethod
from .seed import seed_all
from .services import Services, create_services


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from the development server
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def show_interpretation(services: Services, args) -> int:
    try:
        outcome = services.interpretation.interpret_and_validate(
            args.microorganism,
            args.drug,
            args.value,
            args.method,
            year=args.year,
        )
    except InvalidMeasurementError as e:
        print(f"Error: {e}")
        return 1
    if outcome is None:
        print(f"No breakpoint standard for {args.microorganism}/{args.drug} ({args.method})")
        return 1

    validation = outcome.validation
    print("\n=== Interpretation ===")
    print(f"Result:       {outcome.result.value.upper()} ({outcome.result.short_code})")
    if validation.overridden_by:
        print(f"Raw result:   {outcome.raw_result.value} (overridden by {validation.overridden_by})")
    print(f"Confidence:   {outcome.confidence.value}")
    print(f"Standard:     {outcome.breakpoint_reference}")
    print(f"Status:       {outcome.suggested_status().value}")
    print(f"Notes:        {outcome.notes}")

    for label, messages in (
        ("Warnings", validation.warnings),
        ("Recommendations", validation.recommendations),
        ("Errors", validation.errors),
    ):
        if messages:
            print(f"\n{label}:")
            for message in messages:
                print(f"  - {message}")
    print()
    return 0


def show_comparison(services: Services, args) -> int:
    comparisons = services.breakpoints.compare_breakpoint_versions(
        args.microorganism, args.drug, args.method
    )
    if not comparisons:
        print(f"No breakpoint history for {args.microorganism}/{args.drug}")
        return 1

    for comparison in comparisons:
        years = ", ".join(str(y) for y in comparison.years)
        print(f"\n=== {comparison.microorganism_id}/{comparison.drug_id} "
              f"{comparison.method.value} ({years}) ===")
        if not comparison.changes:
            print("No changes.")
        for change in comparison.changes:
            print(f"  {change.year}: {change.description}")
    print()
    return 0


def show_rules(services: Services, args) -> int:
    if args.stats:
        stats = services.rules.get_rule_statistics()
        print("\n=== Expert Rule Statistics ===")
        print(f"Total rules:   {stats['total_rules']}")
        print(f"Active rules:  {stats['active_rules']}")
        for rule_type, count in stats["rules_by_type"].items():
            print(f"  {rule_type:25s} {count}")
        print()
        return 0

    rules = services.rules.get_rules_by_type(args.type, args.year)
    print("-" * 80)
    for rule in rules:
        state = "✓" if rule.is_active else "✗"
        scope = f"{rule.microorganism_id or '*'}/{rule.drug_id or '*'}"
        print(
            f"{state} {rule.priority:>3} | {rule.rule_type.value:22s} | "
            f"{scope:30s} | {rule.name}"
        )
    print("-" * 80)
    return 0


def serve(args) -> int:
    from .dashboard.app import create_app

    app = create_app({"CLSI_DB_PATH": args.db_path} if args.db_path else None)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="clsi-standards",
        description="CLSI breakpoint interpretation and expert rule validation",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help=f"Path to standards database (default: {Config.DB_PATH})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")
    subparsers.add_parser("seed", help="Load reference standards and expert rules")

    interpret_parser = subparsers.add_parser("interpret", help="Interpret a test value")
    interpret_parser.add_argument("microorganism", help="Microorganism id")
    interpret_parser.add_argument("drug", help="Drug id")
    interpret_parser.add_argument("value", type=float, help="Zone diameter (mm) or MIC (µg/mL)")
    interpret_parser.add_argument(
        "--method",
        choices=[m.value for m in TestMethod],
        default=TestMethod.DISK_DIFFUSION.value,
    )
    interpret_parser.add_argument("--year", type=int, default=None, help="Pin a standard year")

    compare_parser = subparsers.add_parser("compare", help="Show breakpoint changes across years")
    compare_parser.add_argument("microorganism", help="Microorganism id")
    compare_parser.add_argument("drug", help="Drug id")
    compare_parser.add_argument("--method", choices=[m.value for m in TestMethod], default=None)

    rules_parser = subparsers.add_parser("rules", help="List expert rules")
    rules_parser.add_argument("--type", choices=[t.value for t in RuleType], default=None)
    rules_parser.add_argument("--year", type=int, default=None)
    rules_parser.add_argument("--stats", action="store_true", help="Show rule statistics")

    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=5000)
    serve_parser.add_argument("--debug", action="store_true")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)

    if args.command == "serve":
        return serve(args)

    services = create_services(args.db_path)

    if args.command == "init-db":
        logger.info(f"Database ready at {services.database.db_path}")
        return 0

    if args.command == "seed":
        counts = seed_all(services.breakpoints, services.rules)
        print(f"Created {counts['breakpoint_standards']} standards, {counts['expert_rules']} rules")
        return 0

    if args.command == "interpret":
        return show_interpretation(services, args)

    if args.command == "compare":
        return show_comparison(services, args)

    return show_rules(services, args)


if __name__ == "__main__":
    sys.exit(main())
