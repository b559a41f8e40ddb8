"""
Manifest check command.

Validates a manifest and, only if it is valid, estimates the row count of
each report table.

Usage:
    bft-manifest manifests/university.yaml
    bft-manifest manifests/university.yaml --table department_financial
    bft-manifest manifests/university.yaml --json

Exit codes:
    0  manifest valid, estimates printed
    1  validation errors found
    2  manifest could not be loaded, or an unknown table was requested
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from .estimator import RowEstimate, estimate_table_rows
from .loader import ManifestLoadError, load_manifest
from .validation import ValidationError, validate

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_LOAD_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bft-manifest",
        description="Validate a BFT manifest and estimate report table sizes.",
    )
    parser.add_argument("manifest", type=Path, help="Path to manifest YAML file")
    parser.add_argument(
        "--table",
        action="append",
        dest="tables",
        metavar="NAME",
        help="Only estimate this table (repeatable; default: all tables)",
    )
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _print_errors(errors: list[ValidationError]) -> None:
    print(f"✗ Manifest validation failed with {len(errors)} error(s):")
    for error in errors:
        print(f"  - {error}")


def _print_estimates(estimates: dict[str, RowEstimate]) -> None:
    print("✓ Manifest is valid")
    for name, est in estimates.items():
        print(f"\n{'=' * 60}")
        print(f"Table: {name}")
        print(f"{'=' * 60}")
        print(f"  Rows:             {est.rows:,}")
        print(f"  Placeholder rows: {est.placeholder_row_count:,}")
        print(f"  Total:            {est.total:,}")
        for line in est.breakdown:
            print(f"    {line}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        manifest = load_manifest(args.manifest, validate=False)
    except (OSError, ManifestLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    errors = validate(manifest)
    if errors:
        if args.json:
            print(json.dumps({"errors": [asdict(e) for e in errors]}, indent=2))
        else:
            _print_errors(errors)
        return EXIT_INVALID

    try:
        tables = (
            [manifest.get_table(name) for name in args.tables]
            if args.tables
            else manifest.bft_tables
        )
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return EXIT_LOAD_FAILED

    estimates = {table.name: estimate_table_rows(manifest, table) for table in tables}
    if args.json:
        print(
            json.dumps(
                {"errors": [], "tables": {k: asdict(v) for k, v in estimates.items()}},
                indent=2,
            )
        )
    else:
        _print_estimates(estimates)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
