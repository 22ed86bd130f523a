#!/usr/bin/env python3
"""
CSV Lead Import Script

Imports student leads from a CSV export of the admission spreadsheets with:
- Name/phone normalization (uppercase names, digits-only phones)
- Rejection of rows without a phone number
- Stable ids so re-running an import never duplicates leads
- Summary statistics and an optional JSON error log

Usage:
    python import_leads.py path/to/leads.csv --actor-id <admin staff id>
    python import_leads.py path/to/leads.csv --actor-id <id> --dry-run
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.container import build_container
from services.context import ActorContext
from services.lead_intake_service import ImportResult
from services.settings import load_settings

REQUIRED_COLUMNS = {"name", "phone"}


def read_rows(csv_path: str) -> list[dict[str, str]]:
    """
    Read CSV rows keyed by their header.

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        ValueError: If CSV is empty or misses required columns
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_file, "r", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise ValueError("CSV file is empty or malformed")

        columns = {name.strip().lower() for name in reader.fieldnames}
        missing_columns = REQUIRED_COLUMNS - columns
        if missing_columns:
            raise ValueError(
                f"CSV missing required columns: {', '.join(sorted(missing_columns))}"
            )

        return [
            {key.strip(): value for key, value in row.items() if key is not None}
            for row in reader
        ]


def print_summary(result: ImportResult, dry_run: bool) -> None:
    """Print import summary statistics."""
    print()
    print("=" * 60)
    print("IMPORT SUMMARY" + (" (DRY RUN)" if dry_run else ""))
    print("=" * 60)
    print(f"Total Rows:       {result.total_rows}")
    print(f"Imported:         {result.imported}")
    print(f"Already present:  {result.duplicates}")
    print(f"Rejected:         {len(result.rejected)}")
    print()

    if result.rejected:
        print("First 5 rejected rows:")
        for rejected in result.rejected[:5]:
            print(f"  - Row {rejected.row_number + 1}: {rejected.reason}")
        if len(result.rejected) > 5:
            print(f"  ... and {len(result.rejected) - 5} more")
    else:
        print("No rejected rows!")

    print("=" * 60)


def save_error_log(result: ImportResult, output_path: str) -> None:
    """Save rejected rows to a JSON file."""
    if not result.rejected:
        return

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(
            # +1 for the header line
            [{"csv_line": r.row_number + 1, "reason": r.reason} for r in result.rejected],
            f,
            indent=2,
        )

    print(f"\nError log saved to: {output_path}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Import student leads from CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic import
  python import_leads.py leads.csv --actor-id admin-1

  # Dry run (normalize only, don't write)
  python import_leads.py leads.csv --actor-id admin-1 --dry-run

  # Label rows that have no sourceFile column
  python import_leads.py leads.csv --actor-id admin-1 --source-file fair_2025.xlsx
        """
    )

    parser.add_argument("csv_path", help="Path to the CSV file to import")
    parser.add_argument(
        "--actor-id",
        required=True,
        help="Staff id of the approved admin performing the import"
    )
    parser.add_argument(
        "--source-file",
        default=None,
        help="Source label for rows without a sourceFile column (default: CSV file name)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Normalize and validate without writing to the store"
    )
    parser.add_argument(
        "--error-log",
        default="import_errors.json",
        help="Path to save rejected rows (default: import_errors.json)"
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    try:
        rows = read_rows(args.csv_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    container = build_container(load_settings())
    actor = container.staff.get_staff(args.actor_id)
    if actor is None:
        print(f"Error: unknown staff member {args.actor_id}", file=sys.stderr)
        return 1

    source_file = args.source_file or Path(args.csv_path).name
    try:
        result = container.intake.import_leads(
            ActorContext(actor=actor),
            rows,
            source_file=source_file,
            dry_run=args.dry_run,
        )
    except Exception as e:
        print(f"Import failed: {e}", file=sys.stderr)
        return 1

    print_summary(result, args.dry_run)
    save_error_log(result, args.error_log)
    return 0


if __name__ == "__main__":
    sys.exit(main())
