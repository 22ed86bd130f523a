#!/usr/bin/env python3
"""
Forwarded Lead Export Script

Writes the sub-branch hand-off CSV (leads classified as "11th / 12th") to disk.
The export is scoped to what the acting staff member can see and is recorded
in the activity log, exactly like the dashboard download.

Usage:
    python export_leads.py --actor-id admin-1
    python export_leads.py --actor-id hod-ct --output-dir exports/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.time import utc_now
from services.container import build_container
from services.context import ActorContext
from services.settings import load_settings


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Export forwarded leads for the sub-branch as CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export into the current directory
  python export_leads.py --actor-id admin-1

  # Export a department head's forwarded leads into exports/
  python export_leads.py --actor-id hod-ct --output-dir exports/
        """
    )

    parser.add_argument(
        "--actor-id",
        required=True,
        help="Staff id of the admin or department head performing the export"
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        default=".",
        help="Directory for the CSV file (default: current directory)"
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    container = build_container(load_settings())
    actor = container.staff.get_staff(args.actor_id)
    if actor is None:
        print(f"Error: unknown staff member {args.actor_id}", file=sys.stderr)
        return 1

    try:
        filename, content, count = container.reporting.export_forwarded(
            ActorContext(actor=actor), utc_now()
        )
    except Exception as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    if not count:
        print("No forwarded leads to export")
        return 1

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / filename
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        f.write(content)

    print()
    print("=" * 60)
    print("EXPORT SUMMARY")
    print("=" * 60)
    print(f"Forwarded leads exported: {count}")
    print(f"File: {output_path}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
