#!/usr/bin/env python3
"""Run an artwork library scan from the command line.

Hey future me - this is the "no web UI" way to drive the scanner. It uses the same
settings (.env / env vars) and the same services as the app, so a scan here is exactly
what the background worker would do.

Usage:
    # Incremental scan of the configured library
    python scripts/scan_library.py

    # Wipe artwork data and ingest everything again
    python scripts/scan_library.py --force

    # Scan a different root (and remember it for next time)
    python scripts/scan_library.py --path /mnt/art --save-path

    # Re-ingest one artwork after fixing its files
    python scripts/scan_library.py --rescan 123 --dir alice

    # Backfill meta_source for old rows
    python scripts/scan_library.py --refill-meta-source
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from artshelf.application.services import (  # noqa: E402
    LibraryScannerService,
    MetaSourceRefillService,
)
from artshelf.config import get_settings  # noqa: E402
from artshelf.domain.entities import ScanOptions, ScanProgress  # noqa: E402
from artshelf.domain.exceptions import DomainException, ScanCancelledException  # noqa: E402
from artshelf.infrastructure.observability import configure_logging  # noqa: E402
from artshelf.infrastructure.persistence import Database  # noqa: E402


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan the artwork library")
    parser.add_argument("--path", type=Path, help="Library root (overrides the stored one)")
    parser.add_argument(
        "--save-path", action="store_true", help="Persist --path as the library root"
    )
    parser.add_argument(
        "--force", action="store_true", help="Clear artwork data and re-ingest everything"
    )
    parser.add_argument("--rescan", metavar="ARTWORK_ID", help="Rescan one artwork")
    parser.add_argument(
        "--dir",
        default=None,
        help="Directory of the artwork relative to the root (default: from its images)",
    )
    parser.add_argument(
        "--refill-meta-source",
        action="store_true",
        help="Backfill artworks.meta_source from stored image paths",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables before running (when not using alembic)",
    )
    return parser.parse_args(argv)


def print_progress(progress: ScanProgress) -> None:
    print(f"  [{progress.percentage:5.1f}%] {progress.phase.value}: {progress.message}")


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    configure_logging(
        settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )

    db = Database(settings)
    try:
        if args.create_tables:
            await db.create_tables()

        scanner = LibraryScannerService(db, settings)
        if args.path and args.save_path:
            await scanner.save_scan_root(args.path)

        if args.refill_meta_source:
            scan_root = await scanner.get_scan_root(args.path)
            outcome = await MetaSourceRefillService(db).refill(
                scan_root, on_progress=print_progress
            )
        elif args.rescan:
            if args.dir is None:
                result = await scanner.rescan_artwork_by_external_id(args.rescan)
            else:
                result = await scanner.rescan_artwork(args.rescan, args.dir)
            outcome = result.to_dict()
        else:
            result = await scanner.scan(
                ScanOptions(
                    scan_path=args.path,
                    force_update=args.force,
                    on_progress=print_progress,
                )
            )
            outcome = result.to_dict()
    except ScanCancelledException as e:
        print(f"Cancelled: {e.message}")
        return 130
    except DomainException as e:
        print(f"ERROR: {e.message}")
        return 1
    finally:
        await db.close()

    print(json.dumps(outcome, indent=2, default=str))
    return 1 if outcome.get("errors") else 0


if __name__ == "__main__":
    print("=" * 60)
    print("  ArtShelf Library Scan")
    print("=" * 60)
    print()

    sys.exit(asyncio.run(run(parse_args())))
