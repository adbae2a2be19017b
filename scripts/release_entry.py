#!/usr/bin/env python3
"""
Release stuck claims

A worker that dies while holding a claim leaves its entry busy forever.
This hands such entries back to the pool.

Usage:
    # Preview (no changes)
    python scripts/release_entry.py https://example.com/app/1 --dry-run

    # Release
    python scripts/release_entry.py https://example.com/app/1 https://example.com/app/2
"""

import argparse
import os
import sys
from typing import Dict, Iterable, List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from src.services.queue_coordinator import QueueCoordinator, build_queue_coordinator


def run_release(
    coordinator: QueueCoordinator,
    entry_ids: Iterable[str],
    dry_run: bool = True,
) -> Dict[str, List[str]]:
    """
    Release each id that is present in the queue.

    Args:
        coordinator: Queue coordinator
        entry_ids: Ids to release
        dry_run: If True, only report what would be released

    Returns:
        Dict with `released` (or would-be released) and `missing` ids
    """
    report: Dict[str, List[str]] = {"released": [], "missing": []}
    for entry_id in entry_ids:
        if not coordinator.entries.exists(entry_id):
            report["missing"].append(entry_id)
            continue
        if not dry_run:
            coordinator.release(entry_id)
        report["released"].append(entry_id)
    return report


def main():
    parser = argparse.ArgumentParser(description="Release stuck claims in the crawl queue")
    parser.add_argument("ids", nargs="+", help="Entry ids (URLs) to release")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview without modifying the queue",
    )
    args = parser.parse_args()

    coordinator = None
    try:
        coordinator = build_queue_coordinator()
        report = run_release(coordinator, args.ids, dry_run=args.dry_run)
    except Exception as e:
        print(f"Release failed: {e}")
        sys.exit(1)
    finally:
        if coordinator is not None:
            coordinator.close()

    verb = "Would release" if args.dry_run else "Released"
    for entry_id in report["released"]:
        print(f"{verb}: {entry_id}")
    for entry_id in report["missing"]:
        print(f"Not in queue: {entry_id}")


if __name__ == "__main__":
    main()
