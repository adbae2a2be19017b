#!/usr/bin/env python3
"""
Show crawl queue counts

Usage:
    python scripts/queue_status.py
    python scripts/queue_status.py --show-busy 20
"""

import argparse
import os
import sys
from typing import Any, Dict

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from src.services.queue_coordinator import QueueCoordinator, build_queue_coordinator
from version import __version__


def run_status(coordinator: QueueCoordinator, show_busy: int = 0) -> Dict[str, Any]:
    """
    Collect queue counts and, optionally, the ids currently claimed.

    Args:
        coordinator: Queue coordinator
        show_busy: Number of busy ids to list (0 for none)

    Returns:
        Dict with the status counts and a `busy_ids` list
    """
    report: Dict[str, Any] = dict(coordinator.status())
    report["busy_ids"] = []
    if show_busy > 0:
        report["busy_ids"] = [e.id for e in coordinator.entries.find_busy(limit=show_busy)]
    return report


def main():
    parser = argparse.ArgumentParser(description="Show crawl queue counts")
    parser.add_argument(
        "--show-busy",
        type=int,
        default=0,
        metavar="N",
        help="List up to N ids currently held by a worker",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args()

    coordinator = None
    try:
        coordinator = build_queue_coordinator()
        report = run_status(coordinator, args.show_busy)
    except Exception as e:
        print(f"Status failed: {e}")
        sys.exit(1)
    finally:
        if coordinator is not None:
            coordinator.close()

    print(f"\n{'='*60}")
    print("Crawl Queue Status")
    print(f"{'='*60}")
    print(f"Queued (claimable): {report['queued']:,}")
    print(f"Claimed (busy):     {report['claimed']:,}")
    print(f"Rejected:           {report['rejected']:,}")
    print(f"Total rows:         {report['total']:,}")
    print(f"{'='*60}")

    if report["busy_ids"]:
        print("\nBusy entries:")
        for entry_id in report["busy_ids"]:
            print(f"  - {entry_id}")


if __name__ == "__main__":
    main()
