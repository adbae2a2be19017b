#!/usr/bin/env python3
"""
Enqueue URLs into the crawl queue

Each URL goes through the coordinator's dedupe checks: URLs that were
already processed or are already queued are skipped, not re-inserted.

Usage:
    # URLs on the command line
    python scripts/enqueue_urls.py https://example.com/app/1 https://example.com/app/2

    # One URL per line from a file (blank lines and # comments ignored)
    python scripts/enqueue_urls.py --file urls.txt --routing-key games
"""

import argparse
import os
import sys
from collections import Counter
from typing import Dict, Iterable, List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from src.common.queue_types import DEFAULT_ROUTING_KEY, EnqueueOutcome
from src.services.queue_coordinator import QueueCoordinator, build_queue_coordinator
from version import __version__


def read_url_file(path: str) -> List[str]:
    """Read URLs from a file, one per line, skipping blanks and # comments."""
    with open(path, "r") as f:
        return [
            line.strip()
            for line in f
            if line.strip() and not line.strip().startswith("#")
        ]


def run_enqueue(
    coordinator: QueueCoordinator,
    urls: Iterable[str],
    routing_key: str = DEFAULT_ROUTING_KEY,
) -> Dict[str, int]:
    """
    Enqueue every URL and tally the outcomes.

    Args:
        coordinator: Queue coordinator
        urls: URLs to enqueue
        routing_key: Routing key stored with new entries

    Returns:
        Count per EnqueueOutcome value
    """
    totals = Counter({outcome.value: 0 for outcome in EnqueueOutcome})
    for url in urls:
        outcome = coordinator.enqueue(url, routing_key)
        totals[outcome.value] += 1
    return dict(totals)


def main():
    parser = argparse.ArgumentParser(
        description="Enqueue URLs into the crawl queue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("urls", nargs="*", help="URLs to enqueue")
    parser.add_argument("--file", metavar="PATH", help="File with one URL per line")
    parser.add_argument(
        "--routing-key",
        default=DEFAULT_ROUTING_KEY,
        help=f"Routing key for new entries (default: {DEFAULT_ROUTING_KEY})",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args()

    urls = list(args.urls)
    if args.file:
        urls.extend(read_url_file(args.file))
    if not urls:
        parser.error("No URLs given (pass URLs or --file)")

    coordinator = None
    try:
        coordinator = build_queue_coordinator()
        totals = run_enqueue(coordinator, urls, args.routing_key)
    except Exception as e:
        print(f"Enqueue failed: {e}")
        sys.exit(1)
    finally:
        if coordinator is not None:
            coordinator.close()

    print(f"\n{'='*60}")
    print("Enqueue Summary")
    print(f"{'='*60}")
    print(f"URLs submitted:     {len(urls):,}")
    print(f"Enqueued:           {totals['enqueued']:,}")
    print(f"Already queued:     {totals['already_queued']:,}")
    print(f"Already processed:  {totals['already_processed']:,}")
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
