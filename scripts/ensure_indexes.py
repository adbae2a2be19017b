#!/usr/bin/env python3
"""
One-time index creation for the crawl queue collections.

Run once after deployment:
    python scripts/ensure_indexes.py
"""

import argparse
import os
import sys
from typing import Dict, Tuple

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from src.common.config import Config
from src.common.logger import setup_logging
from src.services.queue_coordinator import QueueCoordinator, build_queue_coordinator


def run_ensure_indexes(coordinator: QueueCoordinator) -> Dict[str, Tuple[str, ...]]:
    """
    Request the lookup indexes on both collections.

    Returns:
        Indexed fields per collection name
    """
    coordinator.ensure_indexes()
    return {
        coordinator.entries.collection: coordinator.QUEUE_INDEX_FIELDS,
        coordinator.results.collection: coordinator.RESULT_INDEX_FIELDS,
    }


def main():
    parser = argparse.ArgumentParser(description="Create crawl queue indexes")
    parser.parse_args()

    setup_logging(Config.LOG_LEVEL, Config.LOG_FORMAT)

    coordinator = None
    try:
        coordinator = build_queue_coordinator()
        indexed = run_ensure_indexes(coordinator)
    except Exception as e:
        print(f"Index creation failed: {e}")
        sys.exit(1)
    finally:
        if coordinator is not None:
            coordinator.close()

    for collection, fields in indexed.items():
        print(f"{collection}: {', '.join(fields)}")


if __name__ == "__main__":
    main()
