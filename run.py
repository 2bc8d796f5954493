"""
Runnable script for the BSC block indexer.
"""

import argparse
import sys

from src.main import main as run_indexer


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="BSC block indexer")
    parser.add_argument(
        "--profile",
        choices=["default", "defi", "tokens"],
        help="Tracking preset (overrides TRACKING_PROFILE)",
    )
    parser.add_argument(
        "--start-height",
        type=int,
        help="First block to process (overrides the persisted cursor)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    sys.exit(run_indexer(debug=args.debug, profile=args.profile, start_height=args.start_height))
