#!/usr/bin/env python3
"""
Data Update Script

1. Loads the draw history CSV
2. Finds the latest published round on the results API
3. Fetches every newer round and appends it to the dataset
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import requests

from lottolab.config import CSV_PATH, setup_logging
from lottolab.draws import load_data, save_data
from lottolab.fetcher import find_latest_round, update_sequence


def update_pipeline(path=CSV_PATH, latest=None):
    print("=" * 60)
    print("LOTTO DATA UPDATE")
    print("=" * 60)

    sequence = load_data(path)
    print(f"Current dataset: {len(sequence)} draws (last round {sequence.last_round})")

    session = requests.Session()
    if latest is None:
        latest = find_latest_round(session=session)
    print(f"Latest published round: {latest}")

    updated = update_sequence(sequence, session=session, latest=latest)
    added = len(updated) - len(sequence)
    if added:
        save_data(updated, path)
        print(f"\nAdded {added} draws; dataset now has {len(updated)} draws")
    else:
        print("\nNo new data added.")

    missing = updated.missing_rounds()
    if missing:
        print(f"Note: {len(missing)} rounds are still missing (e.g. {missing[:5]})")
    print("=" * 60)
    return updated


def main(argv=None):
    parser = argparse.ArgumentParser(description="Append newly published draws to the CSV.")
    parser.add_argument("--data", default=CSV_PATH)
    parser.add_argument("--latest", type=int, default=None, help="skip latest-round probing")
    args = parser.parse_args(argv)
    setup_logging()
    update_pipeline(args.data, args.latest)
    return 0


if __name__ == "__main__":
    sys.exit(main())
