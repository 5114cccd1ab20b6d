#!/usr/bin/env python3
"""
compare_mappings.py — Verify issued codes survived a regeneration

Compares an old mapping store against a new one. Every key in the old store
must keep its exact code in the new store; new keys are expected.

Usage:
  cp public/data/film-key-mappings.json /tmp/old-mappings.json
  python generate_mappings.py
  python compare_mappings.py /tmp/old-mappings.json public/data/film-key-mappings.json

Exit code 1 if any code changed or went missing.
"""

import sys
import logging
import argparse
from pathlib import Path

from filmid.compare import StoreComparison, compare_stores
from filmid.store import StoreIntegrityError, load_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_comparison(comparison: StoreComparison, old_total: int, new_total: int, limit: int = 20) -> None:
    stats = comparison.get_stats()

    print("\n" + "=" * 60)
    print("MAPPING COMPARISON: OLD vs NEW")
    print("=" * 60)
    print(f"\nOld mappings: {old_total} films")
    print(f"New mappings: {new_total} films")

    print(f"\n  Same:    {stats['same']}/{old_total}")
    print(f"  Changed: {stats['changed']}/{old_total}")
    print(f"  Missing: {stats['missing']}/{old_total}")
    print(f"  Added:   {stats['added']}")

    for film_key, old_code, new_code in comparison.changed[:limit]:
        print(f"  ✗ {film_key}: {old_code} -> {new_code} (CHANGED)")
    for film_key, old_code in comparison.missing[:limit]:
        print(f"  ✗ {film_key}: {old_code} -> NOT FOUND (MISSING)")

    print()
    if comparison.is_stable:
        print("✓ All previously issued codes preserved")
    else:
        print("⛔ Previously issued codes changed — shared links are broken")
    print()


def main() -> int:
    parser = argparse.ArgumentParser(
        description='Check that a regenerated mapping store kept every issued code',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('old', type=Path, help='Mapping store before regeneration')
    parser.add_argument('new', type=Path, help='Mapping store after regeneration')
    args = parser.parse_args()

    for path in (args.old, args.new):
        if not path.exists():
            logger.error(f"Mapping store not found: {path}")
            return 1

    try:
        old_store = load_store(args.old)
        new_store = load_store(args.new)
    except StoreIntegrityError as e:
        logger.error(str(e))
        return 1

    comparison = compare_stores(old_store, new_store)
    print_comparison(comparison, len(old_store), len(new_store))
    return 0 if comparison.is_stable else 1


if __name__ == '__main__':
    sys.exit(main())
