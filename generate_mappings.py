#!/usr/bin/env python3
"""
generate_mappings.py — Append-only short-code mapping generator

Reads the festival corpus and the existing mapping store, issues codes for
films seen for the first time, and rewrites the store once.

Safety:
  - Existing codes are never changed or reused, even for films no longer in
    the corpus.
  - A corrupted store (filmKeyToCode / codeToFilmKey disagree) aborts the
    run before anything is written.
  - Exceeding the code space (62^3 = 238,328 films) aborts the run before
    anything is written.
  - Never run two generators against the same store at once.

Usage:
  python generate_mappings.py                       # uses config.yaml
  python generate_mappings.py --dry-run             # report only
  python generate_mappings.py --mappings PATH       # custom store path
  python generate_mappings.py --corpus data/festivals
"""

import sys
import logging
import argparse
from pathlib import Path

from filmid.allocator import AllocationError, AllocationResult, allocate_codes
from filmid.config import load_config
from filmid.constants import DEFAULT_CONFIG_PATH
from filmid.corpus import CorpusLoadResult, load_corpus
from filmid.records import collect_film_keys
from filmid.store import StoreIntegrityError, dump_store, load_store, save_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def run_generate(
    corpus_dir: Path,
    mappings_path: Path,
    config: dict,
    dry_run: bool = False,
):
    """
    Load corpus + store, allocate, and save unless dry_run.

    Returns:
        (CorpusLoadResult, AllocationResult)

    Raises:
        FileNotFoundError:   Corpus directory missing.
        StoreIntegrityError: Existing store is corrupted.
        AllocationError:     Capacity exceeded or no free code found.
        ValueError:          Curated merges contain a cycle.
    """
    corpus = load_corpus(corpus_dir, config['external_id_fields'])
    film_keys = collect_film_keys(corpus.records, config.get('merges'))
    logger.info(f"Found {len(film_keys)} distinct film keys")

    store = load_store(mappings_path)
    result = allocate_codes(store, film_keys)

    if not dry_run:
        save_store(result.store, mappings_path)

    return corpus, result


def print_summary(corpus: CorpusLoadResult, result: AllocationResult,
                  mappings_path: Path, dry_run: bool) -> None:
    """Print a human-readable summary of the allocation run."""
    store = result.store
    stats = corpus.get_stats()

    print()
    print("=" * 60)
    if dry_run:
        print("DRY RUN — mapping store not written")
    else:
        print("MAPPINGS UPDATED" if result.changed else "MAPPINGS UNCHANGED")
    print("=" * 60)

    print(f"\nRecords loaded:      {stats['total_records']} from {stats['sources']} sources")
    print(f"  unkeyable:         {stats['unkeyable_records']}")
    print(f"  skipped files:     {stats['skipped_files']}")
    print(f"\nFilms mapped:        {len(store)} / {store.capacity}")
    print(f"  carried forward:   {result.carried_forward}")
    print(f"  newly assigned:    {len(result.new_entries)}")
    print(f"  absent from corpus:{len(result.absent_keys):>4}")
    if result.collisions:
        print(f"  collisions skipped:{result.collisions:>4}")
    print(f"  next index:        {store.next_index}")

    if result.new_entries:
        print("\nNew mappings (first 10):")
        for film_key, code in result.new_entries[:10]:
            print(f"  {film_key:<30} → {code}")

    size_kb = len(dump_store(store).encode('utf-8')) / 1024
    print(f"\nStore: {mappings_path} ({size_kb:.1f} KB)")
    print()


def main() -> int:
    parser = argparse.ArgumentParser(
        description='Assign stable short codes to every film key (append-only)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--config', type=Path, default=Path(DEFAULT_CONFIG_PATH),
                        help='Path to config.yaml')
    parser.add_argument('--corpus', type=Path, default=None,
                        help='Corpus directory (overrides config corpus_dir)')
    parser.add_argument('--mappings', type=Path, default=None,
                        help='Mapping store path (overrides config mappings_path)')
    parser.add_argument('--dry-run', action='store_true', dest='dry_run',
                        help='Compute new mappings without writing the store')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except ValueError as e:
        logger.error(str(e))
        return 1

    corpus_dir = args.corpus or Path(config['corpus_dir'])
    mappings_path = args.mappings or Path(config['mappings_path'])

    try:
        corpus, result = run_generate(corpus_dir, mappings_path, config, dry_run=args.dry_run)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except StoreIntegrityError as e:
        logger.error(f"Mapping store is corrupted, nothing written: {e}")
        return 1
    except AllocationError as e:
        logger.error(f"Allocation failed, nothing written: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid curated merges: {e}")
        return 1

    print_summary(corpus, result, mappings_path, args.dry_run)
    return 0


if __name__ == '__main__':
    sys.exit(main())
