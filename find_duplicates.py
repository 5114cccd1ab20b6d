#!/usr/bin/env python3
"""
find_duplicates.py — Cross-source duplicate report

Pure REPORTING. Reads the festival corpus, never modifies it and never
touches the mapping store. Output is for a human curator: confirmed
duplicates are merged by adding them to `merges` in config.yaml.

Listings:
  EXACT KEY         same identity key in more than one record
  NORMALIZED TITLE  same (normalized title, year), different identity keys
  EXTERNAL ID       same catalog id across different sources
  FOCUS SOURCE      external-id groups involving the focus source

Usage:
  python find_duplicates.py                          # uses config.yaml
  python find_duplicates.py --corpus data/festivals  # explicit corpus
  python find_duplicates.py --focus-source arthaus   # review priority
  python find_duplicates.py --output output/dupes.csv --limit 0
"""

import sys
import csv
import logging
import argparse
from pathlib import Path
from typing import List

from filmid.config import load_config
from filmid.constants import DEFAULT_CONFIG_PATH
from filmid.corpus import load_corpus
from filmid.duplicates import DuplicateGroup, DuplicateReport, find_duplicates

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

FIELDNAMES = [
    'group_type', 'match', 'source', 'origin', 'position',
    'title', 'year', 'film_key', 'external_id',
]


def format_member(record) -> str:
    location = f"{record.origin or record.source} [idx {record.position}]"
    key = record.film_key or 'unkeyable'
    return (
        f"  - {location}: \"{record.title}\" ({record.year}) "
        f"key: {key}, id: {record.external_id or 'none'}"
    )


def print_groups(label: str, groups: List[DuplicateGroup], limit: int) -> None:
    print()
    print(f"=== {label}: {len(groups)} ===")
    shown = groups if limit <= 0 else groups[:limit]
    for group in shown:
        print(f"\n{group.match}")
        for record in group.members:
            print(format_member(record))
    if len(shown) < len(groups):
        print(f"\n  ... {len(groups) - len(shown)} more (use --limit 0 to show all)")


def print_report(report: DuplicateReport, limit: int) -> None:
    """Print a human-readable duplicate report"""
    stats = report.get_stats()

    print()
    print("=" * 60)
    print("DUPLICATE REPORT")
    print("=" * 60)
    print(f"\nRecords scanned:     {stats['total_records']}")
    print(f"Distinct film keys:  {stats['distinct_keys']}")
    print(f"Skipped records:     {stats['skipped_records']}")

    print_groups('EXACT KEY DUPLICATES', report.exact_key_groups, limit)
    print_groups('NORMALIZED TITLE DUPLICATES', report.normalized_title_groups, limit)
    print_groups('EXTERNAL ID DUPLICATES', report.external_id_groups, limit)
    if report.focus_source:
        print_groups(
            f"{report.focus_source.upper()} + OTHER SOURCE DUPLICATES",
            report.focus_groups,
            limit,
        )

    if report.skipped:
        print()
        print(f"=== SKIPPED RECORDS: {len(report.skipped)} ===")
        shown = report.skipped if limit <= 0 else report.skipped[:limit]
        for record in shown:
            print(f"  - {record.origin or record.source} [idx {record.position}]: {record.problem}")
    print()


def write_report_csv(report: DuplicateReport, output_path: Path) -> int:
    """
    Write every group member as one CSV row.

    Returns:
        Number of rows written
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    rows = 0

    with open(output_path, 'w', newline='', encoding='utf-8') as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=FIELDNAMES)
        writer.writeheader()

        for group in report.all_groups():
            for record in group.members:
                writer.writerow({
                    'group_type': group.kind,
                    'match': group.match,
                    'source': record.source,
                    'origin': record.origin,
                    'position': record.position,
                    'title': record.title or '',
                    'year': record.year if record.year is not None else '',
                    'film_key': record.film_key or '',
                    'external_id': record.external_id or '',
                })
                rows += 1

    return rows


def main() -> int:
    parser = argparse.ArgumentParser(
        description='Report films that appear more than once across festival sources',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--config', type=Path, default=Path(DEFAULT_CONFIG_PATH),
                        help='Path to config.yaml')
    parser.add_argument('--corpus', type=Path, default=None,
                        help='Corpus directory (overrides config corpus_dir)')
    parser.add_argument('--focus-source', dest='focus_source', default=None,
                        help='Source to prioritize in the external-id report')
    parser.add_argument('--output', type=Path, default=None,
                        help='CSV report path (overrides config report_path)')
    parser.add_argument('--limit', type=int, default=10,
                        help='Groups shown per listing (0 = all, default: 10)')
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
    focus_source = args.focus_source or config['focus_source']

    try:
        corpus = load_corpus(corpus_dir, config['external_id_fields'])
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    report = find_duplicates(corpus.records, focus_source=focus_source)
    print_report(report, args.limit)

    if corpus.skipped_files:
        print(f"Skipped files: {len(corpus.skipped_files)}")
        for skipped in corpus.skipped_files:
            print(f"  - {skipped['origin']}: {skipped['reason']}")
        print()

    output_path = args.output or Path(config['report_path'])
    rows = write_report_csv(report, output_path)
    print(f"Report written to: {output_path} ({rows} rows)")

    return 0


if __name__ == '__main__':
    sys.exit(main())
