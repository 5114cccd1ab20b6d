#!/usr/bin/env python3
"""
filmid/duplicates.py — Cross-source duplicate detection

Scans the whole multi-source corpus and reports groups of records that
appear to denote the same film. Three independent strategies, in order of
escalating looseness:

  1. Exact key        — identical identity key (re-publication of one film,
                        or a key derivation bug if the sources disagree)
  2. Normalized title — identical (normalized title, year) spanning more than
                        one identity key: formatting masked a duplicate
  3. External id      — identical catalog id across different sources

Groups are candidates for a curator. Nothing is merged here; curated
merges are fed back through the `merges` table in config.yaml.

Malformed records never stop a scan. A record without a usable title or
year is excluded from strategies 1-2, still takes part in strategy 3 when
it carries an external id, and is listed in `skipped`.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from filmid.normalization import normalize_title
from filmid.records import FilmRecord, parse_record

logger = logging.getLogger(__name__)

EXACT_KEY = 'exact_key'
NORMALIZED_TITLE = 'normalized_title'
EXTERNAL_ID = 'external_id'


@dataclass
class DuplicateGroup:
    """Records believed to denote one real film"""
    kind: str            # exact_key | normalized_title | external_id
    match: str           # shared value: key, 'normalized|year', or external id
    members: List[FilmRecord]

    @property
    def sources(self) -> List[str]:
        return sorted({m.source for m in self.members})

    @property
    def film_keys(self) -> List[str]:
        return sorted({m.film_key for m in self.members if m.film_key is not None})

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class DuplicateReport:
    """Result of one duplicate scan"""
    exact_key_groups: List[DuplicateGroup] = field(default_factory=list)
    normalized_title_groups: List[DuplicateGroup] = field(default_factory=list)
    external_id_groups: List[DuplicateGroup] = field(default_factory=list)
    focus_groups: List[DuplicateGroup] = field(default_factory=list)
    focus_source: Optional[str] = None
    skipped: List[FilmRecord] = field(default_factory=list)
    total_records: int = 0
    distinct_keys: int = 0

    def all_groups(self) -> List[DuplicateGroup]:
        return self.exact_key_groups + self.normalized_title_groups + self.external_id_groups

    def get_stats(self) -> Dict:
        return {
            'total_records': self.total_records,
            'distinct_keys': self.distinct_keys,
            'exact_key_groups': len(self.exact_key_groups),
            'normalized_title_groups': len(self.normalized_title_groups),
            'external_id_groups': len(self.external_id_groups),
            'focus_groups': len(self.focus_groups),
            'skipped_records': len(self.skipped),
        }


def _as_record(item, position: int) -> FilmRecord:
    """Accept parsed FilmRecords or raw (source, record) pairs"""
    if isinstance(item, FilmRecord):
        return item
    source, raw = item
    return parse_record(source, raw, position=position)


class DuplicateDetector:
    """
    Multi-pass grouping over the full corpus.

    Each pass folds records into a dict of lists keyed by the match value,
    then keeps the partitions that meet that strategy's reporting rule.
    """

    def __init__(self, focus_source: Optional[str] = None):
        self.focus_source = focus_source

    def scan(self, items: Iterable) -> DuplicateReport:
        records = [_as_record(item, i) for i, item in enumerate(items)]

        report = DuplicateReport(focus_source=self.focus_source, total_records=len(records))

        by_key: Dict[str, List[FilmRecord]] = defaultdict(list)
        by_normalized: Dict[Tuple[str, int], List[FilmRecord]] = defaultdict(list)
        by_external_id: Dict[str, List[FilmRecord]] = defaultdict(list)

        for record in records:
            if record.external_id:
                by_external_id[record.external_id].append(record)

            if not record.is_keyable:
                logger.debug(
                    f"Skipping {record.source} {record.origin}[{record.position}]: {record.problem}"
                )
                report.skipped.append(record)
                continue

            by_key[record.film_key].append(record)

            normalized = normalize_title(record.title)
            if normalized:
                by_normalized[(normalized, record.year)].append(record)

        report.distinct_keys = len(by_key)
        report.exact_key_groups = self._exact_key_groups(by_key)
        report.normalized_title_groups = self._normalized_title_groups(by_normalized)
        report.external_id_groups = self._external_id_groups(by_external_id)
        report.focus_groups = self._focus_groups(report.external_id_groups)

        if report.skipped:
            logger.warning(f"Skipped {len(report.skipped)} records without a usable title or year")
        logger.info(
            f"Duplicate scan: {len(report.exact_key_groups)} exact-key, "
            f"{len(report.normalized_title_groups)} normalized-title, "
            f"{len(report.external_id_groups)} external-id groups"
        )
        return report

    def _exact_key_groups(self, by_key: Dict[str, List[FilmRecord]]) -> List[DuplicateGroup]:
        return [
            DuplicateGroup(EXACT_KEY, film_key, members)
            for film_key, members in sorted(by_key.items())
            if len(members) > 1
        ]

    def _normalized_title_groups(self, by_normalized: Dict[Tuple[str, int], List[FilmRecord]]) -> List[DuplicateGroup]:
        groups = []
        for (normalized, year), members in sorted(by_normalized.items()):
            # Same key everywhere is already covered by the exact-key pass
            if len({m.film_key for m in members}) > 1:
                groups.append(DuplicateGroup(NORMALIZED_TITLE, f"{normalized}|{year}", members))
        return groups

    def _external_id_groups(self, by_external_id: Dict[str, List[FilmRecord]]) -> List[DuplicateGroup]:
        return [
            DuplicateGroup(EXTERNAL_ID, external_id, members)
            for external_id, members in sorted(by_external_id.items())
            if len({m.source for m in members}) > 1
        ]

    def _focus_groups(self, external_id_groups: List[DuplicateGroup]) -> List[DuplicateGroup]:
        if not self.focus_source:
            return []
        return [g for g in external_id_groups if self.focus_source in g.sources]


def find_duplicates(items: Iterable, focus_source: Optional[str] = None) -> DuplicateReport:
    """Scan (source, record) pairs or FilmRecords for duplicate groups"""
    return DuplicateDetector(focus_source=focus_source).scan(items)
