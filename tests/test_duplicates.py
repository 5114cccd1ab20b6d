#!/usr/bin/env python3
"""
Test suite for filmid/duplicates.py — cross-source duplicate detection
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from filmid.duplicates import (
    EXACT_KEY,
    EXTERNAL_ID,
    NORMALIZED_TITLE,
    DuplicateDetector,
    find_duplicates,
)
from filmid.records import parse_record


def corpus(*entries):
    """(source, raw) pairs → FilmRecords with per-source origins"""
    return [
        parse_record(source, raw, origin=f"{source}/list.json", position=i)
        for i, (source, raw) in enumerate(entries)
    ]


class TestExactKeyGroups:
    """Identical identity keys are grouped"""

    def test_same_film_in_two_sources(self):
        report = find_duplicates(corpus(
            ('A', {'title': 'Eden', 'year': 2014}),
            ('B', {'title': 'Eden', 'year': 2014}),
        ))
        assert len(report.exact_key_groups) == 1
        group = report.exact_key_groups[0]
        assert group.kind == EXACT_KEY
        assert group.match == 'eden-2014'
        assert len(group) == 2
        assert group.sources == ['A', 'B']

    def test_identical_key_not_repeated_as_normalized_group(self):
        report = find_duplicates(corpus(
            ('A', {'title': 'Eden', 'year': 2014}),
            ('B', {'title': 'Eden', 'year': 2014}),
        ))
        assert report.normalized_title_groups == []

    def test_different_years_not_grouped(self):
        report = find_duplicates(corpus(
            ('A', {'title': 'Eden', 'year': 2014}),
            ('B', {'title': 'Eden', 'year': 2024}),
        ))
        assert report.exact_key_groups == []
        assert report.distinct_keys == 2

    def test_accepts_source_record_pairs(self):
        report = find_duplicates([
            ('A', {'title': 'Eden', 'year': 2014}),
            ('B', {'title': 'Eden', 'year': 2014}),
        ])
        assert len(report.exact_key_groups) == 1


class TestNormalizedTitleGroups:
    """Formatting differences that hide a duplicate"""

    def test_alternate_title_annotation(self):
        report = find_duplicates(corpus(
            ('berlin', {'title': 'Lille mamma [Petite Maman]', 'year': 2021}),
            ('arthaus', {'title': 'Petite Maman', 'year': 2021}),
        ))
        assert report.exact_key_groups == []
        assert len(report.normalized_title_groups) == 1
        group = report.normalized_title_groups[0]
        assert group.kind == NORMALIZED_TITLE
        assert group.match == 'petite maman|2021'
        assert group.film_keys == ['lille-mamma-petite-maman-2021', 'petite-maman-2021']

    def test_parenthesized_alternate_and_accents(self):
        report = find_duplicates(corpus(
            ('venice', {'title': 'PARTHENOPE (Parthénope)', 'year': 2024}),
            ('cannes', {'title': 'Parthenope', 'year': 2024}),
        ))
        assert len(report.normalized_title_groups) == 1

    def test_same_title_different_year_not_grouped(self):
        report = find_duplicates(corpus(
            ('A', {'title': 'Petite Maman', 'year': 2021}),
            ('B', {'title': 'Petite-Maman', 'year': 2022}),
        ))
        assert report.normalized_title_groups == []

    def test_empty_normalized_titles_not_grouped(self):
        report = find_duplicates(corpus(
            ('A', {'title': '(Untitled)', 'year': 2020}),
            ('B', {'title': '(Sans titre)', 'year': 2020}),
        ))
        assert report.normalized_title_groups == []


class TestExternalIdGroups:
    """Shared catalog ids across different sources"""

    def test_cross_source_match(self):
        report = find_duplicates(corpus(
            ('arthaus', {'title': 'Anatomy of a Fall', 'year': 2023, 'tmdb_id': 915935}),
            ('cannes', {'title': "Anatomie d'une chute", 'year': 2023, 'tmdb_id': '915935'}),
        ))
        assert len(report.external_id_groups) == 1
        group = report.external_id_groups[0]
        assert group.kind == EXTERNAL_ID
        assert group.match == 'tmdb_id:915935'
        assert group.sources == ['arthaus', 'cannes']

    def test_ids_from_different_catalogs_not_matched(self):
        report = find_duplicates(corpus(
            ('arthaus', {'title': 'Eden', 'year': 2014, 'externalId': 123}),
            ('cannes', {'title': 'Anora', 'year': 2024, 'tmdb_id': 123}),
        ))
        assert report.external_id_groups == []

    def test_same_source_not_reported(self):
        report = find_duplicates(corpus(
            ('berlin', {'title': 'Eden', 'year': 2014, 'tmdb_id': 1}),
            ('berlin', {'title': 'Eden', 'year': 2015, 'tmdb_id': 1}),
        ))
        assert report.external_id_groups == []

    def test_unkeyable_record_still_matched_by_external_id(self):
        report = find_duplicates(corpus(
            ('arthaus', {'title': 'Eden', 'tmdb_id': 7}),
            ('berlin', {'title': 'Eden', 'year': 2014, 'tmdb_id': 7}),
        ))
        assert len(report.skipped) == 1
        assert report.exact_key_groups == []
        assert len(report.external_id_groups) == 1
        assert len(report.external_id_groups[0]) == 2


class TestFocusSource:
    """External-id groups involving the focus source are singled out"""

    @pytest.fixture
    def records(self):
        return corpus(
            ('arthaus', {'title': 'Eden', 'year': 2014, 'tmdb_id': 1}),
            ('berlin', {'title': 'Eden', 'year': 2014, 'tmdb_id': 1}),
            ('cannes', {'title': 'Anora', 'year': 2024, 'tmdb_id': 2}),
            ('venice', {'title': 'Anora', 'year': 2024, 'tmdb_id': 2}),
        )

    def test_focus_groups(self, records):
        report = DuplicateDetector(focus_source='arthaus').scan(records)
        assert len(report.external_id_groups) == 2
        assert [g.match for g in report.focus_groups] == ['tmdb_id:1']

    def test_no_focus_source(self, records):
        assert find_duplicates(records).focus_groups == []


class TestMalformedRecords:
    """Scans never fail on bad records; skips are counted"""

    def test_skips_counted(self):
        report = find_duplicates(corpus(
            ('A', {'title': 'Eden', 'year': 2014}),
            ('A', {'title': 'No Year'}),
            ('B', {'year': 2014}),
            ('B', ['not', 'a', 'record']),
        ))
        stats = report.get_stats()
        assert stats['total_records'] == 4
        assert stats['skipped_records'] == 3
        assert stats['distinct_keys'] == 1
        assert [r.problem for r in report.skipped] == ['missing year', 'missing title', 'not an object']

    def test_empty_corpus(self):
        report = find_duplicates([])
        assert report.get_stats()['total_records'] == 0
        assert report.all_groups() == []


class TestOrdering:
    """Groups are sorted by match value; members keep corpus order"""

    def test_groups_sorted(self):
        report = find_duplicates(corpus(
            ('A', {'title': 'Zama', 'year': 2017}),
            ('B', {'title': 'Zama', 'year': 2017}),
            ('A', {'title': 'Anora', 'year': 2024}),
            ('B', {'title': 'Anora', 'year': 2024}),
        ))
        assert [g.match for g in report.exact_key_groups] == ['anora-2024', 'zama-2017']
        assert [m.source for m in report.exact_key_groups[0].members] == ['A', 'B']
