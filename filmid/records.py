#!/usr/bin/env python3
"""
filmid/records.py — Film records from heterogeneous source datasets

Sources disagree on field types (years as strings, catalog ids as numbers
or zero-padded strings), so every raw record goes through parse_record()
before it is grouped or keyed. Parsing never raises: a record that cannot be
keyed keeps its `problem` and is reported by the caller.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from filmid.constants import EXTERNAL_ID_FIELDS
from filmid.keys import derive_key

logger = logging.getLogger(__name__)


@dataclass
class FilmRecord:
    """One entry from one source dataset"""
    source: str
    title: Optional[str]
    year: Optional[int]
    external_id: Optional[str] = None
    origin: str = ''        # file the record came from, e.g. 'berlin/2021.json'
    position: int = 0       # index within that file
    problem: Optional[str] = None   # why the record cannot be keyed

    @property
    def is_keyable(self) -> bool:
        return self.problem is None

    @property
    def film_key(self) -> Optional[str]:
        if not self.is_keyable:
            return None
        return derive_key(self.title, self.year)


def _parse_title(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _parse_year(value) -> Optional[int]:
    """Accept ints, integral floats and digit strings; reject everything else"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_external_id(value) -> Optional[str]:
    """
    Canonical string form of an external identifier.

    Numeric ids compare by value so 123, '123' and '00123' agree.
    Returns None for empty or unusable values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return str(int(text))
    return text


def _parse_external_id(raw: Dict, fields: Iterable[str]) -> Optional[str]:
    """First usable id, prefixed with its field since ids are unique per catalog only"""
    for field_name in fields:
        external_id = normalize_external_id(raw.get(field_name))
        if external_id:
            return f"{field_name}:{external_id}"
    return None


def parse_record(
    source: str,
    raw,
    origin: str = '',
    position: int = 0,
    external_id_fields: Iterable[str] = EXTERNAL_ID_FIELDS,
) -> FilmRecord:
    """
    Build a FilmRecord from one raw source entry.

    Args:
        source:             Source dataset name (e.g. festival directory)
        raw:                Decoded JSON entry
        origin:             File the entry came from
        position:           Index of the entry within that file
        external_id_fields: Field names checked for an external id, in order

    Returns:
        FilmRecord. `problem` is set when title or year is missing/invalid.
    """
    if not isinstance(raw, dict):
        return FilmRecord(source=source, title=None, year=None, origin=origin,
                          position=position, problem='not an object')

    title = _parse_title(raw.get('title'))
    year = _parse_year(raw.get('year'))

    problems = []
    if title is None:
        problems.append('missing title')
    if year is None:
        problems.append('invalid year' if raw.get('year') not in (None, '') else 'missing year')

    return FilmRecord(
        source=source,
        title=title,
        year=year,
        external_id=_parse_external_id(raw, external_id_fields),
        origin=origin,
        position=position,
        problem=', '.join(problems) or None,
    )


def records_from_pairs(pairs: Iterable, external_id_fields: Iterable[str] = EXTERNAL_ID_FIELDS) -> List[FilmRecord]:
    """Parse a sequence of (source, raw_record) pairs"""
    fields = list(external_id_fields)
    return [
        parse_record(source, raw, position=i, external_id_fields=fields)
        for i, (source, raw) in enumerate(pairs)
    ]


def resolve_key(film_key: str, merges: Optional[Dict[str, str]]) -> str:
    """
    Follow curated merges from a duplicate key to its canonical key.

    Raises:
        ValueError: If the merge table contains a cycle.
    """
    if not merges:
        return film_key
    seen = {film_key}
    while film_key in merges and merges[film_key] != film_key:
        film_key = merges[film_key]
        if film_key in seen:
            raise ValueError(f"Merge cycle detected at '{film_key}'")
        seen.add(film_key)
    return film_key


def collect_film_keys(records: Iterable[FilmRecord], merges: Optional[Dict[str, str]] = None) -> List[str]:
    """
    Distinct identity keys of all keyable records, curated merges applied.

    Returns:
        Keys sorted lexicographically.
    """
    keys = set()
    for record in records:
        film_key = record.film_key
        if film_key is None:
            continue
        canonical = resolve_key(film_key, merges)
        if canonical != film_key:
            logger.debug(f"Merged key: {film_key} → {canonical}")
        keys.add(canonical)
    return sorted(keys)
