#!/usr/bin/env python3
"""
filmid/corpus.py — Multi-source festival corpus loader

Layout:
    <corpus_dir>/<source>/<edition>.json

Each edition file holds a JSON array of film records (a {"films": [...]}
wrapper is also accepted). The source name is the directory name. Files
that cannot be read as a record list are skipped, logged and counted;
they never abort a run.

Pattern follows lib/corpus.py (CorpusLookup) loading per-category files.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from filmid.constants import EXTERNAL_ID_FIELDS
from filmid.records import FilmRecord, parse_record

logger = logging.getLogger(__name__)


@dataclass
class CorpusLoadResult:
    """Records from every source plus the files that had to be skipped"""
    records: List[FilmRecord] = field(default_factory=list)
    skipped_files: List[Dict] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    def get_stats(self) -> Dict:
        return {
            'total_records': len(self.records),
            'sources': len(self.sources),
            'skipped_files': len(self.skipped_files),
            'unkeyable_records': sum(1 for r in self.records if not r.is_keyable),
        }


def _read_entries(path: Path):
    """Return the record list in an edition file, or None with a reason"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except UnicodeDecodeError as e:
        return None, f"not UTF-8: {e}"
    except (OSError, json.JSONDecodeError) as e:
        return None, f"invalid JSON: {e}"

    if isinstance(data, dict) and isinstance(data.get('films'), list):
        data = data['films']
    if not isinstance(data, list):
        return None, 'not an array'
    return data, None


def load_corpus(corpus_dir: Path, external_id_fields: Iterable[str] = EXTERNAL_ID_FIELDS) -> CorpusLoadResult:
    """
    Load every source directory under corpus_dir.

    Sources and edition files are visited in sorted order so record order,
    and therefore report order, is reproducible.

    Raises:
        FileNotFoundError: If corpus_dir does not exist.
    """
    corpus_dir = Path(corpus_dir)
    if not corpus_dir.is_dir():
        raise FileNotFoundError(f"Corpus directory not found: {corpus_dir}")

    fields = list(external_id_fields)
    result = CorpusLoadResult()

    for source_dir in sorted(p for p in corpus_dir.iterdir() if p.is_dir()):
        source = source_dir.name
        result.sources.append(source)
        count = 0

        for edition_path in sorted(source_dir.glob('*.json')):
            origin = f"{source}/{edition_path.name}"
            entries, reason = _read_entries(edition_path)
            if entries is None:
                logger.warning(f"Skipping {origin} - {reason}")
                result.skipped_files.append({'origin': origin, 'reason': reason})
                continue

            for position, raw in enumerate(entries):
                result.records.append(
                    parse_record(source, raw, origin=origin, position=position,
                                 external_id_fields=fields)
                )
            count += len(entries)

        logger.info(f"Loaded source: {source} ({count} records)")

    logger.info(
        f"Corpus loaded: {len(result.records)} records from {len(result.sources)} sources"
    )
    return result
