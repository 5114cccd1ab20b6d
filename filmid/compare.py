#!/usr/bin/env python3
"""
filmid/compare.py — Stability audit between two mapping stores

Issued codes must never change. Comparing the store before and after a run
shows whether any existing key lost or changed its code; only additions are
expected.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from filmid.store import MappingStore


@dataclass
class StoreComparison:
    same: List[str] = field(default_factory=list)
    changed: List[Tuple[str, str, str]] = field(default_factory=list)   # (key, old, new)
    missing: List[Tuple[str, str]] = field(default_factory=list)        # (key, old)
    added: List[Tuple[str, str]] = field(default_factory=list)          # (key, new)

    @property
    def is_stable(self) -> bool:
        return not self.changed and not self.missing

    def get_stats(self) -> Dict:
        return {
            'same': len(self.same),
            'changed': len(self.changed),
            'missing': len(self.missing),
            'added': len(self.added),
        }


def compare_stores(old: MappingStore, new: MappingStore) -> StoreComparison:
    comparison = StoreComparison()

    for film_key, old_code in old.key_to_code.items():
        new_code = new.code_for(film_key)
        if new_code is None:
            comparison.missing.append((film_key, old_code))
        elif new_code == old_code:
            comparison.same.append(film_key)
        else:
            comparison.changed.append((film_key, old_code, new_code))

    for film_key, new_code in new.key_to_code.items():
        if film_key not in old.key_to_code:
            comparison.added.append((film_key, new_code))

    return comparison
