#!/usr/bin/env python3
"""
filmid/allocator.py — Append-only short-code allocation

Reconciles the current corpus keys against an existing MappingStore:

  1. Every existing entry is carried forward unchanged, including entries
     whose key is absent from the current corpus
  2. Keys without an entry are sorted and each receives one unused code
  3. Codes come from a monotonic index that starts above every issued
     index and is persisted as metadata.nextIndex
  4. An index whose code is already taken is skipped, never overwritten

The run is all-or-nothing: any fatal condition raises before a new store
exists, so the caller has nothing partial to write.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from filmid.codes import encode_index
from filmid.constants import MAX_COLLISION_ATTEMPTS
from filmid.store import MappingStore

logger = logging.getLogger(__name__)


class AllocationError(RuntimeError):
    """Allocation could not complete; no store may be written"""


class CapacityExceededError(AllocationError):
    """More codes required than the fixed-width code space holds"""

    def __init__(self, required: int, capacity: int):
        self.required = required
        self.capacity = capacity
        self.shortfall = required - capacity
        super().__init__(
            f"Code space exhausted: {required} codes required, capacity {capacity} "
            f"(short by {self.shortfall})"
        )


@dataclass
class AllocationResult:
    """Updated store plus what changed in this run"""
    store: MappingStore
    new_entries: List[Tuple[str, str]] = field(default_factory=list)
    carried_forward: int = 0
    absent_keys: List[str] = field(default_factory=list)
    collisions: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.new_entries)


def _next_free_index(
    index: int,
    code_to_key: Dict[str, str],
    capacity: int,
    code_length: int,
    remaining: int = 1,
) -> Tuple[int, int]:
    """
    First index at or after `index` whose code is unused.

    Returns:
        (index, collisions skipped)

    Raises:
        CapacityExceededError: If the code space runs out.
        AllocationError: After MAX_COLLISION_ATTEMPTS occupied codes in a row.
    """
    collisions = 0
    while True:
        if index >= capacity:
            raise CapacityExceededError(required=index + remaining, capacity=capacity)
        code = encode_index(index, code_length)
        if code not in code_to_key:
            return index, collisions

        collisions += 1
        logger.warning(f"Code collision at index {index}: {code} already maps to '{code_to_key[code]}'")
        if collisions >= MAX_COLLISION_ATTEMPTS:
            raise AllocationError(
                f"Could not find unused code after {MAX_COLLISION_ATTEMPTS} attempts "
                f"(starting at index {index - collisions + 1}); store bookkeeping is inconsistent"
            )
        index += 1


def allocate_codes(
    store: MappingStore,
    film_keys: Iterable[str],
    now: Optional[datetime] = None,
) -> AllocationResult:
    """
    Assign codes to every corpus key that does not have one yet.

    Args:
        store:     Existing store (not modified)
        film_keys: All identity keys in the current corpus
        now:       Generation time; defaults to current UTC time

    Returns:
        AllocationResult with the new store. When nothing new is issued the
        previous `generated` timestamp is kept, so an unchanged corpus
        serializes to an identical file.

    Raises:
        StoreIntegrityError:   If the input store is not a bijection.
        CapacityExceededError: If the code space cannot hold every key.
        AllocationError:       If no unused code can be found.
    """
    store.validate()

    corpus_keys = set(film_keys)
    needs_mapping = sorted(k for k in corpus_keys if k not in store.key_to_code)
    absent_keys = sorted(k for k in store.key_to_code if k not in corpus_keys)
    capacity = store.capacity

    total_required = len(store) + len(needs_mapping)
    if total_required > capacity:
        raise CapacityExceededError(required=total_required, capacity=capacity)

    start = max(store.next_index, store.max_issued_index() + 1)
    if start != store.next_index:
        logger.warning(
            f"Persisted nextIndex {store.next_index} is behind issued codes; continuing from {start}"
        )
    if start + len(needs_mapping) > capacity:
        raise CapacityExceededError(required=start + len(needs_mapping), capacity=capacity)

    key_to_code = dict(store.key_to_code)
    code_to_key = dict(store.code_to_key)
    result = AllocationResult(store=store, carried_forward=len(store), absent_keys=absent_keys)

    index = start
    for position, film_key in enumerate(needs_mapping):
        remaining = len(needs_mapping) - position
        index, skipped = _next_free_index(index, code_to_key, capacity, store.code_length, remaining)
        result.collisions += skipped

        code = encode_index(index, store.code_length)
        key_to_code[film_key] = code
        code_to_key[code] = film_key
        result.new_entries.append((film_key, code))
        logger.debug(f"Assigned {film_key} → {code} (index {index})")
        index += 1

    if result.new_entries or not store.generated:
        generated = (now or datetime.now(timezone.utc)).isoformat(timespec='seconds')
    else:
        generated = store.generated

    updated = MappingStore(
        key_to_code=key_to_code,
        code_to_key=code_to_key,
        next_index=index,
        generated=generated,
        code_length=store.code_length,
    )
    updated.validate()
    result.store = updated

    if absent_keys:
        logger.info(f"{len(absent_keys)} mapped films are absent from the corpus; entries kept")
    logger.info(
        f"Allocated {len(result.new_entries)} new codes, carried forward {result.carried_forward}"
    )
    return result
