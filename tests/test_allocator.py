#!/usr/bin/env python3
"""
Test suite for filmid/allocator.py — append-only short-code allocation
"""

import pytest
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from filmid.allocator import (
    AllocationError,
    CapacityExceededError,
    _next_free_index,
    allocate_codes,
)
from filmid.codes import encode_index
from filmid.store import MappingStore, StoreIntegrityError, dump_store, load_store, save_store

FIRST_RUN = datetime(2025, 1, 1, tzinfo=timezone.utc)
SECOND_RUN = datetime(2025, 6, 1, tzinfo=timezone.utc)


def assert_bijection(store: MappingStore):
    assert len(store.key_to_code) == len(store.code_to_key)
    for film_key, code in store.key_to_code.items():
        assert store.code_to_key[code] == film_key


class TestFirstRun:
    """Empty store: codes issued in sorted key order from index 0"""

    def test_sorted_assignment(self):
        result = allocate_codes(MappingStore(), ['zama-2017', 'anora-2024', 'eden-2014'], now=FIRST_RUN)
        assert result.store.key_to_code == {
            'anora-2024': 'aaa',
            'eden-2014': 'aab',
            'zama-2017': 'aac',
        }
        assert result.store.next_index == 3
        assert result.new_entries == [('anora-2024', 'aaa'), ('eden-2014', 'aab'), ('zama-2017', 'aac')]
        assert_bijection(result.store)

    def test_input_order_irrelevant(self):
        keys = ['zama-2017', 'anora-2024', 'eden-2014']
        first = allocate_codes(MappingStore(), keys, now=FIRST_RUN)
        second = allocate_codes(MappingStore(), list(reversed(keys)), now=FIRST_RUN)
        assert dump_store(first.store) == dump_store(second.store)

    def test_duplicate_keys_mapped_once(self):
        result = allocate_codes(MappingStore(), ['eden-2014', 'eden-2014'], now=FIRST_RUN)
        assert len(result.store) == 1

    def test_metadata(self):
        store = allocate_codes(MappingStore(), ['eden-2014'], now=FIRST_RUN).store
        assert store.generated == '2025-01-01T00:00:00+00:00'
        metadata = store.to_dict()['metadata']
        assert metadata['totalFilms'] == 1
        assert metadata['codeLength'] == 3
        assert metadata['maxCapacity'] == 238328

    def test_input_store_not_modified(self):
        store = MappingStore({'eden-2014': 'aaa'}, {'aaa': 'eden-2014'}, next_index=1, generated='x')
        allocate_codes(store, ['eden-2014', 'anora-2024'], now=FIRST_RUN)
        assert store.key_to_code == {'eden-2014': 'aaa'}
        assert store.next_index == 1


class TestStability:
    """Issued codes never change between runs"""

    def test_second_run_byte_identical(self, tmp_path):
        path = tmp_path / 'film-key-mappings.json'
        keys = ['eden-2014', 'anora-2024', 'petite-maman-2021']

        save_store(allocate_codes(load_store(path), keys, now=FIRST_RUN).store, path)
        first = path.read_bytes()

        result = allocate_codes(load_store(path), keys, now=SECOND_RUN)
        save_store(result.store, path)

        assert not result.changed
        assert path.read_bytes() == first

    def test_monotonic_append(self):
        first = allocate_codes(MappingStore(), ['eden-2014', 'zama-2017'], now=FIRST_RUN).store

        # 'anora-2024' sorts first but must not displace existing codes
        result = allocate_codes(first, ['eden-2014', 'zama-2017', 'anora-2024'], now=SECOND_RUN)
        store = result.store

        assert store.code_for('eden-2014') == 'aaa'
        assert store.code_for('zama-2017') == 'aab'
        assert result.new_entries == [('anora-2024', 'aac')]
        assert store.next_index == 3
        assert store.generated == '2025-06-01T00:00:00+00:00'
        assert list(store.key_to_code) == ['eden-2014', 'zama-2017', 'anora-2024']

    def test_absent_keys_kept(self):
        first = allocate_codes(MappingStore(), ['eden-2014', 'zama-2017'], now=FIRST_RUN).store
        result = allocate_codes(first, ['eden-2014'], now=SECOND_RUN)

        assert result.absent_keys == ['zama-2017']
        assert result.store.code_for('zama-2017') == 'aab'

    def test_retired_code_never_reissued(self):
        """A code removed by hand stays retired: the counter keeps moving"""
        store = MappingStore({'eden-2014': 'aaa'}, {'aaa': 'eden-2014'}, next_index=2, generated='x')
        result = allocate_codes(store, ['eden-2014', 'anora-2024'], now=FIRST_RUN)
        assert result.store.code_for('anora-2024') == 'aac'


class TestNextIndex:
    """Allocation continues strictly above every issued index"""

    def test_persisted_counter_ahead(self):
        store = MappingStore({'eden-2014': 'aaa'}, {'aaa': 'eden-2014'}, next_index=10)
        result = allocate_codes(store, ['anora-2024'], now=FIRST_RUN)
        assert result.store.code_for('anora-2024') == 'aak'
        assert result.store.next_index == 11

    def test_persisted_counter_behind(self):
        store = MappingStore({'eden-2014': 'aab'}, {'aab': 'eden-2014'}, next_index=0)
        result = allocate_codes(store, ['anora-2024'], now=FIRST_RUN)
        assert result.store.code_for('anora-2024') == 'aac'
        assert_bijection(result.store)


class TestCollisionSafetyNet:

    def test_occupied_codes_skipped(self):
        code_to_key = {'aaa': 'eden-2014', 'aab': 'anora-2024'}
        assert _next_free_index(0, code_to_key, 238328, 3) == (2, 2)

    def test_free_code_returned_immediately(self):
        assert _next_free_index(5, {'aaa': 'eden-2014'}, 238328, 3) == (5, 0)

    def test_bounded_attempts(self):
        code_to_key = {encode_index(i): f"film-{i}-2000" for i in range(1000)}
        with pytest.raises(AllocationError, match='1000 attempts'):
            _next_free_index(0, code_to_key, 238328, 3)


class TestCapacity:
    """The code space is a hard ceiling"""

    def test_one_past_capacity_fails(self):
        keys = [f"film-{i}-2000" for i in range(238329)]
        with pytest.raises(CapacityExceededError) as exc_info:
            allocate_codes(MappingStore(), keys, now=FIRST_RUN)
        assert exc_info.value.shortfall == 1
        assert exc_info.value.capacity == 238328

    def test_last_code_can_be_issued(self):
        store = MappingStore(next_index=238327)
        result = allocate_codes(store, ['eden-2014'], now=FIRST_RUN)
        assert result.store.code_for('eden-2014') == '999'
        assert result.store.next_index == 238328

    def test_index_space_exhausted(self):
        store = MappingStore({'eden-2014': '999'}, {'999': 'eden-2014'}, next_index=238328)
        with pytest.raises(CapacityExceededError) as exc_info:
            allocate_codes(store, ['eden-2014', 'anora-2024'], now=FIRST_RUN)
        assert exc_info.value.shortfall == 1

    def test_capacity_error_is_allocation_error(self):
        assert issubclass(CapacityExceededError, AllocationError)

    def test_failed_run_writes_nothing(self, tmp_path):
        path = tmp_path / 'film-key-mappings.json'
        store = MappingStore({'eden-2014': '999'}, {'999': 'eden-2014'}, next_index=238328, generated='x')
        save_store(store, path)
        before = path.read_bytes()

        with pytest.raises(CapacityExceededError):
            result = allocate_codes(load_store(path), ['eden-2014', 'anora-2024'])
            save_store(result.store, path)
        assert path.read_bytes() == before


class TestInvalidInput:

    def test_corrupted_store_rejected(self):
        broken = MappingStore({'eden-2014': 'aaa'}, {'aaa': 'zama-2017'}, next_index=1)
        with pytest.raises(StoreIntegrityError):
            allocate_codes(broken, ['eden-2014'])
