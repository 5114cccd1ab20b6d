#!/usr/bin/env python3
"""
filmid/store.py — Persisted bijective film key <-> short code table

File format (JSON, 2-space indent):

    {
      "metadata": {
        "generated": "2025-01-01T00:00:00+00:00",
        "totalFilms": 2,
        "codeLength": 3,
        "charset": "a-z, A-Z, 0-9 (62 chars)",
        "maxCapacity": 238328,
        "nextIndex": 2
      },
      "filmKeyToCode": {"eden-2014": "aaa", "petite-maman-2021": "aab"},
      "codeToFilmKey": {"aaa": "eden-2014", "aab": "petite-maman-2021"}
    }

CRITICAL: codeToFilmKey must always be the exact inverse of filmKeyToCode.
A store that violates this is never repaired automatically; loading it is
fatal so a corrupted table is not compounded by another run.

The store is written whole, to a temporary file that then replaces the old
one, so an interrupted run leaves the previous store intact.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from filmid.codes import code_capacity, decode_code, is_valid_code
from filmid.constants import CODE_CHARSET_DESCRIPTION, CODE_LENGTH

logger = logging.getLogger(__name__)


class StoreIntegrityError(ValueError):
    """The mapping store is not a valid bijection; nothing may be written"""


@dataclass
class MappingStore:
    """In-memory mapping store, passed explicitly through each run"""
    key_to_code: Dict[str, str] = field(default_factory=dict)
    code_to_key: Dict[str, str] = field(default_factory=dict)
    next_index: int = 0
    generated: Optional[str] = None
    code_length: int = CODE_LENGTH

    def __len__(self) -> int:
        return len(self.key_to_code)

    @property
    def capacity(self) -> int:
        return code_capacity(self.code_length)

    def code_for(self, film_key: str) -> Optional[str]:
        return self.key_to_code.get(film_key)

    def key_for(self, code: str) -> Optional[str]:
        return self.code_to_key.get(code)

    def max_issued_index(self) -> int:
        """Highest index decoded from existing codes, -1 when empty"""
        indexes = [decode_code(c, self.code_length) for c in self.code_to_key]
        return max((i for i in indexes if i is not None), default=-1)

    def validate(self) -> None:
        """
        Check the bijection and code shape.

        Raises:
            StoreIntegrityError: On the first violation found.
        """
        if len(self.key_to_code) != len(self.code_to_key):
            raise StoreIntegrityError(
                f"filmKeyToCode has {len(self.key_to_code)} entries but "
                f"codeToFilmKey has {len(self.code_to_key)}"
            )

        for film_key, code in self.key_to_code.items():
            if not isinstance(film_key, str) or not film_key:
                raise StoreIntegrityError(f"Invalid film key: {film_key!r}")
            if not is_valid_code(code, self.code_length):
                raise StoreIntegrityError(
                    f"Invalid code {code!r} for '{film_key}' "
                    f"(expected {self.code_length} chars from {CODE_CHARSET_DESCRIPTION})"
                )
            if self.code_to_key.get(code) != film_key:
                raise StoreIntegrityError(
                    f"'{film_key}' → {code} but codeToFilmKey[{code}] = "
                    f"{self.code_to_key.get(code)!r}"
                )

        if not 0 <= self.next_index <= self.capacity:
            raise StoreIntegrityError(
                f"nextIndex {self.next_index} outside [0, {self.capacity}]"
            )

    def to_dict(self) -> Dict:
        return {
            'metadata': {
                'generated': self.generated,
                'totalFilms': len(self.key_to_code),
                'codeLength': self.code_length,
                'charset': CODE_CHARSET_DESCRIPTION,
                'maxCapacity': self.capacity,
                'nextIndex': self.next_index,
            },
            'filmKeyToCode': dict(self.key_to_code),
            'codeToFilmKey': dict(self.code_to_key),
        }

    @classmethod
    def from_dict(cls, data) -> 'MappingStore':
        """
        Build and validate a store from its decoded JSON document.

        Stores written before nextIndex was persisted derive it from the
        highest decodable code.

        Raises:
            StoreIntegrityError: If the document is malformed.
        """
        if not isinstance(data, dict):
            raise StoreIntegrityError("Mapping store must be a JSON object")

        missing = [name for name in ('filmKeyToCode', 'codeToFilmKey') if name not in data]
        if missing:
            raise StoreIntegrityError(f"Mapping store is missing {', '.join(missing)}")

        metadata = data.get('metadata') or {}
        key_to_code = data['filmKeyToCode']
        code_to_key = data['codeToFilmKey']
        if not isinstance(metadata, dict) or not isinstance(key_to_code, dict) \
                or not isinstance(code_to_key, dict):
            raise StoreIntegrityError("metadata, filmKeyToCode and codeToFilmKey must be objects")

        code_length = metadata.get('codeLength', CODE_LENGTH)
        if isinstance(code_length, bool) or not isinstance(code_length, int) or code_length < 1:
            raise StoreIntegrityError(f"Invalid codeLength: {code_length!r}")

        store = cls(
            key_to_code=dict(key_to_code),
            code_to_key=dict(code_to_key),
            generated=metadata.get('generated'),
            code_length=code_length,
        )

        next_index = metadata.get('nextIndex')
        if next_index is None:
            store.next_index = store.max_issued_index() + 1
            if store.key_to_code:
                logger.info(f"No nextIndex in store metadata; derived {store.next_index} from existing codes")
        elif isinstance(next_index, bool) or not isinstance(next_index, int):
            raise StoreIntegrityError(f"Invalid nextIndex: {next_index!r}")
        else:
            store.next_index = next_index

        store.validate()

        if store.next_index <= store.max_issued_index():
            logger.warning(
                f"nextIndex {store.next_index} is not above highest issued index "
                f"{store.max_issued_index()}; allocation resumes above it"
            )
        return store


def dump_store(store: MappingStore) -> str:
    """Serialize a store exactly as it is written to disk"""
    return json.dumps(store.to_dict(), indent=2, ensure_ascii=False) + '\n'


def load_store(path: Path) -> MappingStore:
    """
    Load and validate the mapping store.

    A missing file is an empty store (first run).

    Raises:
        StoreIntegrityError: If the file is unreadable or not a bijection.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No existing mappings at {path}, starting empty")
        return MappingStore()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StoreIntegrityError(f"Could not read mapping store {path}: {e}") from e

    store = MappingStore.from_dict(data)
    logger.info(f"Loaded mapping store with {len(store)} films (nextIndex {store.next_index})")
    return store


def save_store(store: MappingStore, path: Path) -> None:
    """
    Validate, then atomically replace the store file.

    Raises:
        StoreIntegrityError: If the store is not a valid bijection.
    """
    store.validate()
    text = dump_store(store)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info(f"Saved mapping store with {len(store)} films to {path}")
