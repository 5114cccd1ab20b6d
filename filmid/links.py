#!/usr/bin/env python3
"""
filmid/links.py — Compact share-link tokens

Shared favorites links carry a comma-separated list of short codes instead
of full identity keys:

    ['no-other-land-2024', 'eden-2014']  <->  'a4g,0zv'

Unmapped keys and unknown codes pass through unchanged (with a warning) so
a link built before a film was mapped still resolves to something.
"""

import logging
from typing import Iterable, List

from filmid.store import MappingStore

logger = logging.getLogger(__name__)


def encode_film_keys(film_keys: Iterable[str], store: MappingStore) -> str:
    """Convert identity keys to a comma-separated code string"""
    codes = []
    for film_key in film_keys:
        code = store.code_for(film_key)
        if code is None:
            logger.warning(f"No mapping found for film key: {film_key}")
            code = film_key
        codes.append(code)
    return ','.join(codes)


def decode_film_keys(token: str, store: MappingStore) -> List[str]:
    """Convert a comma-separated code string back to identity keys"""
    if not token or not token.strip():
        return []

    film_keys = []
    for code in (c.strip() for c in token.split(',')):
        if not code:
            continue
        film_key = store.key_for(code)
        if film_key is None:
            logger.warning(f"No film key found for code: {code}")
            film_key = code
        film_keys.append(film_key)
    return film_keys
