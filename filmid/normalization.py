#!/usr/bin/env python3
"""
Title normalization for duplicate detection

The normalized title is LOSSY: different titles that share the same
underlying words collapse to one string, and that collision is the
duplicate signal. It is never used as an identity key (see filmid/keys.py).

Normalization steps:
1. Remove every parenthesized substring (alternate-language titles)
2. If what remains ends in a bracketed original title ("Lille mamma
   [Petite Maman]"), compare on the bracketed title
3. Lowercase
4. Fold diacritics (NFD, drop combining marks)
5. Replace every character that is not a letter, digit, or whitespace
   with a space
6. Collapse whitespace and trim
"""

import re
import unicodedata

ORIGINAL_TITLE_RE = re.compile(r'\[([^\[\]]*)\]\s*$')
PARENTHESIZED_RE = re.compile(r'\([^()]*\)')
NON_WORD_RE = re.compile(r'[^\w\s]|_')
SPACES_RE = re.compile(r'\s+')


def _original_title(title: str) -> str:
    """Return the bracketed original title when one is annotated"""
    match = ORIGINAL_TITLE_RE.search(title)
    if match and any(c.isalnum() for c in match.group(1)):
        return match.group(1)
    return title


def _strip_parenthesized(title: str) -> str:
    # Repeat so nested groups like "A (B (C))" are fully removed
    previous = None
    while previous != title:
        previous = title
        title = PARENTHESIZED_RE.sub(' ', title)
    return title


def normalize_title(title: str) -> str:
    """
    Normalize a title for duplicate comparison.

    Idempotent: normalize_title(normalize_title(t)) == normalize_title(t).

    Examples:
        >>> normalize_title("Lille mamma [Petite Maman]")
        'petite maman'

        >>> normalize_title("Parthenope (Parthénope)")
        'parthenope'

        >>> normalize_title("Amélie: Le Fabuleux Destin")
        'amelie le fabuleux destin'
    """
    title = _strip_parenthesized(title)
    title = _original_title(title)
    title = title.lower()

    title = unicodedata.normalize('NFD', title)
    title = ''.join(c for c in title if unicodedata.category(c) != 'Mn')

    title = NON_WORD_RE.sub(' ', title)
    return SPACES_RE.sub(' ', title).strip()

