#!/usr/bin/env python3
"""
filmid/keys.py — Identity key derivation

The identity key is the canonical name of a film across every source
dataset and the left-hand side of every mapping store entry. It is derived,
never stored on its own, so every call site MUST go through derive_key().

    derive_key("Petite Maman", 2021)  ->  'petite-maman-2021'
    derive_key("?!", 1999)            ->  '-1999'   (degenerate, accepted)
"""

import re

NON_SLUG_RE = re.compile(r'[^a-z0-9]+')


def slugify_title(title: str) -> str:
    """Lowercase, collapse every run outside [a-z0-9] to '-', trim hyphens."""
    return NON_SLUG_RE.sub('-', title.lower()).strip('-')


def derive_key(title: str, year: int) -> str:
    """
    Derive the deterministic identity key for a film.

    Args:
        title: Display title exactly as published by the source
        year:  Release year

    Returns:
        '<slug>-<year>'. A title without any [a-z0-9] characters yields
        '-<year>'; callers must tolerate that form.
    """
    return f"{slugify_title(title)}-{int(year)}"
