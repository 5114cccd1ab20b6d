#!/usr/bin/env python3
"""
filmid/codes.py — Fixed-width base-62 short codes

A code is an allocation index written as a fixed-width base-62 number over
CODE_CHARSET, most significant digit first:

    0     -> 'aaa'
    61    -> 'aa9'
    62    -> 'aba'
    3843  -> 'a99'
    3844  -> 'baa'

Indexes outside [0, 62^length) are rejected rather than wrapped, so two
indexes can never produce the same code.
"""

from typing import Optional

from filmid.constants import CODE_BASE, CODE_CHARSET, CODE_LENGTH

_DIGIT_VALUES = {c: i for i, c in enumerate(CODE_CHARSET)}


def code_capacity(length: int = CODE_LENGTH) -> int:
    return CODE_BASE ** length


def encode_index(index: int, length: int = CODE_LENGTH) -> str:
    """
    Convert an allocation index to its short code.

    Raises:
        ValueError: If index does not fit in `length` base-62 digits.
    """
    if index < 0 or index >= code_capacity(length):
        raise ValueError(
            f"Index {index} outside code space [0, {code_capacity(length)}) "
            f"for {length}-character codes"
        )

    digits = []
    for _ in range(length):
        index, digit = divmod(index, CODE_BASE)
        digits.append(CODE_CHARSET[digit])
    return ''.join(reversed(digits))


def is_valid_code(code, length: int = CODE_LENGTH) -> bool:
    """Exactly `length` characters, all from CODE_CHARSET"""
    return (
        isinstance(code, str)
        and len(code) == length
        and all(c in _DIGIT_VALUES for c in code)
    )


def decode_code(code: str, length: int = CODE_LENGTH) -> Optional[int]:
    """
    Recover the allocation index a code was generated from.

    Returns None for strings that are not well-formed codes.
    """
    if not is_valid_code(code, length):
        return None
    index = 0
    for c in code:
        index = index * CODE_BASE + _DIGIT_VALUES[c]
    return index
