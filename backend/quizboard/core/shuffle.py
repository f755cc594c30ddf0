"""Deterministic question ordering.

A mulberry32 generator drives a Fisher-Yates shuffle so that the same ids
and the same seed always give the same order, on any platform. All
arithmetic is done on unsigned 32-bit integers.
"""

from __future__ import annotations

from typing import Callable, Sequence

_MASK32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296


def _imul(a: int, b: int) -> int:
    """32-bit integer multiplication, keeping only the low 32 bits."""
    return (a * b) & _MASK32


def mulberry32(seed: int) -> Callable[[], float]:
    """Return a generator of floats in [0, 1) seeded with *seed*."""
    state = seed & _MASK32

    def _next() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    return _next


def normalize_seed(seed: str | int) -> int:
    """Reduce a seed to an integer.

    Strings become the sum of their code points. Collisions between
    different strings are expected.
    """
    if isinstance(seed, str):
        return sum(ord(ch) for ch in seed)
    return int(seed)


def shuffle_question_order(ids: Sequence[str], seed: str | int) -> list[str]:
    """Return a new list with *ids* permuted deterministically by *seed*.

    Sequences of length 0 or 1 come back unchanged (as a copy). The input
    is never mutated.
    """
    result = list(ids)
    if len(result) <= 1:
        return result

    random = mulberry32(normalize_seed(seed))
    for i in range(len(result) - 1, 0, -1):
        j = int(random() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result
