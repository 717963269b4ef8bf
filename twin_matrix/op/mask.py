#!/usr/bin/env python3
# twin_matrix/op/mask.py
# WO-04: Agent permission mask (uint256) queries

"""
Contract (WO-04):
permissionMaskOf(tokenId, agent) -> uint256. Bit i grants dimension i.

Bitset layout (frozen):
- K = 4 uint64 words, word w = i >> 6, bit b = i & 63, LSB-first
- word w is exactly the quadrant w:
    Physical  bits 0-63     word 0
    Digital   bits 64-127   word 1
    Social    bits 128-191  word 2
    Spiritual bits 192-255  word 3
- a quadrant is granted iff any bit of its word is set

All queries are pure; masks outside [0, 2**256) raise ValueError.
"""

from __future__ import annotations
from typing import Iterable, List
import numpy as np

MASK_BITS = 256
QUADRANTS = ("Physical", "Digital", "Social", "Spiritual")
_WORD_MASK = (1 << 64) - 1


def _check_mask(mask: int) -> int:
    if isinstance(mask, bool) or not isinstance(mask, (int, np.integer)):
        raise TypeError(f"permission mask must be an int, got {type(mask).__name__}")
    mask = int(mask)
    if mask < 0 or mask >> MASK_BITS:
        raise ValueError(f"permission mask outside [0, 2**{MASK_BITS})")
    return mask


def mask_to_words(mask: int) -> np.ndarray:
    """
    Split a uint256 mask into 4 uint64 words, word 0 = bits 0-63.

    Returns:
        np.ndarray: shape (4,), dtype uint64
    """
    mask = _check_mask(mask)
    return np.array([(mask >> (64 * w)) & _WORD_MASK for w in range(4)], dtype=np.uint64)


def words_to_mask(words: np.ndarray) -> int:
    """Inverse of mask_to_words."""
    mask = 0
    for w, word in enumerate(words):
        mask |= int(word) << (64 * w)
    return mask


def _test_bit(word_array: np.ndarray, bit: int) -> bool:
    w = bit >> 6
    b = bit & 63
    return ((word_array[w] >> np.uint64(b)) & np.uint64(1)) != 0


def permission_mask_to_binary256(mask: int) -> str:
    """
    256-char binary string, most significant bit (bit 255) first.
    """
    return format(_check_mask(mask), "b").zfill(MASK_BITS)


def permission_mask_to_granted_scope(mask: int) -> List[int]:
    """
    Indices of set bits, ascending.
    """
    words = mask_to_words(mask)
    return [bit for bit in range(MASK_BITS) if _test_bit(words, bit)]


def permission_mask_to_granted_quadrants(mask: int) -> List[str]:
    """
    Names of granted quadrants in canonical order.
    """
    words = mask_to_words(mask)
    return [name for name, word in zip(QUADRANTS, words) if int(word) != 0]


def build_permission_mask_from_quadrants(scopes: Iterable[str]) -> int:
    """
    Mask granting every bit of each named quadrant.

    Unknown names are ignored.
    """
    words = np.zeros(4, dtype=np.uint64)
    for scope in scopes:
        if scope in QUADRANTS:
            words[QUADRANTS.index(scope)] = np.uint64(_WORD_MASK)
    return words_to_mask(words)
