#!/usr/bin/env python3
"""
WO-04 Permission Mask Tests

Tests:
1. Physical-only mask (2**64 - 1)
2. binary256 rendering (bit 255 first)
3. Granted scope / quadrants
4. build_permission_mask_from_quadrants
5. Word split round-trip
6. Out-of-range masks rejected
"""

import numpy as np
import pytest
from twin_matrix.op.mask import (
    QUADRANTS,
    build_permission_mask_from_quadrants,
    mask_to_words,
    permission_mask_to_binary256,
    permission_mask_to_granted_quadrants,
    permission_mask_to_granted_scope,
    words_to_mask,
)

PHYSICAL = (1 << 64) - 1


def test_physical_only():
    """Test physical-only mask."""
    print("Testing physical-only mask...")

    assert permission_mask_to_granted_quadrants(PHYSICAL) == ["Physical"]
    assert permission_mask_to_granted_scope(PHYSICAL) == list(range(64))

    print("  ✓ Physical-only mask")


def test_binary256():
    """Test binary256 renders bit 255 first."""
    print("Testing binary256...")

    s = permission_mask_to_binary256(PHYSICAL)
    assert len(s) == 256
    assert s == "0" * 192 + "1" * 64

    assert permission_mask_to_binary256(0) == "0" * 256
    top = permission_mask_to_binary256(1 << 255)
    assert top[0] == "1" and top[1:] == "0" * 255

    print("  ✓ binary256")


def test_scope_and_quadrants():
    """Test scope and quadrants."""
    print("Testing scope and quadrants...")

    mask = (1 << 3) | (1 << 130) | (1 << 255)
    assert permission_mask_to_granted_scope(mask) == [3, 130, 255]
    assert permission_mask_to_granted_quadrants(mask) == ["Physical", "Social", "Spiritual"]

    assert permission_mask_to_granted_scope(0) == []
    assert permission_mask_to_granted_quadrants(0) == []

    # one bit is enough to grant its quadrant
    assert permission_mask_to_granted_quadrants(1 << 64) == ["Digital"]
    assert permission_mask_to_granted_quadrants(1 << 127) == ["Digital"]

    print("  ✓ Scope and quadrants")


def test_build_from_quadrants():
    """Test build from quadrants."""
    print("Testing build from quadrants...")

    assert build_permission_mask_from_quadrants(["Physical"]) == PHYSICAL
    assert build_permission_mask_from_quadrants(QUADRANTS) == (1 << 256) - 1
    assert build_permission_mask_from_quadrants([]) == 0
    assert build_permission_mask_from_quadrants(["Astral", "physical"]) == 0

    social = build_permission_mask_from_quadrants(["Social"])
    assert permission_mask_to_granted_scope(social) == list(range(128, 192))

    for names in (["Digital"], ["Spiritual", "Physical"], ["Social", "Digital", "Spiritual"]):
        mask = build_permission_mask_from_quadrants(names)
        got = permission_mask_to_granted_quadrants(mask)
        assert got == [q for q in QUADRANTS if q in names], f"{names} -> {got}"

    print("  ✓ Build from quadrants")


def test_word_split():
    """Test uint64 word split."""
    print("Testing uint64 word split...")

    mask = (0xDEADBEEF << 64) | 0x1 | (1 << 200)
    words = mask_to_words(mask)
    assert words.dtype == np.uint64 and words.shape == (4,)
    assert int(words[0]) == 1 and int(words[1]) == 0xDEADBEEF
    assert int(words[3]) == 1 << 8
    assert words_to_mask(words) == mask

    print("  ✓ Word split")


def test_invalid_masks():
    """Test invalid masks."""
    print("Testing invalid masks...")

    with pytest.raises(ValueError):
        permission_mask_to_granted_scope(1 << 256)
    with pytest.raises(ValueError):
        permission_mask_to_binary256(-1)
    with pytest.raises(TypeError):
        permission_mask_to_granted_quadrants("0xff")
    with pytest.raises(TypeError):
        permission_mask_to_granted_scope(True)

    print("  ✓ Invalid masks rejected")


def run_tests():
    print("\n" + "="*60)
    print("WO-04 Permission Mask Tests")
    print("="*60 + "\n")

    test_physical_only()
    test_binary256()
    test_scope_and_quadrants()
    test_build_from_quadrants()
    test_word_split()
    test_invalid_masks()

    print("\n" + "="*60)
    print("✓ All WO-04 tests passed")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_tests()
