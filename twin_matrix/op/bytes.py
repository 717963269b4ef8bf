# twin_matrix/op/bytes.py
# WO-00: Canonical byte encodings (clamped uint8 signature, half-up rounding)
# Shared by the encoder (WO-02), the matrix codec (WO-03) and hashing

from __future__ import annotations
import math
import numbers
from typing import Any, Iterable
import numpy as np


SIGNATURE_DIMS = 256


def round_half_up(x):
    """
    Round to nearest integer, ties toward +inf.

    Contract (WO-00):
    Every integer rounding in the pipeline uses floor(x + 0.5), so that
    127.5 -> 128 and 0.5 -> 1 (Python's round() would give 128 and 0).

    Args:
        x: float or numpy array

    Returns:
        int for scalars, float ndarray for arrays
    """
    if isinstance(x, np.ndarray):
        return np.floor(x + 0.5)
    return int(math.floor(x + 0.5))


def clamp_byte(value: Any) -> int:
    """
    Clamp one value into a byte.

    Contract (WO-00):
    - not a real number (str, bool, None, ...) -> 0, no coercion
    - non-finite -> 0
    - negative -> 0
    - above 255 -> 255 (ints of any size included)
    - otherwise half-up rounded

    Never raises.
    """
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (numbers.Real, np.integer, np.floating)):
        return 0
    if isinstance(value, (int, np.integer)):
        v = int(value)
        return 0 if v < 0 else min(v, 255)
    try:
        x = float(value)
    except OverflowError:
        return 255 if value > 0 else 0
    if not math.isfinite(x) or x < 0:
        return 0
    if x > 255:
        return 255
    return round_half_up(x)


def clamp_signature(values: Iterable[Any] | None) -> np.ndarray:
    """
    Clamp a signature-like sequence into exactly 256 bytes.

    Entries past index 255 are ignored; missing entries are 0.

    Returns:
        np.ndarray: shape (256,), dtype uint8
    """
    out = np.zeros(SIGNATURE_DIMS, dtype=np.uint8)
    if values is None:
        return out
    for i, v in enumerate(values):
        if i >= SIGNATURE_DIMS:
            break
        out[i] = clamp_byte(v)
    return out


def to_bytes_signature(values: Iterable[Any] | None) -> bytes:
    """
    Serialize a signature as 256 raw bytes, index order.

    Args:
        values: sequence of numbers (any length)

    Returns:
        bytes: exactly 256 bytes
    """
    return clamp_signature(values).tobytes(order="C")


def from_bytes_signature(b: bytes) -> list[int]:
    """
    Decode 256 raw bytes back to a signature.

    Args:
        b: exactly 256 bytes

    Returns:
        list[int]: 256 values in [0, 255]

    Raises:
        ValueError: if len(b) != 256
    """
    if len(b) != SIGNATURE_DIMS:
        raise ValueError(f"Expected {SIGNATURE_DIMS} bytes, got {len(b)}")
    return np.frombuffer(b, dtype=np.uint8).astype(np.int64).tolist()
