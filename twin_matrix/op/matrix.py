#!/usr/bin/env python3
# twin_matrix/op/matrix.py
# WO-03: On-chain matrix codec (signature <-> bytes32[8])

"""
Contract (WO-03):
Wire format of TwinMatrixSBT.updateMatrix(uint256, bytes32[8]) and
getLatestMatrix / getMatrixAtVersion -> bytes32[8].

Frozen layout:
- word i holds signature bytes [32*i, 32*i + 31] in index order
- word text form: "0x" + 64 lowercase hex chars (byte 32*i first)

Encode is total: clamp each entry to a byte, pad short input with 0,
ignore entries past 255, always 8 words, never raises.
Decode is strict: a word that is not exactly 64 hex chars (or 32 bytes)
raises MalformedWordError; it is never defaulted to zero.

Law: decode(encode(v)) == clamp(v) padded/truncated to 256.
"""

from __future__ import annotations
import logging
import re
from typing import Any, Iterable, List, Sequence, Tuple

from .bytes import SIGNATURE_DIMS, clamp_byte, clamp_signature
from .hash import hash_bytes
from .receipts import MatrixRc

logger = logging.getLogger(__name__)

WORD_BYTES = 32
WORD_COUNT = SIGNATURE_DIMS // WORD_BYTES  # 8
WORD_HEX_CHARS = WORD_BYTES * 2            # 64

_HEX_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class MalformedWordError(ValueError):
    """On-chain word is not a well-formed 32-byte value."""

    def __init__(self, index: int, word: Any, reason: str):
        self.index = index
        self.word = word
        self.reason = reason
        super().__init__(f"matrix word {index} malformed: {reason} ({word!r})")


def encode_signature_to_matrix(signature: Iterable[Any] | None) -> List[str]:
    """
    Pack a signature into 8 hex words.

    Args:
        signature: sequence of numbers, any length, any values

    Returns:
        list of exactly 8 "0x"-prefixed 64-char lowercase hex strings
    """
    raw = clamp_signature(signature).tobytes()
    return ["0x" + raw[w * WORD_BYTES:(w + 1) * WORD_BYTES].hex() for w in range(WORD_COUNT)]


def _word_bytes(index: int, word: Any) -> bytes:
    if isinstance(word, (bytes, bytearray, memoryview)):
        b = bytes(word)
        if len(b) != WORD_BYTES:
            raise MalformedWordError(index, word, f"expected {WORD_BYTES} bytes, got {len(b)}")
        return b
    if not isinstance(word, str):
        raise MalformedWordError(index, word, f"expected str or bytes, got {type(word).__name__}")
    body = word[2:] if word[:2] in ("0x", "0X") else word
    if len(body) != WORD_HEX_CHARS:
        raise MalformedWordError(index, word, f"expected {WORD_HEX_CHARS} hex chars, got {len(body)}")
    if not _HEX_RE.match(body):
        raise MalformedWordError(index, word, "non-hex characters")
    return bytes.fromhex(body)


def words_to_bytes(words: Sequence[Any]) -> bytes:
    """
    Concatenate decoded words into raw bytes (at most 8 words are read).

    Raises:
        MalformedWordError: first malformed word, by index
    """
    out = bytearray()
    for i, word in enumerate(list(words)[:WORD_COUNT]):
        out += _word_bytes(i, word)
    return bytes(out)


def bytes_to_words(b: bytes) -> List[str]:
    """Split up to 256 raw bytes into 8 hex words, zero padded."""
    return encode_signature_to_matrix(list(b[:SIGNATURE_DIMS]))


def decode_matrix_to_signature(words: Sequence[Any]) -> List[int]:
    """
    Unpack words read from chain into a 256-entry signature.

    Fewer than 8 words are accepted and the tail is zero padded; words past
    the eighth are ignored.

    Args:
        words: hex strings (with or without 0x, any case) or 32-byte values

    Returns:
        list of 256 ints in [0,255]

    Raises:
        MalformedWordError: a word is not exactly 32 bytes / 64 hex chars
    """
    try:
        raw = words_to_bytes(words)
    except MalformedWordError as e:
        logger.debug("decode failed at word %d: %s", e.index, e.reason)
        raise
    out = list(raw)
    out.extend([0] * (SIGNATURE_DIMS - len(out)))
    return out


def matrix_receipt(signature: Sequence[Any] | None) -> Tuple[List[str], MatrixRc]:
    """
    Encode and prove the round-trip law for one signature.

    Returns:
        (words, MatrixRc)
    """
    values = list(signature or [])
    words = encode_signature_to_matrix(values)
    expected = clamp_signature(values).tolist()
    decoded = decode_matrix_to_signature(words)

    clamped = sum(1 for v in values[:SIGNATURE_DIMS] if not _is_exact_byte(v))
    clamped += max(0, len(values) - SIGNATURE_DIMS)

    rc = MatrixRc(
        words=words,
        words_hash=hash_bytes(words_to_bytes(words)),
        clamped_count=clamped,
        round_trip_ok=decoded == expected,
    )
    return words, rc


def _is_exact_byte(v: Any) -> bool:
    return clamp_byte(v) == v
