# twin_matrix/op/hash.py
# WO-00: BLAKE3 hashing helpers

from __future__ import annotations
import json
from typing import Any
from blake3 import blake3
from .bytes import to_bytes_signature


def hash_bytes(b: bytes) -> str:
    """
    Hash bytes with BLAKE3, return hex digest (64 hex chars = 256 bits).
    """
    return blake3(b).hexdigest()


def hash_signature(sig) -> str:
    """
    Hash a signature over its clamped 256-byte serialization.

    Two signatures hash equal iff they clamp to the same bytes.
    """
    return hash_bytes(to_bytes_signature(sig))


def hash_json(obj: Any) -> str:
    """BLAKE3 over compact, key-sorted JSON."""
    return hash_bytes(json.dumps(obj, sort_keys=True, separators=(",", ":")).encode())
