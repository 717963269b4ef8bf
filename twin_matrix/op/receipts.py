# twin_matrix/op/receipts.py
# WO-00: Receipts kernel and environment fingerprinting
# Receipts are deterministic (no timestamps) so two runs can be diffed byte-for-byte

from __future__ import annotations
import platform
import sys
import json
from dataclasses import dataclass, asdict, field
from importlib.metadata import PackageNotFoundError, version
from typing import Any
import numpy as np
from .hash import hash_bytes


@dataclass
class EnvRc:
    """
    Environment fingerprint.

    Recorded alongside every run so that a hash mismatch between two
    machines can be told apart from a mismatch within one machine.
    """
    platform: str
    endian: str
    py_version: str
    numpy_version: str
    blake3_version: str
    build_flags_hash: str


def _blake3_version() -> str:
    try:
        return version("blake3")
    except PackageNotFoundError:
        return "unknown"


def env_fingerprint() -> EnvRc:
    """
    Capture environment fingerprint for determinism checking.

    Returns:
        EnvRc: environment receipt
    """
    build_info = {
        "py_version": sys.version,
        "implementation": platform.python_implementation(),
        "version_info": list(sys.version_info),
    }
    flags = hash_bytes(json.dumps(build_info, sort_keys=True).encode())

    return EnvRc(
        platform=platform.platform(),
        endian=sys.byteorder,
        py_version=platform.python_version(),
        numpy_version=np.__version__,
        blake3_version=_blake3_version(),
        build_flags_hash=flags,
    )


@dataclass
class EncodeRc:
    """
    Identity vector encode receipt (WO-02).

    - ok: False iff baseline validation failed
    - missing_fields: baseline fields that were empty
    - unmatched: "source=value" for non-empty answers matching no option
    - written_dims: count of non-zero dims in the final signature
    - slice_sums: slice name -> sum after L1 normalization
    - signature_hash: BLAKE3 over the 256 signature bytes (None when not ok)
    """
    ok: bool
    error_code: str | None
    missing_fields: list[str]
    unmatched: list[str]
    written_dims: int
    slice_sums: dict[str, int]
    density: int
    signature_hash: str | None


@dataclass
class MatrixRc:
    """
    On-chain matrix receipt (WO-03).

    - words_hash: BLAKE3 over the 8 concatenated 32-byte words
    - clamped_count: input entries changed by clamping (out of range,
      fractional, non-finite, or past index 255)
    - round_trip_ok: decode(encode(sig)) == clamp(sig)
    """
    words: list[str]
    words_hash: str
    clamped_count: int
    round_trip_ok: bool


@dataclass
class SummaryRc:
    """
    Display summary receipt (WO-05).
    """
    density: int
    layer_mix: dict[str, int]
    quadrant: dict[str, Any]
    top_dims: list[dict[str, Any]]


@dataclass
class RunRc:
    """
    Root receipt container for one wizard run (WO-07).

    table_hash = BLAKE3(concat(sorted(section + ':' + hash)))
    """
    run_id: str
    env: EnvRc
    sections: dict[str, Any]
    hashes: dict[str, str]
    table_hash: str
    notes: dict[str, Any] = field(default_factory=dict)


def aggregate(run: Any) -> Any:
    """
    Convert nested receipts (dataclasses or dicts) to a JSON-serializable form.

    Args:
        run: RunRc, any receipt dataclass, or dict containing receipts

    Returns:
        plain dicts/lists/scalars
    """
    def to_plain(x: Any) -> Any:
        """Recursively convert dataclasses to dicts."""
        if hasattr(x, "__dataclass_fields__"):
            return {k: to_plain(v) for k, v in asdict(x).items()}
        if isinstance(x, dict):
            return {str(k): to_plain(v) for k, v in x.items()}
        if isinstance(x, (list, tuple)):
            return [to_plain(v) for v in x]
        if isinstance(x, np.integer):
            return int(x)
        if isinstance(x, np.floating):
            return float(x)
        return x

    return to_plain(run)
