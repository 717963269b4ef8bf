# twin_matrix/io/save.py
# WO-00: Minimal JSON writer for signatures, words and receipts

from __future__ import annotations
import json
import os
from typing import Any


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_json(path: str, obj: Any) -> None:
    """
    Write object as JSON to file.

    Creates parent directories if needed.
    Uses compact JSON (no whitespace) for determinism.

    Args:
        path: output file path
        obj: JSON-serializable object
    """
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, separators=(",", ":"), ensure_ascii=False)


def write_jsonl(path: str, records: list[Any]) -> None:
    """
    Write list of objects as JSONL (one JSON object per line).

    Used for receipts output.

    Args:
        path: output file path
        records: list of JSON-serializable objects
    """
    _ensure_parent(path)
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record, separators=(",", ":"), ensure_ascii=False) + "\n")
