#!/usr/bin/env python3
# scripts/check_receipts.py
# WO-07: Receipt comparison tool for wizard runs

"""
Compare two WO-07 receipt files run by run.

Records are matched by run_id. The env section is ignored unless
--with-env is given (it legitimately differs across machines); a table_hash
mismatch is reported first, then the field-level differences.

Exit codes:
    0: receipts match
    1: receipts differ
"""

from __future__ import annotations
import argparse
import json
import sys
from typing import Any, Dict, List


def load_jsonl(path: str) -> List[dict]:
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def deep_diff(a: Any, b: Any, path: str = "") -> List[str]:
    """
    Recursively list differences between two JSON values.
    """
    if isinstance(a, dict) and isinstance(b, dict):
        diffs = []
        for key in sorted(set(a) | set(b)):
            new_path = f"{path}.{key}" if path else key
            if key not in b:
                diffs.append(f"{new_path}: only in A")
            elif key not in a:
                diffs.append(f"{new_path}: only in B")
            else:
                diffs.extend(deep_diff(a[key], b[key], new_path))
        return diffs
    if isinstance(a, list) and isinstance(b, list) and len(a) == len(b):
        diffs = []
        for i, (x, y) in enumerate(zip(a, b)):
            diffs.extend(deep_diff(x, y, f"{path}[{i}]"))
        return diffs
    return [] if a == b else [f"{path}: {a!r} != {b!r}"]


def compare(records_a: List[dict], records_b: List[dict], with_env: bool = False) -> Dict[str, List[str]]:
    """
    Returns:
        run_id -> list of differences (runs missing on one side included)
    """
    by_a = {r["run_id"]: r for r in records_a}
    by_b = {r["run_id"]: r for r in records_b}
    out: Dict[str, List[str]] = {}
    for run_id in sorted(set(by_a) | set(by_b)):
        if run_id not in by_b:
            out[run_id] = ["missing in B"]
            continue
        if run_id not in by_a:
            out[run_id] = ["missing in A"]
            continue
        ra, rb = dict(by_a[run_id]), dict(by_b[run_id])
        if not with_env:
            ra.pop("env", None)
            rb.pop("env", None)
        diffs = []
        if ra.get("table_hash") != rb.get("table_hash"):
            diffs.append("table_hash differs")
        diffs.extend(deep_diff(ra, rb))
        if diffs:
            out[run_id] = diffs
    return out


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Diff two wizard receipt JSONL files")
    parser.add_argument("file_a")
    parser.add_argument("file_b")
    parser.add_argument("--with-env", action="store_true", help="also compare env fingerprints")
    args = parser.parse_args(argv)

    print("Comparing receipts:")
    print(f"  A: {args.file_a}")
    print(f"  B: {args.file_b}")

    result = compare(load_jsonl(args.file_a), load_jsonl(args.file_b), args.with_env)
    if not result:
        print("✓ RECEIPTS_MATCH")
        return 0

    for run_id, diffs in result.items():
        print(f"\n✗ {run_id}:")
        for diff in diffs[:10]:
            print(f"  {diff}")
        if len(diffs) > 10:
            print(f"  ... and {len(diffs) - 10} more differences")
    print("\n✗ RECEIPTS_DIFFER")
    return 1


if __name__ == "__main__":
    sys.exit(main())
