#!/usr/bin/env python3
# scripts/run_wizard.py
# WO-07: Batch wizard encoder with determinism harness

"""
Encode wizard snapshots (JSON) into signatures and on-chain words.

For each input file:
- run_identity() twice, compare section hashes + table_hash
- write <out_dir>/signatures/<name>.json  {"signature": [...], "matrix": [...]}
- append the run receipt to <out_dir>/receipts/WO-07_run.jsonl

With --commit, each encoded wizard is also written through the gateway named
in the config (minting for config.token_owner on first write); the token id
and version land in the receipt.

With --decode, each input is a words file instead and the decoded signature
is printed with its summary.

Exit status 1 if any input could not be loaded, a wizard failed the baseline
gate or its commit, a words file was malformed, or a run was nondeterministic.
"""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from twin_matrix.config import load_config
from twin_matrix.gateway import ChainGateway, GatewayError, make_gateway
from twin_matrix.io.load_data import load_wizard, load_words
from twin_matrix.io.save import write_json, write_jsonl
from twin_matrix.op.matrix import decode_matrix_to_signature
from twin_matrix.op.receipts import aggregate
from twin_matrix.op.summary import summarize
from twin_matrix.runner import check_determinism, commit_identity, run_identity


def encode_files(paths: List[str], out_dir: str, runs: int,
                 gateway: Optional[ChainGateway] = None, owner: str = "") -> int:
    receipts: List[Dict[str, Any]] = []
    failures = 0

    for path in paths:
        name = Path(path).stem
        try:
            state = load_wizard(path)
        except ValueError as e:
            # bad JSON or WizardStateError
            print(f"  ✗ {name}: {e}")
            failures += 1
            continue
        output, run_rc = run_identity(name, state)
        det = check_determinism(name, state, runs=runs)

        record = aggregate(run_rc)
        record["determinism"] = det
        receipts.append(record)

        if not det["deterministic"]:
            print(f"  ✗ {name}: NONDETERMINISTIC_EXECUTION in {det['diffs']}")
            failures += 1
            continue
        if not output.ok:
            print(f"  ✗ {name}: {output.result.error.code} ({output.result.error.message})")
            failures += 1
            continue

        summary = run_rc.sections["summary"]
        write_json(
            os.path.join(out_dir, "signatures", f"{name}.json"),
            {"signature": output.result.signature, "matrix": output.words},
        )
        print(f"  ✓ {name}: density={summary['density']}% quadrant={summary['quadrant']['label']}")

        if gateway is not None:
            try:
                commit = commit_identity(gateway, owner, state)
            except GatewayError as e:
                print(f"  ✗ {name}: commit failed ({type(e).__name__}: {e})")
                failures += 1
                continue
            record["commit"] = {"token_id": commit["token_id"], "version": commit["version"]}
            print(f"    committed token={commit['token_id']} version={commit['version']}")

    write_jsonl(os.path.join(out_dir, "receipts", "WO-07_run.jsonl"), receipts)
    return failures


def decode_files(paths: List[str]) -> int:
    failures = 0
    for path in paths:
        name = Path(path).stem
        try:
            signature = decode_matrix_to_signature(load_words(path))
        except ValueError as e:
            # MalformedWordError, bad JSON, or not a words file
            print(f"  ✗ {name}: {e}")
            failures += 1
            continue
        summary = aggregate(summarize(signature))
        print(f"  ✓ {name}: density={summary['density']}% layer_mix={summary['layer_mix']}")
    return failures


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Encode wizard snapshots into Twin Matrix signatures")
    parser.add_argument("inputs", nargs="+", help="wizard JSON files (or words files with --decode)")
    parser.add_argument("--decode", action="store_true", help="decode on-chain words files instead")
    parser.add_argument("--commit", action="store_true",
                        help="write each encoded wizard through the configured gateway")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--out", default=None, help="output directory (overrides config)")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    cfg = load_config(args.config)
    out_dir = args.out or cfg.out_dir

    print("=" * 60)
    print(f"Twin Matrix {'decode' if args.decode else 'encode'}: {len(args.inputs)} file(s)")
    print("=" * 60)

    if args.decode:
        failures = decode_files(args.inputs)
    else:
        gateway = make_gateway(cfg) if args.commit else None
        failures = encode_files(args.inputs, out_dir, cfg.determinism_runs,
                                gateway=gateway, owner=cfg.token_owner)

    print("=" * 60)
    print(f"{len(args.inputs) - failures} ok, {failures} failed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
