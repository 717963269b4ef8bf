#!/usr/bin/env python3
# twin_matrix/runner.py
# WO-07: Wizard runner + determinism harness

"""
Contract (WO-07):
Frozen order (no reordering):
encode(02) -> matrix words(03) -> round-trip proof(03) -> summary(05)

Fail-fast: a baseline failure stops the run after encode; no words are
produced and nothing may be committed.

Determinism: run twice per wizard, compare every section hash and the
table_hash. Any difference is NONDETERMINISTIC_EXECUTION.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from twin_matrix.gateway import ChainGateway, TokenNotFoundError
from twin_matrix.op.encoder import EncodeResult, StateLike, encode_with_receipt
from twin_matrix.op.hash import hash_bytes, hash_json
from twin_matrix.op.matrix import decode_matrix_to_signature, matrix_receipt
from twin_matrix.op.receipts import RunRc, aggregate, env_fingerprint
from twin_matrix.op.summary import summarize

logger = logging.getLogger(__name__)


@dataclass
class RunOutput:
    result: EncodeResult
    words: Optional[List[str]]

    @property
    def ok(self) -> bool:
        return self.result.ok


def _table_hash(hashes: Dict[str, str]) -> str:
    return hash_bytes("".join(f"{k}:{hashes[k]}" for k in sorted(hashes)).encode())


def run_identity(run_id: str, state: StateLike) -> Tuple[RunOutput, RunRc]:
    """
    Run one wizard snapshot through the full pipeline.

    Args:
        run_id: label carried into the receipt
        state: WizardState or UI-shaped mapping

    Returns:
        (RunOutput, RunRc); RunOutput.words is None when encode failed
    """
    sections: Dict[str, Any] = {}
    hashes: Dict[str, str] = {}

    # ========================================================================
    # Step 1: encode (WO-02)
    # ========================================================================
    result, encode_rc = encode_with_receipt(state)
    sections["encode"] = aggregate(encode_rc)
    hashes["encode"] = hash_json(sections["encode"])

    words = None
    if result.ok:
        # ====================================================================
        # Step 2: words + round-trip proof (WO-03)
        # ====================================================================
        words, matrix_rc = matrix_receipt(result.signature)
        if not matrix_rc.round_trip_ok:
            raise ValueError(f"{run_id}: matrix round-trip failed")
        sections["matrix"] = aggregate(matrix_rc)
        hashes["matrix"] = hash_json(sections["matrix"])

        # ====================================================================
        # Step 3: summary (WO-05)
        # ====================================================================
        sections["summary"] = aggregate(summarize(result.signature))
        hashes["summary"] = hash_json(sections["summary"])
    else:
        logger.info("%s: %s", run_id, result.error.message)

    run_rc = RunRc(
        run_id=run_id,
        env=env_fingerprint(),
        sections=sections,
        hashes=hashes,
        table_hash=_table_hash(hashes),
        notes={"status": "ok" if result.ok else result.error.code},
    )
    return RunOutput(result=result, words=words), run_rc


def check_determinism(run_id: str, state: StateLike, runs: int = 2) -> Dict[str, Any]:
    """
    Repeat run_identity and compare hashes.

    Returns:
        {"run_id", "runs", "deterministic", "diffs": [section, ...], "table_hash"}
    """
    if runs < 2:
        raise ValueError("determinism check needs at least 2 runs")
    first_out, first = run_identity(run_id, state)
    diffs: List[str] = []
    for _ in range(runs - 1):
        out, rc = run_identity(run_id, state)
        for section in sorted(set(first.hashes) | set(rc.hashes)):
            if first.hashes.get(section) != rc.hashes.get(section) and section not in diffs:
                diffs.append(section)
        if out.words != first_out.words and "words" not in diffs:
            diffs.append("words")
    if diffs:
        logger.warning("%s: NONDETERMINISTIC_EXECUTION in %s", run_id, diffs)
    return {
        "run_id": run_id,
        "runs": runs,
        "deterministic": not diffs,
        "diffs": diffs,
        "table_hash": first.table_hash,
    }


def commit_identity(gateway: ChainGateway, owner: str, state: StateLike) -> Dict[str, Any]:
    """
    Encode and write the words for owner, minting the token on first commit.

    A baseline failure returns the error and touches nothing on chain.

    Returns:
        {"ok", "token_id", "version", "error", "signature"}; signature is the
        one read back from the gateway after the write
    """
    output, _ = run_identity(owner, state)
    if not output.ok:
        return {"ok": False, "token_id": None, "version": None,
                "error": {"code": output.result.error.code, "message": output.result.error.message},
                "signature": None}

    try:
        token_id = gateway.token_id_of(owner)
    except TokenNotFoundError:
        token_id = gateway.mint(owner)

    version = gateway.update_matrix(owner, token_id, output.words)
    read_back = decode_matrix_to_signature(gateway.get_matrix_at_version(token_id, version))
    return {"ok": True, "token_id": token_id, "version": version, "error": None, "signature": read_back}
