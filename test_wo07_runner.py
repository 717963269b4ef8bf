#!/usr/bin/env python3
"""
WO-07 Runner + Determinism Tests

Tests:
1. run_identity sections and receipt
2. Baseline failure stops after encode
3. Determinism harness
4. commit_identity through the mock gateway
5. io round-trip and receipt diffing
6. run_wizard script end to end
7. run_wizard --commit through the configured gateway
8. run_wizard reports unreadable inputs per file
"""

import json
import tempfile
from pathlib import Path

import pytest
from twin_matrix.gateway import MockChainGateway, TokenNotFoundError
from twin_matrix.io.load_data import load_wizard, load_words
from twin_matrix.io.save import write_json, write_jsonl
from twin_matrix.op.encoder import BASELINE_MISSING_FIELDS, encode_identity_vector
from twin_matrix.op.matrix import decode_matrix_to_signature
from twin_matrix.op.receipts import aggregate
from twin_matrix.runner import check_determinism, commit_identity, run_identity
from scripts import check_receipts, run_wizard

OWNER = "0x1234567890abcdef1234567890abcdef12345678"

WIZARD = {
    "profile": {"ageBin": "35–44", "gender": "Female", "education": "Master", "livingType": "Suburban"},
    "sportSetup": {"frequency": "5+ / week", "duration": "60–90 min", "dailySteps": "12,000+"},
    "sportTwin": {"sportRanking": ["Yoga & Pilates", "Climbing", "Running"], "outfitStyle": ["Outdoor Technical"], "brands": ["Lululemon"]},
    "soul": {"bars": [
        {"id": "BAR_OUTCOME_EXPERIENCE", "value": 80},
        {"id": "BAR_CONTROL_RELEASE", "value": 20},
        {"id": "BAR_SOLO_GROUP", "value": None},
        {"id": "BAR_PASSIVE_ACTIVE", "value": 100},
    ]},
}

INCOMPLETE = dict(WIZARD, sportSetup={"frequency": "5+ / week", "duration": "", "dailySteps": ""})


def test_run_identity():
    """Test run_identity sections and receipt."""
    print("Testing run_identity...")

    out, rc = run_identity("w1", WIZARD)
    assert out.ok
    assert len(out.words) == 8
    assert sorted(rc.sections) == ["encode", "matrix", "summary"]
    assert sorted(rc.hashes) == ["encode", "matrix", "summary"]
    assert rc.notes == {"status": "ok"}
    assert len(rc.table_hash) == 64
    assert rc.sections["matrix"]["round_trip_ok"] is True
    assert rc.sections["matrix"]["words"] == out.words

    record = aggregate(rc)
    json.dumps(record)
    assert record["env"]["numpy_version"]

    print("  ✓ run_identity")


def test_baseline_failure_stops():
    """Test a baseline failure stops the run after encode."""
    print("Testing baseline failure...")

    out, rc = run_identity("w2", INCOMPLETE)
    assert not out.ok and out.words is None
    assert list(rc.sections) == ["encode"]
    assert rc.notes["status"] == BASELINE_MISSING_FIELDS
    assert rc.sections["encode"]["missing_fields"] == ["duration", "dailySteps"]

    print("  ✓ Baseline failure stops after encode")


def test_determinism():
    """Test determinism harness."""
    print("Testing determinism harness...")

    det = check_determinism("w1", WIZARD, runs=3)
    assert det["deterministic"] and det["diffs"] == []
    assert det["runs"] == 3

    det = check_determinism("w2", INCOMPLETE)
    assert det["deterministic"], "failed runs are deterministic too"

    with pytest.raises(ValueError):
        check_determinism("w1", WIZARD, runs=1)

    _, rc_a = run_identity("w1", WIZARD)
    _, rc_b = run_identity("w1", WIZARD)
    assert rc_a.table_hash == rc_b.table_hash

    print("  ✓ Determinism")


def test_commit_identity():
    """Test commit_identity mints once and versions each write."""
    print("Testing commit_identity...")

    gw = MockChainGateway()
    expected = encode_identity_vector(WIZARD).signature

    first = commit_identity(gw, OWNER, WIZARD)
    assert first["ok"] and first["error"] is None
    assert (first["token_id"], first["version"]) == (1, 1)
    assert first["signature"] == expected, "read-back equals encoded signature"

    second = commit_identity(gw, OWNER, WIZARD)
    assert (second["token_id"], second["version"]) == (1, 2)

    gw2 = MockChainGateway()
    failed = commit_identity(gw2, OWNER, INCOMPLETE)
    assert not failed["ok"]
    assert failed["error"]["code"] == BASELINE_MISSING_FIELDS
    with pytest.raises(TokenNotFoundError):
        gw2.token_id_of(OWNER)

    print("  ✓ commit_identity")


def test_io_and_receipt_diff(tmp_path):
    """Test io + receipt diff."""
    print("Testing io + receipt diff...")

    wizard_path = tmp_path / "in" / "w1.json"
    write_json(str(wizard_path), WIZARD)
    state = load_wizard(str(wizard_path))
    assert encode_identity_vector(state).signature == encode_identity_vector(WIZARD).signature

    out, rc = run_identity("w1", state)
    words_path = tmp_path / "words.json"
    write_json(str(words_path), {"matrix": out.words})
    assert load_words(str(words_path)) == out.words

    record = aggregate(rc)
    a_path = tmp_path / "a.jsonl"
    b_path = tmp_path / "b.jsonl"
    write_jsonl(str(a_path), [record])
    other = json.loads(json.dumps(record))
    other["env"]["platform"] = "elsewhere"
    write_jsonl(str(b_path), [other])

    a = check_receipts.load_jsonl(str(a_path))
    b = check_receipts.load_jsonl(str(b_path))
    assert check_receipts.compare(a, b) == {}, "env ignored by default"
    assert "env.platform" in check_receipts.compare(a, b, with_env=True)["w1"][0]
    assert check_receipts.main([str(a_path), str(b_path)]) == 0

    other["table_hash"] = "0" * 64
    write_jsonl(str(b_path), [other])
    diffs = check_receipts.compare(a, check_receipts.load_jsonl(str(b_path)))
    assert diffs["w1"][0] == "table_hash differs"
    assert check_receipts.main([str(a_path), str(b_path)]) == 1

    assert check_receipts.compare(a, []) == {"w1": ["missing in B"]}

    print("  ✓ io + receipt diff")


def test_run_wizard_script(tmp_path):
    """Test run_wizard end to end: encode, batch failure, decode."""
    print("Testing run_wizard script...")

    good = tmp_path / "good.json"
    bad = tmp_path / "bad.json"
    write_json(str(good), WIZARD)
    write_json(str(bad), INCOMPLETE)
    out_dir = tmp_path / "out"

    assert run_wizard.main([str(good), "--out", str(out_dir)]) == 0
    sig_file = out_dir / "signatures" / "good.json"
    saved = json.loads(sig_file.read_text(encoding="utf-8"))
    assert saved["signature"] == encode_identity_vector(WIZARD).signature
    assert len(saved["matrix"]) == 8
    receipts = check_receipts.load_jsonl(str(out_dir / "receipts" / "WO-07_run.jsonl"))
    assert receipts[0]["run_id"] == "good"
    assert receipts[0]["determinism"]["deterministic"] is True

    assert run_wizard.main([str(good), str(bad), "--out", str(out_dir)]) == 1
    assert not (out_dir / "signatures" / "bad.json").exists()

    assert run_wizard.main(["--decode", str(sig_file)]) == 0
    broken = tmp_path / "broken.json"
    write_json(str(broken), ["0x12"] * 8)
    assert run_wizard.main(["--decode", str(broken)]) == 1

    print("  ✓ run_wizard script")


def test_run_wizard_commit(tmp_path):
    """Test that --commit writes every encoded wizard through the configured gateway."""
    print("Testing run_wizard --commit...")

    first = tmp_path / "first.json"
    second = tmp_path / "second.json"
    write_json(str(first), WIZARD)
    write_json(str(second), dict(WIZARD, profile={"gender": "Male"}))
    config = tmp_path / "twin.yaml"
    config.write_text(f"gateway: mock\ntoken_owner: '{OWNER}'\n", encoding="utf-8")
    out_dir = tmp_path / "out"

    argv = [str(first), str(second), "--out", str(out_dir), "--config", str(config), "--commit"]
    assert run_wizard.main(argv) == 0
    receipts = check_receipts.load_jsonl(str(out_dir / "receipts" / "WO-07_run.jsonl"))
    assert [r["commit"] for r in receipts] == [
        {"token_id": 1, "version": 1},
        {"token_id": 1, "version": 2},
    ]

    # without --commit nothing is written on chain
    assert run_wizard.main([str(first), "--out", str(out_dir)]) == 0
    receipts = check_receipts.load_jsonl(str(out_dir / "receipts" / "WO-07_run.jsonl"))
    assert "commit" not in receipts[0]

    gw = MockChainGateway()
    failures = run_wizard.encode_files([str(first), str(second)], str(out_dir), 2, gateway=gw, owner=OWNER)
    assert failures == 0
    token_id = gw.token_id_of(OWNER)
    assert gw.get_version_count(token_id) == 2
    assert decode_matrix_to_signature(gw.get_matrix_at_version(token_id, 1)) == \
        encode_identity_vector(WIZARD).signature

    print("  ✓ run_wizard --commit")


def test_run_wizard_bad_inputs(tmp_path):
    """Test that unreadable inputs are reported per file and the batch keeps going."""
    print("Testing run_wizard bad inputs...")

    good = tmp_path / "good.json"
    write_json(str(good), WIZARD)
    not_json = tmp_path / "not_json.json"
    not_json.write_text("{", encoding="utf-8")
    dup_rank = tmp_path / "dup_rank.json"
    write_json(str(dup_rank), dict(WIZARD, sportTwin={"sportRanking": ["Running", "Running"]}))
    out_dir = tmp_path / "out"

    assert run_wizard.main([str(not_json), str(dup_rank), str(good), "--out", str(out_dir)]) == 1
    assert (out_dir / "signatures" / "good.json").exists(), "later files still run"
    receipts = check_receipts.load_jsonl(str(out_dir / "receipts" / "WO-07_run.jsonl"))
    assert [r["run_id"] for r in receipts] == ["good"]

    no_matrix = tmp_path / "no_matrix.json"
    write_json(str(no_matrix), {"words": []})
    scalar = tmp_path / "scalar.json"
    write_json(str(scalar), 42)
    with pytest.raises(ValueError):
        load_words(str(no_matrix))
    assert run_wizard.decode_files([str(no_matrix), str(scalar), str(not_json)]) == 3

    print("  ✓ run_wizard bad inputs")


def run_tests():
    print("\n" + "="*60)
    print("WO-07 Runner + Determinism Tests")
    print("="*60 + "\n")

    test_run_identity()
    test_baseline_failure_stops()
    test_determinism()
    test_commit_identity()
    with tempfile.TemporaryDirectory() as tmp:
        test_io_and_receipt_diff(Path(tmp))
    with tempfile.TemporaryDirectory() as tmp:
        test_run_wizard_script(Path(tmp))
    with tempfile.TemporaryDirectory() as tmp:
        test_run_wizard_commit(Path(tmp))
    with tempfile.TemporaryDirectory() as tmp:
        test_run_wizard_bad_inputs(Path(tmp))

    print("\n" + "="*60)
    print("✓ All WO-07 tests passed")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_tests()
