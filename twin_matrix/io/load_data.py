# twin_matrix/io/load_data.py
# WO-00: Minimal JSON loaders for wizard snapshots and on-chain words

from __future__ import annotations
import json
from typing import Any, List

from twin_matrix.state import WizardState


def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_wizard(path: str) -> WizardState:
    """
    Load a wizard snapshot from JSON.

    Expected format (UI shape):
    {
        "profile": {"ageBin": "25–34", "gender": "Male", ...},
        "sportSetup": {"frequency": ..., "duration": ..., "dailySteps": ...},
        "sportTwin": {"sportRanking": [...], "outfitStyle": [...], "brands": [...]},
        "soul": {"bars": [{"id": "BAR_OUTCOME_EXPERIENCE", "value": 30}, ...]}
    }

    Raises:
        WizardStateError: snapshot violates a data-model invariant
    """
    return WizardState.from_dict(load_json(path))


def load_words(path: str) -> List[Any]:
    """
    Load matrix words: a JSON array, or an object with a "matrix" key.
    """
    data = load_json(path)
    if isinstance(data, dict):
        if "matrix" not in data:
            raise ValueError(f"{path}: object has no \"matrix\" key")
        data = data["matrix"]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of words, got {type(data).__name__}")
    return data
