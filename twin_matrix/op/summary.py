# twin_matrix/op/summary.py
# WO-05: Read-only signature summaries for preview and on-chain display

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, List, Sequence, Tuple
import numpy as np

from .bytes import clamp_signature, round_half_up
from .encoder import compute_density
from .receipts import SummaryRc
from .registry import LAYER_RANGES, SOUL_DIM_MAP, label_of

QUADRANT_EPS = 0.05
TOP_K = 12


@dataclass(frozen=True)
class SoulQuadrant:
    """
    Position on the outcome/experience (X) x control/release (Y) plane.

    X > 0 leans outcome, Y > 0 leans control.
    """
    x: float
    y: float
    label: str
    missing: bool


def layer_mix(signature: Sequence[int]) -> Dict[str, int]:
    """
    Share of the total value mass per layer, in percent.

    An all-zero signature gives 0 for every layer.
    """
    sig = clamp_signature(signature).astype(np.int64)
    sums = {name: int(sig[lo:hi + 1].sum()) for name, (lo, hi) in LAYER_RANGES.items()}
    total = sum(sums.values()) or 1
    return {name: round_half_up(s / total * 100) for name, s in sums.items()}


def soul_quadrant(signature: Sequence[int]) -> SoulQuadrant:
    sig = clamp_signature(signature).astype(np.int64)
    outcome, experience = SOUL_DIM_MAP["BAR_OUTCOME_EXPERIENCE"]
    control, release = SOUL_DIM_MAP["BAR_CONTROL_RELEASE"]
    a, b, c, d = (int(sig[i]) for i in (outcome, experience, control, release))
    if a == b == c == d == 0:
        return SoulQuadrant(0.0, 0.0, "—", True)

    x = (a - b) / 255
    y = (c - d) / 255
    label = "ON_AXIS"
    if x > QUADRANT_EPS and y > QUADRANT_EPS:
        label = "Q1"
    elif x < -QUADRANT_EPS and y > QUADRANT_EPS:
        label = "Q2"
    elif x < -QUADRANT_EPS and y < -QUADRANT_EPS:
        label = "Q3"
    elif x > QUADRANT_EPS and y < -QUADRANT_EPS:
        label = "Q4"
    return SoulQuadrant(round_half_up(x * 100) / 100, round_half_up(y * 100) / 100, label, False)


def top_dims(signature: Sequence[int], k: int = TOP_K) -> List[Tuple[int, int, str]]:
    """
    Up to k non-zero dims as (dim, value, label), value desc then dim asc.

    Unregistered positions are labelled "dim_<n>".
    """
    sig = clamp_signature(signature)
    nonzero = [(int(v), i) for i, v in enumerate(sig) if v > 0]
    nonzero.sort(key=lambda t: (-t[0], t[1]))
    return [(i, v, label_of(i) or f"dim_{i}") for v, i in nonzero[:k]]


def summarize(signature: Sequence[int], k: int = TOP_K) -> SummaryRc:
    sig = clamp_signature(signature).tolist()
    return SummaryRc(
        density=compute_density(sig),
        layer_mix=layer_mix(sig),
        quadrant=asdict(soul_quadrant(sig)),
        top_dims=[{"dim": d, "value": v, "label": lbl} for d, v, lbl in top_dims(sig, k)],
    )
