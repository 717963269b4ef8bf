#!/usr/bin/env python3
# twin_matrix/op/encoder.py
# WO-02: Identity vector encoder (WizardState -> 256D signature)

"""
Contract (WO-02):
Deterministic, pure encode(state) -> (signature, error).

Frozen order (no reordering):
baseline gate -> zeros(256) -> ordinal -> one-hot -> rank-weighted ->
multi-hot -> soul bars -> slice L1 (declaration order) -> writable mask ->
clamp + half-up round

Frozen rules:
- Only the three baseline fields are mandatory. Everything else that is
  empty or matches no option contributes nothing (absence, not a zero slot).
- Untouched soul bar (None) leaves both dims at 0; it is not "balanced at 50".
- No whole-vector or per-layer normalization, only the declared slices.
- A slice whose sum is <= 1e-6 is left all zero.
- The scratch buffer is local to one call; the returned list is a fresh copy.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
import numpy as np

from .bytes import SIGNATURE_DIMS, round_half_up
from .hash import hash_signature
from .receipts import EncodeRc
from .registry import (
    CATEGORICAL_FIELDS,
    MULTI_HOT_FIELDS,
    ORDINAL_FIELDS,
    SLICE_NORMS,
    SOUL_BARS,
    SPORTS,
    WRITABLE_DIMS,
    SliceNorm,
)
from twin_matrix.state import WizardState

logger = logging.getLogger(__name__)

BASELINE_MISSING_FIELDS = "BASELINE_MISSING_FIELDS"
DENSITY_EPS = 1e-6
SLICE_EPS = 1e-6

WRITABLE_MASK = np.zeros(SIGNATURE_DIMS, dtype=bool)
WRITABLE_MASK[sorted(WRITABLE_DIMS)] = True

_FIELD_GETTERS: Dict[str, Callable[[WizardState], Any]] = {
    "profile.ageBin": lambda s: s.profile.age_bin,
    "profile.gender": lambda s: s.profile.gender,
    "profile.heightBin": lambda s: s.profile.height_bin,
    "profile.weightBin": lambda s: s.profile.weight_bin,
    "profile.education": lambda s: s.profile.education,
    "profile.income": lambda s: s.profile.income,
    "profile.maritalStatus": lambda s: s.profile.marital_status,
    "profile.occupation": lambda s: s.profile.occupation,
    "profile.livingType": lambda s: s.profile.living_type,
    "sportSetup.frequency": lambda s: s.sport_setup.frequency,
    "sportSetup.duration": lambda s: s.sport_setup.duration,
    "sportSetup.dailySteps": lambda s: s.sport_setup.daily_steps,
    "sportTwin.sportRanking": lambda s: s.sport_twin.sport_ranking,
    "sportTwin.outfitStyle": lambda s: s.sport_twin.outfit_style,
    "sportTwin.brands": lambda s: s.sport_twin.brands,
}


@dataclass(frozen=True)
class EncoderError:
    code: str
    message: str
    missing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EncodeResult:
    """
    Discriminated encode result: exactly one of signature / error is set.
    """
    signature: Optional[List[int]]
    error: Optional[EncoderError]

    @property
    def ok(self) -> bool:
        return self.error is None


StateLike = Union[WizardState, Mapping[str, Any]]


def _coerce(state: StateLike) -> WizardState:
    if isinstance(state, WizardState):
        return state
    if isinstance(state, Mapping):
        return WizardState.from_dict(state)
    raise TypeError(f"expected WizardState or mapping, got {type(state).__name__}")


def validate_baseline(state: StateLike) -> Optional[EncoderError]:
    """
    Check the three mandatory sport-setup fields.

    Returns:
        EncoderError(BASELINE_MISSING_FIELDS) naming the empty fields in the
        order frequency, duration, dailySteps; None if all are present
    """
    setup = _coerce(state).sport_setup
    missing = tuple(
        name for name, value in (
            ("frequency", setup.frequency),
            ("duration", setup.duration),
            ("dailySteps", setup.daily_steps),
        )
        if not value
    )
    if missing:
        return EncoderError(
            code=BASELINE_MISSING_FIELDS,
            message=f"Missing sport baseline fields: {', '.join(missing)}",
            missing=missing,
        )
    return None


def _apply_slice_l1(vec: np.ndarray, norm: SliceNorm) -> None:
    """
    Rescale vec[start..end] in place so it sums to 255 (+- rounding).

    Slices summing to <= 1e-6 are left untouched (all zero).
    """
    window = vec[norm.start:norm.end + 1]
    total = float(window.sum())
    if total <= SLICE_EPS:
        logger.debug("slice %s empty, left at zero", norm.name)
        return
    vec[norm.start:norm.end + 1] = round_half_up(window / total * 255.0)


def _encode_vector(state: WizardState, unmatched: List[str]) -> np.ndarray:
    vec = np.zeros(SIGNATURE_DIMS, dtype=np.float64)

    def _miss(source: str, value: str) -> None:
        if value:
            unmatched.append(f"{source}={value}")
            logger.debug("no option for %s=%r, skipped", source, value)

    # Ordinal summaries
    for o in ORDINAL_FIELDS:
        value = _FIELD_GETTERS[o.source](state)
        if value in o.values:
            k, n = o.values.index(value), len(o.values)
            vec[o.dim_id] = 255 if n <= 1 else round_half_up(k / (n - 1) * 255)

    # One-hot
    for f in CATEGORICAL_FIELDS:
        value = _FIELD_GETTERS[f.source](state)
        dim = f.dim_for(value)
        if dim is None:
            _miss(f.source, value)
            continue
        vec[dim] = 255

    # Rank-weighted: rank 0 always gets 255, weight strictly decreases
    ranking = _FIELD_GETTERS[SPORTS.source](state)
    n = len(ranking)
    for rank, sport in enumerate(ranking):
        dim = SPORTS.dim_for(sport)
        if dim is None:
            _miss(SPORTS.source, sport)
            continue
        vec[dim] = round_half_up((n - rank) / n * 255)

    # Multi-hot
    for f in MULTI_HOT_FIELDS:
        for value in _FIELD_GETTERS[f.source](state):
            dim = f.dim_for(value)
            if dim is None:
                _miss(f.source, value)
                continue
            vec[dim] = 255

    # Soul bars
    for bar in SOUL_BARS:
        v = state.soul.value_of(bar.bar_id)
        if v is None:
            continue
        t = v / 100.0
        vec[bar.left_dim] = round_half_up(255 * (1 - t))
        vec[bar.right_dim] = round_half_up(255 * t)
    for bar_id in state.soul.ignored:
        _miss("soul.bars", bar_id)

    for norm in SLICE_NORMS:
        _apply_slice_l1(vec, norm)

    vec[~WRITABLE_MASK] = 0
    return np.clip(round_half_up(vec), 0, 255).astype(np.int64)


def encode_identity_vector(state: StateLike) -> EncodeResult:
    """
    Encode a wizard snapshot into a 256D identity vector.

    Args:
        state: WizardState or UI-shaped mapping (never mutated)

    Returns:
        EncodeResult with a fresh list of 256 ints in [0,255], or with
        error BASELINE_MISSING_FIELDS and signature None
    """
    result, _ = encode_with_receipt(state)
    return result


def encode_with_receipt(state: StateLike) -> Tuple[EncodeResult, EncodeRc]:
    """
    Encode and return the WO-02 receipt alongside the result.
    """
    state = _coerce(state)
    err = validate_baseline(state)
    if err is not None:
        logger.debug("baseline gate failed: %s", err.message)
        rc = EncodeRc(
            ok=False,
            error_code=err.code,
            missing_fields=list(err.missing),
            unmatched=[],
            written_dims=0,
            slice_sums={},
            density=0,
            signature_hash=None,
        )
        return EncodeResult(signature=None, error=err), rc

    unmatched: List[str] = []
    arr = _encode_vector(state, unmatched)
    signature = arr.tolist()

    rc = EncodeRc(
        ok=True,
        error_code=None,
        missing_fields=[],
        unmatched=unmatched,
        written_dims=int(np.count_nonzero(arr)),
        slice_sums={n.name: int(arr[n.start:n.end + 1].sum()) for n in SLICE_NORMS},
        density=compute_density(signature),
        signature_hash=hash_signature(signature),
    )
    return EncodeResult(signature=signature, error=None), rc


def compute_density(signature) -> int:
    """
    Percentage of the 256 dims holding a value > 1e-6 (half-up rounded).
    """
    nonzero = sum(1 for v in signature if v > DENSITY_EPS)
    return round_half_up(nonzero / SIGNATURE_DIMS * 100)
