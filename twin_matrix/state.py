# twin_matrix/state.py
# WO-02: Wizard state snapshot consumed by the encoder

"""
Immutable per-step snapshot of the wizard answers.

The UI hands the encoder a camelCase JSON object; WizardState.from_dict
accepts that shape (or snake_case keys) and to_dict returns it. Only the
data-model invariants are enforced here (ranking distinct and <= 10 entries,
soul values integers in [0,100]). Soul bars whose id is not registered are
dropped by from_dict and listed in Soul.ignored. Whether categorical strings
match an option list is the encoder's business: unknown values are absent,
not errors.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from twin_matrix.op.registry import SOUL_BAR_IDS

logger = logging.getLogger(__name__)

MAX_SPORT_RANKING = 10


class WizardStateError(ValueError):
    """Snapshot violates a data-model invariant."""


def _pick(d: Mapping[str, Any], camel: str, snake: str, default: Any = "") -> Any:
    if camel in d:
        return d[camel]
    return d.get(snake, default)


def _text(v: Any) -> str:
    return "" if v is None else str(v)


@dataclass(frozen=True)
class Profile:
    age_bin: str = ""
    gender: str = ""
    height_bin: str = ""
    weight_bin: str = ""
    education: str = ""
    income: str = ""
    marital_status: str = ""
    occupation: str = ""
    living_type: str = ""
    username: str = ""

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Profile":
        return cls(
            age_bin=_text(_pick(d, "ageBin", "age_bin")),
            gender=_text(d.get("gender", "")),
            height_bin=_text(_pick(d, "heightBin", "height_bin")),
            weight_bin=_text(_pick(d, "weightBin", "weight_bin")),
            education=_text(d.get("education", "")),
            income=_text(d.get("income", "")),
            marital_status=_text(_pick(d, "maritalStatus", "marital_status")),
            occupation=_text(d.get("occupation", "")),
            living_type=_text(_pick(d, "livingType", "living_type")),
            username=_text(d.get("username", "")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "username": self.username,
            "ageBin": self.age_bin,
            "gender": self.gender,
            "heightBin": self.height_bin,
            "weightBin": self.weight_bin,
            "education": self.education,
            "income": self.income,
            "maritalStatus": self.marital_status,
            "occupation": self.occupation,
            "livingType": self.living_type,
        }


@dataclass(frozen=True)
class SportSetup:
    frequency: str = ""
    duration: str = ""
    daily_steps: str = ""

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SportSetup":
        return cls(
            frequency=_text(d.get("frequency", "")),
            duration=_text(d.get("duration", "")),
            daily_steps=_text(_pick(d, "dailySteps", "daily_steps")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"frequency": self.frequency, "duration": self.duration, "dailySteps": self.daily_steps}


@dataclass(frozen=True)
class SportTwin:
    sport_ranking: Tuple[str, ...] = ()
    outfit_style: Tuple[str, ...] = ()
    brands: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from callers, store tuples
        object.__setattr__(self, "sport_ranking", tuple(self.sport_ranking))
        object.__setattr__(self, "outfit_style", tuple(self.outfit_style))
        object.__setattr__(self, "brands", tuple(self.brands))
        if len(self.sport_ranking) > MAX_SPORT_RANKING:
            raise WizardStateError(
                f"sportRanking has {len(self.sport_ranking)} entries, max {MAX_SPORT_RANKING}"
            )
        if len(set(self.sport_ranking)) != len(self.sport_ranking):
            raise WizardStateError(f"sportRanking has duplicate entries: {list(self.sport_ranking)}")

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SportTwin":
        return cls(
            sport_ranking=tuple(_pick(d, "sportRanking", "sport_ranking", ()) or ()),
            outfit_style=tuple(_pick(d, "outfitStyle", "outfit_style", ()) or ()),
            brands=tuple(d.get("brands", ()) or ()),
        )

    def to_dict(self) -> Dict[str, list]:
        return {
            "sportRanking": list(self.sport_ranking),
            "outfitStyle": list(self.outfit_style),
            "brands": list(self.brands),
        }


@dataclass(frozen=True)
class SoulBar:
    """None = untouched slider; otherwise integer position 0 (left) .. 100 (right)."""
    id: str
    value: Optional[int] = None

    def __post_init__(self):
        if self.id not in SOUL_BAR_IDS:
            raise WizardStateError(f"unknown soul bar id {self.id!r}")
        v = self.value
        if v is None:
            return
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise WizardStateError(f"soul bar {self.id} value must be a number or None, got {v!r}")
        if not math.isfinite(v) or not 0 <= v <= 100:
            raise WizardStateError(f"soul bar {self.id} value {v} outside [0,100]")
        if v != int(v):
            raise WizardStateError(f"soul bar {self.id} value {v} is not an integer")
        # 30.0 from JSON is stored as 30
        object.__setattr__(self, "value", int(v))


def default_soul_bars() -> Tuple[SoulBar, ...]:
    return tuple(SoulBar(bar_id, None) for bar_id in SOUL_BAR_IDS)


@dataclass(frozen=True)
class Soul:
    """
    The four soul bars.

    ignored lists bars from the UI payload that have no registered id (or no
    canonical slot); they carry no signal and are kept only for receipts.
    """
    bars: Tuple[SoulBar, ...] = field(default_factory=default_soul_bars)
    ignored: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, "bars", tuple(self.bars))
        object.__setattr__(self, "ignored", tuple(self.ignored))
        ids = [b.id for b in self.bars]
        if len(set(ids)) != len(ids):
            raise WizardStateError(f"duplicate soul bar ids: {ids}")

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Soul":
        raw = d.get("bars")
        if raw is None:
            return cls()
        bars = []
        ignored = []
        for i, b in enumerate(raw):
            if isinstance(b, Mapping):
                bar_id, value = b.get("id"), b.get("value")
            elif i < len(SOUL_BAR_IDS):
                # bare values are taken in canonical bar order
                bar_id, value = SOUL_BAR_IDS[i], b
            else:
                bar_id, value = f"#{i}", b
            if bar_id not in SOUL_BAR_IDS:
                logger.debug("soul bar %r has no registered id, skipped", bar_id)
                ignored.append(str(bar_id))
                continue
            bars.append(SoulBar(bar_id, value))
        return cls(bars=tuple(bars), ignored=tuple(ignored))

    def value_of(self, bar_id: str) -> Optional[int]:
        for b in self.bars:
            if b.id == bar_id:
                return b.value
        return None

    def to_dict(self) -> Dict[str, list]:
        return {"bars": [{"id": b.id, "value": b.value} for b in self.bars]}


def default_soul() -> Soul:
    return Soul()


@dataclass(frozen=True)
class WizardState:
    profile: Profile = field(default_factory=Profile)
    sport_setup: SportSetup = field(default_factory=SportSetup)
    sport_twin: SportTwin = field(default_factory=SportTwin)
    soul: Soul = field(default_factory=Soul)
    signature: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "signature", tuple(self.signature))

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "WizardState":
        """
        Build a snapshot from the UI's wizard-state object.

        Missing sub-objects default to empty answers.

        Raises:
            WizardStateError: invariant violation
        """
        return cls(
            profile=Profile.from_dict(d.get("profile") or {}),
            sport_setup=SportSetup.from_dict(_pick(d, "sportSetup", "sport_setup", None) or {}),
            sport_twin=SportTwin.from_dict(_pick(d, "sportTwin", "sport_twin", None) or {}),
            soul=Soul.from_dict(d.get("soul") or {}),
            signature=tuple(d.get("signature") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.to_dict(),
            "sportSetup": self.sport_setup.to_dict(),
            "sportTwin": self.sport_twin.to_dict(),
            "soul": self.soul.to_dict(),
            "signature": list(self.signature),
        }

    def with_signature(self, signature) -> "WizardState":
        return replace(self, signature=tuple(signature))
