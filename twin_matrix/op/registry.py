#!/usr/bin/env python3
# twin_matrix/op/registry.py
# WO-01: Dimension spec registry (256D identity vector layout)

"""
Contract (WO-01):
Single source of truth for which of the 256 positions are writable, which
wizard field feeds each, and which contiguous slices are L1-renormalized.

Quadrant layout:
  physical   0-63
  digital    64-127
  social     128-191
  spiritual  192-255

Frozen rules:
- Every categorical option is an explicit (value, dim_id) pair; list order
  is display order only and never implies a dimension.
- WRITABLE_DIMS = {d.dim_id for d in SPEC_REGISTRY}; nothing else may be
  non-zero in an encoded signature.
- SLICE_NORMS are applied in declaration order.
- Registry defects (duplicate or out-of-range dims) fail at import.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Tuple

Layer = Literal["physical", "digital", "social", "spiritual"]
Encoding = Literal["one-hot", "ordinal", "continuous", "multi-hot", "rank-weighted"]

LAYER_RANGES: Dict[str, Tuple[int, int]] = {
    "physical": (0, 63),
    "digital": (64, 127),
    "social": (128, 191),
    "spiritual": (192, 255),
}


@dataclass(frozen=True)
class DimSpec:
    """One writable dimension."""
    dim_id: int
    label: str
    layer: Layer
    source: str      # dotted path into WizardState, e.g. "profile.ageBin"
    encoding: Encoding


@dataclass(frozen=True)
class SliceNorm:
    """Contiguous inclusive range rescaled so its values sum to 255."""
    start: int
    end: int
    name: str
    type: Literal["L1"] = "L1"

    @property
    def range(self) -> Tuple[int, int]:
        return (self.start, self.end)


@dataclass(frozen=True)
class OptionSpec:
    value: str       # exact UI string (case, punctuation and en-dashes matter)
    dim_id: int
    label: str


@dataclass(frozen=True)
class FieldSpec:
    """A categorical or set-valued wizard field and its option dims."""
    source: str
    layer: Layer
    encoding: Encoding
    options: Tuple[OptionSpec, ...]

    def dim_for(self, value: str) -> Optional[int]:
        for opt in self.options:
            if opt.value == value:
                return opt.dim_id
        return None


@dataclass(frozen=True)
class OrdinalSpec:
    """Single dim holding round(k / (n - 1) * 255) for the k-th of n values."""
    dim_id: int
    label: str
    layer: Layer
    source: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class SoulBarSpec:
    """Bipolar slider mapped to a complementary (left, right) dim pair."""
    bar_id: str
    left_dim: int
    right_dim: int
    layer: Layer
    left_label: str
    right_label: str


def _field(source: str, layer: Layer, encoding: Encoding, pairs: List[Tuple[str, int, str]]) -> FieldSpec:
    return FieldSpec(
        source=source,
        layer=layer,
        encoding=encoding,
        options=tuple(OptionSpec(value=v, dim_id=d, label=lbl) for v, d, lbl in pairs),
    )


# ============================================================================
# Option tables
# ============================================================================

AGE_BINS = ("18–24", "25–34", "35–44", "45+")
WEIGHT_BINS = ("< 55", "55–70", "70–85", "85+")
HEIGHT_BINS = ("< 160", "160–170", "170–180", "180+")

# Physical layer (0-63)
GENDER = _field("profile.gender", "physical", "one-hot", [
    ("Male", 3, "gender_male"),
    ("Female", 4, "gender_female"),
    ("Non-binary", 5, "gender_nonbinary"),
])
AGE = _field("profile.ageBin", "physical", "one-hot", [
    ("18–24", 6, "age_18_24"),
    ("25–34", 7, "age_25_34"),
    ("35–44", 8, "age_35_44"),
    ("45+", 9, "age_45_plus"),
])
WEIGHT = _field("profile.weightBin", "physical", "one-hot", [
    ("< 55", 10, "weight_lt_55"),
    ("55–70", 11, "weight_55_70"),
    ("70–85", 12, "weight_70_85"),
    ("85+", 13, "weight_85_plus"),
])
HEIGHT = _field("profile.heightBin", "physical", "one-hot", [
    ("< 160", 14, "height_lt_160"),
    ("160–170", 15, "height_160_170"),
    ("170–180", 16, "height_170_180"),
    ("180+", 17, "height_180_plus"),
])
DAILY_STEPS = _field("sportSetup.dailySteps", "physical", "one-hot", [
    ("< 3,000", 28, "steps_lt_3k"),
    ("3,000–7,000", 29, "steps_3k_7k"),
    ("7,000–12,000", 30, "steps_7k_12k"),
    ("12,000+", 31, "steps_12k_plus"),
])
SPORTS = _field("sportTwin.sportRanking", "physical", "rank-weighted", [
    ("Running", 32, "sport_running"),
    ("Cycling", 33, "sport_cycling"),
    ("Long-distance Swimming", 34, "sport_swimming"),
    ("Trail / Off-road Running", 35, "sport_trail"),
    ("Strength Training", 36, "sport_strength"),
    ("Yoga & Pilates", 37, "sport_yoga"),
    ("Team Sports", 38, "sport_team"),
    ("Combat Sports", 39, "sport_combat"),
    ("Racquet Sports", 40, "sport_racquet"),
    ("Climbing", 41, "sport_climbing"),
    ("Golf", 42, "sport_golf"),
])
OUTFIT_STYLES = _field("sportTwin.outfitStyle", "physical", "multi-hot", [
    ("Minimal Functional", 50, "style_minimal"),
    ("Streetwear Athletic", 51, "style_streetwear"),
    ("Pro Competition", 52, "style_pro"),
    ("Casual Comfort", 53, "style_casual"),
    ("Premium Athletic", 54, "style_premium"),
    ("Retro Sports", 55, "style_retro"),
    ("Outdoor Technical", 56, "style_outdoor"),
    ("Tight Performance", 57, "style_tight"),
    ("Vivid & Energetic", 58, "style_vivid"),
    ("Brand Centric", 59, "style_brand_centric"),
])

# Digital layer (64-127)
BRANDS = _field("sportTwin.brands", "digital", "multi-hot", [
    ("Nike", 79, "brand_nike"),
    ("Adidas", 80, "brand_adidas"),
    ("Under Armour", 81, "brand_under_armour"),
    ("Lululemon", 82, "brand_lululemon"),
    ("New Balance", 83, "brand_new_balance"),
    ("ASICS", 84, "brand_asics"),
    ("Puma", 85, "brand_puma"),
    ("Reebok", 86, "brand_reebok"),
    ("On", 87, "brand_on"),
    ("Hoka", 88, "brand_hoka"),
])

# Social layer (128-191); dim 139 is reserved and never writable
EDUCATION = _field("profile.education", "social", "one-hot", [
    ("High School", 128, "edu_high_school"),
    ("Bachelor", 129, "edu_bachelors"),
    ("Master", 130, "edu_masters"),
    ("Doctorate", 131, "edu_doctorate"),
    ("Other", 132, "edu_other"),
    ("Prefer not to say", 133, "edu_pfnts"),
])
INCOME = _field("profile.income", "social", "one-hot", [
    ("< $30K", 134, "inc_lt_30k"),
    ("$30K–$60K", 135, "inc_30k_60k"),
    ("$60K–$100K", 136, "inc_60k_100k"),
    ("$100K+", 137, "inc_100k_plus"),
    ("Prefer not to say", 138, "inc_pfnts"),
])
MARITAL_STATUS = _field("profile.maritalStatus", "social", "one-hot", [
    ("Single", 140, "rel_single"),
    ("Married", 141, "rel_married"),
    ("Divorced", 142, "rel_divorced"),
    ("Other", 143, "rel_other"),
])
LIVING_TYPE = _field("profile.livingType", "social", "one-hot", [
    ("Urban", 145, "living_urban"),
    ("Suburban", 146, "living_suburban"),
    ("Rural", 147, "living_rural"),
])
OCCUPATION = _field("profile.occupation", "social", "one-hot", [
    ("Student", 160, "occ_student"),
    ("Employee", 161, "occ_employee"),
    ("Self-employed", 162, "occ_self_employed"),
    ("Freelancer", 163, "occ_freelancer"),
    ("Retired", 164, "occ_retired"),
    ("Other", 165, "occ_other"),
])

# Spiritual layer (192-255); frequency + duration form the activity slice
FREQUENCY = _field("sportSetup.frequency", "spiritual", "one-hot", [
    ("1–2x / week", 192, "freq_1_2"),
    ("3–4x / week", 193, "freq_3_4"),
    ("5+ / week", 194, "freq_5_plus"),
    ("Occasionally", 195, "freq_occasional"),
])
DURATION = _field("sportSetup.duration", "spiritual", "one-hot", [
    ("< 30 min", 196, "dur_lt_30"),
    ("30–60 min", 197, "dur_30_60"),
    ("60–90 min", 198, "dur_60_90"),
    ("90+ min", 199, "dur_90_plus"),
])

# Write order used by the encoder for single-valued fields
CATEGORICAL_FIELDS: Tuple[FieldSpec, ...] = (
    AGE, GENDER, WEIGHT, HEIGHT,
    FREQUENCY, DURATION, DAILY_STEPS,
    EDUCATION, INCOME, MARITAL_STATUS, LIVING_TYPE, OCCUPATION,
)
MULTI_HOT_FIELDS: Tuple[FieldSpec, ...] = (OUTFIT_STYLES, BRANDS)

ORDINAL_FIELDS: Tuple[OrdinalSpec, ...] = (
    OrdinalSpec(0, "height_ordinal", "physical", "profile.heightBin", HEIGHT_BINS),
    OrdinalSpec(1, "weight_ordinal", "physical", "profile.weightBin", WEIGHT_BINS),
    OrdinalSpec(2, "age_ordinal", "physical", "profile.ageBin", AGE_BINS),
)

SOUL_BARS: Tuple[SoulBarSpec, ...] = (
    SoulBarSpec("BAR_OUTCOME_EXPERIENCE", 206, 207, "spiritual", "soul_outcome", "soul_experience"),
    SoulBarSpec("BAR_CONTROL_RELEASE", 208, 209, "spiritual", "soul_control", "soul_release"),
    SoulBarSpec("BAR_SOLO_GROUP", 155, 156, "social", "soc_solo", "soc_group"),
    SoulBarSpec("BAR_PASSIVE_ACTIVE", 110, 111, "digital", "dg_passive", "dg_active"),
)
SOUL_BAR_IDS: Tuple[str, ...] = tuple(b.bar_id for b in SOUL_BARS)
SOUL_DIM_MAP: Dict[str, Tuple[int, int]] = {b.bar_id: (b.left_dim, b.right_dim) for b in SOUL_BARS}


# ============================================================================
# Derived registry
# ============================================================================

def _build_registry() -> List[DimSpec]:
    specs: List[DimSpec] = []
    for o in ORDINAL_FIELDS:
        specs.append(DimSpec(o.dim_id, o.label, o.layer, o.source, "ordinal"))
    for f in CATEGORICAL_FIELDS + (SPORTS,) + MULTI_HOT_FIELDS:
        for opt in f.options:
            specs.append(DimSpec(opt.dim_id, opt.label, f.layer, f.source, f.encoding))
    for b in SOUL_BARS:
        specs.append(DimSpec(b.left_dim, b.left_label, b.layer, f"soul.{b.bar_id}.left", "continuous"))
        specs.append(DimSpec(b.right_dim, b.right_label, b.layer, f"soul.{b.bar_id}.right", "continuous"))
    specs.sort(key=lambda s: s.dim_id)
    return specs


SPEC_REGISTRY: List[DimSpec] = _build_registry()

WRITABLE_DIMS: frozenset = frozenset(s.dim_id for s in SPEC_REGISTRY)

SLICE_NORMS: List[SliceNorm] = [
    SliceNorm(192, 199, "activity_baseline"),
    SliceNorm(79, 88, "brand_preference"),
]

DIM_LABELS: Dict[int, str] = {s.dim_id: s.label for s in SPEC_REGISTRY}


def check_registry(specs: List[DimSpec], slices: List[SliceNorm]) -> None:
    """
    Verify registry invariants.

    Raises:
        ValueError: duplicate dim_id, dim outside [0,255], dim outside its
            layer's quadrant, or a slice outside [0,255] / inverted
    """
    seen = set()
    for s in specs:
        if not 0 <= s.dim_id <= 255:
            raise ValueError(f"dim_id {s.dim_id} ({s.label}) outside [0,255]")
        if s.dim_id in seen:
            raise ValueError(f"duplicate dim_id {s.dim_id} ({s.label})")
        seen.add(s.dim_id)
        lo, hi = LAYER_RANGES[s.layer]
        if not lo <= s.dim_id <= hi:
            raise ValueError(f"dim_id {s.dim_id} ({s.label}) outside {s.layer} quadrant [{lo},{hi}]")
    for n in slices:
        if not 0 <= n.start <= n.end <= 255:
            raise ValueError(f"slice {n.name} range {n.range} outside [0,255]")


check_registry(SPEC_REGISTRY, SLICE_NORMS)


def label_of(dim_id: int) -> Optional[str]:
    """Label of a writable dim, None for unwritable positions."""
    return DIM_LABELS.get(dim_id)


def dims_for(source: str) -> List[int]:
    """All dim ids fed by a WizardState field, ascending."""
    return [s.dim_id for s in SPEC_REGISTRY if s.source == source or s.source.startswith(source + ".")]


def layer_of(dim_id: int) -> str:
    """Quadrant name for any position 0-255."""
    for name, (lo, hi) in LAYER_RANGES.items():
        if lo <= dim_id <= hi:
            return name
    raise ValueError(f"dim_id {dim_id} outside [0,255]")
