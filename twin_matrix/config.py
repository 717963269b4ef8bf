# twin_matrix/config.py
# WO-06: Run configuration (YAML file + environment overrides)

from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional
import yaml

ENV_PREFIX = "TWIN_MATRIX_"


@dataclass(frozen=True)
class Config:
    """
    Composition-root settings, resolved once per process.

    gateway: chain gateway backend name (see twin_matrix.gateway.GATEWAYS)
    out_dir: where scripts write receipts and signatures
    determinism_runs: how many times the runner repeats each wizard
    token_owner: owner address used when committing through the gateway
    """
    gateway: str = "mock"
    out_dir: str = "out"
    determinism_runs: int = 2
    token_owner: str = "0x1234567890abcdef1234567890abcdef12345678"


def _from_mapping(base: Config, data: Dict[str, Any]) -> Config:
    known = {f.name: f for f in fields(Config)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"unknown config keys: {unknown}")
    updates = {}
    for key, value in data.items():
        if known[key].type in ("int", int):
            value = int(value)
        else:
            value = str(value)
        updates[key] = value
    return replace(base, **updates)


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Config:
    """
    Load configuration.

    Precedence (low -> high): defaults, YAML file, TWIN_MATRIX_* env vars.

    Args:
        path: optional YAML file with top-level keys matching Config fields
        environ: environment mapping (defaults to os.environ)

    Raises:
        ValueError: unknown keys or non-mapping YAML document
    """
    cfg = Config()
    if path is not None:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"config {path} must be a mapping, got {type(data).__name__}")
        cfg = _from_mapping(cfg, data)

    env = os.environ if environ is None else environ
    overrides = {}
    for f in fields(Config):
        key = ENV_PREFIX + f.name.upper()
        if key in env:
            overrides[f.name] = env[key]
    if overrides:
        cfg = _from_mapping(cfg, overrides)
    return cfg
