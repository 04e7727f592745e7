"""Solver configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass
class SolverConfig:
    # Upper bound on solution length; 30 or more always succeeds on the first phase-1 solution.
    max_length: int = 30
    phase2_max_depth: int = 18
    timeout_sec: float | None = None
    cache_dir: str | None = None
    verbose: bool = False

    def __post_init__(self):
        if not isinstance(self.max_length, int) or self.max_length < 1:
            raise ValueError("max_length must be a positive integer")
        if not isinstance(self.phase2_max_depth, int) or not 1 <= self.phase2_max_depth <= 18:
            raise ValueError("phase2_max_depth must be an integer in range 1..18")
        if self.timeout_sec is not None and (
            not isinstance(self.timeout_sec, (int, float)) or self.timeout_sec <= 0
        ):
            raise ValueError("timeout_sec must be a positive number or null")
        if self.cache_dir is not None:
            self.cache_dir = str(self.cache_dir)
        self.verbose = bool(self.verbose)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SolverConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown solver config keys: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def replace(self, **overrides: Any) -> "SolverConfig":
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SolverConfig(**data)


def load_config(path: str | Path) -> SolverConfig:
    """Load YAML config. The solver section may sit at the top level or under a 'solver' key."""
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    section = raw.get("solver", raw)
    if not isinstance(section, dict):
        raise ValueError(f"'solver' section in {path} must be a mapping")
    return SolverConfig.from_dict(section)
