"""Run configuration for the sex-linkage pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Mapping, Optional

MALE = "Male"
FEMALE = "Female"
SEXES = (MALE, FEMALE)

DEFAULTS = {
    "min_loci": 100,             # records need strictly more loci than this
    "alpha": 0.001,
    "heterogametic_sex": FEMALE,  # ZW system; use MALE for XY datasets
    "linkage_threshold": 0.05,   # max mean heterozygosity of the heterogametic sex
    "value_column": "PO.het",
    "fdr_method": None,          # e.g. "fdr_bh" to add a q.value column
    "max_workers": 1,
    "strict_sample_size": False,
}

_FDR_METHODS = {"fdr_bh", "fdr_by", "bonferroni", "holm"}
VALUE_COLUMNS = ("PO.het", "PE.het")


@dataclass(frozen=True)
class PipelineConfig:
    min_loci: int = DEFAULTS["min_loci"]
    alpha: float = DEFAULTS["alpha"]
    heterogametic_sex: str = DEFAULTS["heterogametic_sex"]
    linkage_threshold: float = DEFAULTS["linkage_threshold"]
    value_column: str = DEFAULTS["value_column"]
    fdr_method: Optional[str] = DEFAULTS["fdr_method"]
    max_workers: int = DEFAULTS["max_workers"]
    strict_sample_size: bool = DEFAULTS["strict_sample_size"]

    def __post_init__(self):
        if self.heterogametic_sex not in SEXES:
            raise ValueError(
                f"heterogametic_sex must be one of {SEXES}, got {self.heterogametic_sex!r}"
            )
        if not (0.0 < float(self.alpha) < 1.0):
            raise ValueError(f"alpha must lie in (0, 1), got {self.alpha}")
        if not math.isfinite(float(self.linkage_threshold)):
            raise ValueError("linkage_threshold must be finite")
        if self.value_column not in VALUE_COLUMNS:
            raise ValueError(f"value_column must be one of {VALUE_COLUMNS}, got {self.value_column!r}")
        if int(self.max_workers) < 1:
            raise ValueError("max_workers must be a positive integer")
        if self.fdr_method is not None and self.fdr_method not in _FDR_METHODS:
            raise ValueError(
                f"unknown fdr_method {self.fdr_method!r}; expected one of {sorted(_FDR_METHODS)}"
            )

    @property
    def homogametic_sex(self) -> str:
        return MALE if self.heterogametic_sex == FEMALE else FEMALE


def get_pipeline_ctx(overrides: Optional[Mapping[str, object]] = None) -> PipelineConfig:
    """Merge ``overrides`` into the defaults, ignoring keys set to ``None``."""
    cfg = DEFAULTS.copy()
    if overrides:
        known = {f.name for f in fields(PipelineConfig)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"unknown configuration keys: {sorted(unknown)}")
        cfg.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineConfig(**cfg)
