"""Significance labels and the final sex-linked candidate table."""

from __future__ import annotations

import logging
from typing import List

import numpy as np
import pandas as pd

from .config import DEFAULTS, FEMALE, MALE, SEXES

logger = logging.getLogger(__name__)


def comparison_columns(value: str = DEFAULTS["value_column"]) -> List[str]:
    return [
        "Scaffold",
        f"{value}_{MALE}",
        f"{value}_{FEMALE}",
        f"sem_{MALE}",
        f"sem_{FEMALE}",
        "p.value",
        "method",
        "Significant",
    ]


COMPARISON_COLUMNS = comparison_columns()


def _fmt_alpha(alpha: float) -> str:
    return np.format_float_positional(float(alpha), trim="-")


def significance_labels(alpha: float = DEFAULTS["alpha"]):
    """Return the (significant, not significant) label pair for ``alpha``."""
    a = _fmt_alpha(alpha)
    return f"p-value < {a}", f"p-value >= {a}"


def label_significance(pvalues: pd.Series, alpha: float = DEFAULTS["alpha"]) -> pd.Series:
    sig, not_sig = significance_labels(alpha)
    p = pd.to_numeric(pvalues, errors="coerce")
    return pd.Series(np.where(p < alpha, sig, not_sig), index=pvalues.index, name="Significant")


def build_comparison(
    wide: pd.DataFrame,
    tests: pd.DataFrame,
    alpha: float = DEFAULTS["alpha"],
    value: str = DEFAULTS["value_column"],
) -> pd.DataFrame:
    """Join per-sex summaries with test results and label significance."""
    merged = wide.merge(tests, on="Scaffold", how="inner")
    merged = merged.rename(columns={f"mean_{sex}": f"{value}_{sex}" for sex in SEXES})
    merged["Significant"] = label_significance(merged["p.value"], alpha)
    extra = [c for c in ("q.value",) if c in merged.columns]
    out = merged[comparison_columns(value) + extra].sort_values("Scaffold").reset_index(drop=True)
    n_sig = int((merged["p.value"] < alpha).sum())
    logger.info("%d of %d scaffold(s) differ between sexes at p < %s", n_sig, len(out), _fmt_alpha(alpha))
    return out


def candidate_columns(
    heterogametic_sex: str = DEFAULTS["heterogametic_sex"],
    value: str = DEFAULTS["value_column"],
) -> List[str]:
    other = MALE if heterogametic_sex == FEMALE else FEMALE
    return [
        "Scaffold",
        f"{value}_{heterogametic_sex}",
        f"{value}_{other}",
        f"sem_{heterogametic_sex}",
        f"sem_{other}",
        "p.value",
        "method",
    ]


def select_candidates(
    comparison: pd.DataFrame,
    heterogametic_sex: str = DEFAULTS["heterogametic_sex"],
    linkage_threshold: float = DEFAULTS["linkage_threshold"],
    alpha: float = DEFAULTS["alpha"],
    value: str = DEFAULTS["value_column"],
) -> pd.DataFrame:
    """
    Keep scaffolds where the sexes differ (p <= alpha) and the heterogametic
    sex is nearly homozygous (mean heterozygosity below ``linkage_threshold``).

    Female is heterogametic in ZW systems, Male in XY systems.
    """
    if heterogametic_sex not in SEXES:
        raise ValueError(f"heterogametic_sex must be one of {SEXES}, got {heterogametic_sex!r}")
    het_mean = pd.to_numeric(comparison[f"{value}_{heterogametic_sex}"], errors="coerce")
    p = pd.to_numeric(comparison["p.value"], errors="coerce")
    keep = (p <= alpha) & (het_mean < linkage_threshold)
    out = comparison.loc[keep, candidate_columns(heterogametic_sex, value)].reset_index(drop=True)
    logger.info(
        "%d candidate sex-linked scaffold(s) (%s heterogametic, mean heterozygosity < %s)",
        len(out), heterogametic_sex, linkage_threshold,
    )
    return out
