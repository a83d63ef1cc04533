"""Per (scaffold, sex) summaries of heterozygosity."""

from __future__ import annotations

import logging
import warnings
from typing import List

import pandas as pd

from . import grouping
from .config import DEFAULTS, SEXES
from .errors import ExcludedScaffoldWarning

logger = logging.getLogger(__name__)

WIDE_COLUMNS = ["Scaffold"] + [f"{stat}_{sex}" for stat in ("mean", "sem") for sex in SEXES]


def summarize(enriched: pd.DataFrame, value: str = DEFAULTS["value_column"]) -> pd.DataFrame:
    """Return one row per (Scaffold, Sex) with ``n``, ``mean`` and ``sem`` of ``value``."""
    return grouping.group_by(enriched, ["Scaffold", "Sex"]).aggregate(
        value,
        {"n": grouping.count, "mean": grouping.mean, "sem": grouping.sem},
    )


def widen(summary: pd.DataFrame) -> pd.DataFrame:
    """
    Pivot the long summary to one row per scaffold with mean/sem columns per sex.

    Scaffolds with any missing wide value are dropped: a sex absent from the
    scaffold, or a sex with a single observation (undefined SEM).
    """
    if summary.empty:
        return pd.DataFrame(columns=WIDE_COLUMNS)
    wide = summary.pivot(index="Scaffold", columns="Sex", values=["mean", "sem"])
    wide.columns = [f"{stat}_{sex}" for stat, sex in wide.columns]
    wide = wide.reindex(columns=WIDE_COLUMNS[1:]).reset_index()

    incomplete = wide[WIDE_COLUMNS[1:]].isna().any(axis=1)
    dropped: List[str] = wide.loc[incomplete, "Scaffold"].astype(str).tolist()
    if dropped:
        logger.warning(
            "%d scaffold(s) lack a mean or SEM for one sex and were dropped: %s",
            len(dropped), ", ".join(dropped),
        )
        warnings.warn(
            f"Dropped {len(dropped)} scaffold(s) without a mean and SEM for both sexes: "
            + ", ".join(dropped),
            ExcludedScaffoldWarning,
            stacklevel=2,
        )
    out = wide.loc[~incomplete, WIDE_COLUMNS].sort_values("Scaffold").reset_index(drop=True)
    logger.info("%d scaffold(s) have summaries for both sexes", len(out))
    return out


def dropped_scaffolds(summary: pd.DataFrame, wide: pd.DataFrame) -> List[str]:
    """Scaffolds present in the long summary but missing from the wide table."""
    return sorted(set(summary["Scaffold"].astype(str)) - set(wide["Scaffold"].astype(str)))


def undersampled_scaffolds(summary: pd.DataFrame, min_n: int = 2) -> List[str]:
    """Scaffolds where a sex that is present has fewer than ``min_n`` observations."""
    if summary.empty:
        return []
    few = summary.loc[pd.to_numeric(summary["n"]) < min_n, "Scaffold"]
    return sorted(set(few.astype(str)))
