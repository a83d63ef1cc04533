"""Per-scaffold two-sample tests between the sexes."""

from __future__ import annotations

import logging
import math
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multitest import multipletests
from tqdm import tqdm

from .config import DEFAULTS, FEMALE, MALE
from .errors import ExcludedScaffoldWarning, InsufficientSampleSize, SchemaMismatch

logger = logging.getLogger(__name__)

WELCH_METHOD = "Welch Two Sample t-test"
RESULT_COLUMNS = ["Scaffold", "statistic", "df", "p.value", "method"]

# skip reasons
TOO_FEW = "fewer than 2 observations in a sex"
NO_VARIANCE = "no variance in either sex"


def welch_test(male: np.ndarray, female: np.ndarray) -> Tuple[float, float, float]:
    """Welch t-test of male against female values; returns (t, df, p)."""
    res = stats.ttest_ind(male, female, equal_var=False)
    dof = getattr(res, "df", np.nan)
    return float(res.statistic), float(dof), float(res.pvalue)


def _split_by_sex(sub: pd.DataFrame, value: str) -> Tuple[np.ndarray, np.ndarray]:
    values = pd.to_numeric(sub[value], errors="coerce")
    male = values[sub["Sex"] == MALE].dropna().to_numpy(dtype=float)
    female = values[sub["Sex"] == FEMALE].dropna().to_numpy(dtype=float)
    return male, female


def _test_scaffold(scaffold: str, sub: pd.DataFrame, value: str) -> Dict[str, object]:
    male, female = _split_by_sex(sub, value)
    if male.size < 2 or female.size < 2:
        return {"Scaffold": scaffold, "skip": TOO_FEW, "n_male": male.size, "n_female": female.size}
    t, dof, p = welch_test(male, female)
    if not math.isfinite(p):
        return {"Scaffold": scaffold, "skip": NO_VARIANCE}
    return {"Scaffold": scaffold, "statistic": t, "df": dof, "p.value": p, "method": WELCH_METHOD}


def welch_by_scaffold(
    enriched: pd.DataFrame,
    scaffolds: Optional[Iterable[str]] = None,
    value: str = DEFAULTS["value_column"],
    strict: bool = DEFAULTS["strict_sample_size"],
    max_workers: int = DEFAULTS["max_workers"],
    show_progress: bool = False,
) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Run a Welch t-test of ``value`` between sexes for every scaffold.

    ``scaffolds`` restricts the tests to those scaffolds (the ones that
    survived the summary reshape). Scaffolds that cannot be tested are either
    reported through ``InsufficientSampleSize`` when ``strict`` or skipped;
    skipped scaffolds are returned as ``{scaffold: reason}`` and announced with
    an ``ExcludedScaffoldWarning``.

    Each scaffold is independent, so with ``max_workers > 1`` they are fanned
    out to a thread pool. Results are always returned sorted by scaffold.
    """
    missing = [c for c in ("Scaffold", "Sex", value) if c not in enriched.columns]
    if missing:
        raise SchemaMismatch(f"enriched table is missing columns: {missing}")

    df = enriched
    if scaffolds is not None:
        df = enriched[enriched["Scaffold"].isin(list(scaffolds))]
    groups = list(df.groupby("Scaffold", sort=True))

    results: List[Dict[str, object]] = []
    if max_workers > 1 and len(groups) > 1:
        with ThreadPoolExecutor(max_workers=int(max_workers)) as executor:
            futures = [executor.submit(_test_scaffold, sc, sub, value) for sc, sub in groups]
            iterator = as_completed(futures)
            if show_progress:
                iterator = tqdm(iterator, total=len(futures), desc="Welch per scaffold", unit="scaffold")
            for fut in iterator:
                results.append(fut.result())
    else:
        iterator = groups
        if show_progress:
            iterator = tqdm(groups, desc="Welch per scaffold", unit="scaffold")
        for sc, sub in iterator:
            results.append(_test_scaffold(sc, sub, value))

    results.sort(key=lambda r: r["Scaffold"])
    skipped = {r["Scaffold"]: r["skip"] for r in results if "skip" in r}
    too_few = sorted(sc for sc, why in skipped.items() if why == TOO_FEW)
    if strict and too_few:
        raise InsufficientSampleSize(too_few)

    if skipped:
        detail = "; ".join(f"{sc} ({why})" for sc, why in skipped.items())
        logger.warning("Excluded %d scaffold(s) from testing: %s", len(skipped), detail)
        warnings.warn(
            f"Excluded {len(skipped)} scaffold(s) from the comparison: {detail}",
            ExcludedScaffoldWarning,
            stacklevel=2,
        )

    tested = pd.DataFrame([r for r in results if "skip" not in r], columns=RESULT_COLUMNS)
    logger.info("Tested %d scaffold(s)", len(tested))
    return tested, skipped


def add_qvalues(tests: pd.DataFrame, method: str = "fdr_bh", alpha: float = DEFAULTS["alpha"]) -> pd.DataFrame:
    """Return a copy of ``tests`` with multiple-testing adjusted ``q.value``."""
    out = tests.copy()
    out["q.value"] = np.nan
    mask = pd.to_numeric(out["p.value"], errors="coerce").notna()
    if int(mask.sum()) > 0:
        _, q, _, _ = multipletests(out.loc[mask, "p.value"], alpha=alpha, method=method)
        out.loc[mask, "q.value"] = q
    return out
