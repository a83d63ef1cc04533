"""Join homozygosity records with sex labels and derive heterozygosity ratios."""

from __future__ import annotations

import logging

import pandas as pd

from .config import DEFAULTS
from .errors import InvalidRecord, NoMatchingIndividual, SchemaMismatch

logger = logging.getLogger(__name__)

DERIVED_COLUMNS = ["O.het", "E.het", "PO.het", "PE.het"]


def _require(df: pd.DataFrame, columns, what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaMismatch(f"{what} is missing columns: {missing}")


def filter_by_loci(hom: pd.DataFrame, min_loci: int = DEFAULTS["min_loci"]) -> pd.DataFrame:
    """Keep records with strictly more than ``min_loci`` loci."""
    _require(hom, ["N"], "homozygosity table")
    keep = pd.to_numeric(hom["N"], errors="coerce") > min_loci
    dropped = int((~keep).sum())
    if dropped:
        logger.info("Dropped %d records with N <= %d", dropped, min_loci)
    return hom.loc[keep].reset_index(drop=True)


def join_sex(hom: pd.DataFrame, sexes: pd.DataFrame) -> pd.DataFrame:
    """Inner-join records to sex labels on ``Indv``; unmatched individuals are dropped."""
    _require(hom, ["Scaffold", "Indv"], "homozygosity table")
    _require(sexes, ["Indv", "Sex"], "sex table")
    try:
        joined = hom.merge(sexes[["Indv", "Sex"]], on="Indv", how="inner", validate="many_to_one")
    except pd.errors.MergeError as e:
        raise InvalidRecord(f"sex table lists an individual more than once: {e}") from e
    if joined.empty:
        raise NoMatchingIndividual(
            f"No individual in the homozygosity table ({hom['Indv'].nunique()} individuals) "
            f"has a sex label ({sexes['Indv'].nunique()} labelled individuals)"
        )
    unmatched = sorted(set(hom["Indv"]) - set(sexes["Indv"]))
    if unmatched:
        logger.info(
            "%d individuals without a sex label were dropped: %s",
            len(unmatched), ", ".join(unmatched[:10]) + (" ..." if len(unmatched) > 10 else ""),
        )
    return joined


def derive_heterozygosity(df: pd.DataFrame) -> pd.DataFrame:
    """Add observed/expected heterozygous counts and their proportions of N."""
    _require(df, ["O.HOM", "E.HOM", "N"], "homozygosity table")
    n = pd.to_numeric(df["N"], errors="coerce")
    bad = n.isna() | (n <= 0)
    if bad.any():
        rows = df.loc[bad, [c for c in ("Scaffold", "Indv", "N") if c in df.columns]]
        raise InvalidRecord(
            f"{int(bad.sum())} record(s) have a zero, negative or missing loci count:\n"
            f"{rows.head(5).to_string(index=False)}"
        )
    out = df.copy()
    out["O.het"] = n - out["O.HOM"]
    out["E.het"] = n - out["E.HOM"]
    out["PO.het"] = out["O.het"] / n
    out["PE.het"] = out["E.het"] / n
    return out


def join_and_derive(
    hom: pd.DataFrame,
    sexes: pd.DataFrame,
    min_loci: int = DEFAULTS["min_loci"],
) -> pd.DataFrame:
    _require(hom, ["Scaffold", "Indv"], "homozygosity table")
    _require(sexes, ["Indv", "Sex"], "sex table")
    # identifiers are compared as text from here on
    hom = hom.assign(Scaffold=hom["Scaffold"].astype(str), Indv=hom["Indv"].astype(str))
    sexes = sexes.assign(Indv=sexes["Indv"].astype(str))

    filtered = filter_by_loci(hom, min_loci)
    if filtered.empty:
        raise InvalidRecord(
            f"All {len(hom)} homozygosity record(s) have {min_loci} loci or fewer; nothing left to join"
        )
    enriched = derive_heterozygosity(join_sex(filtered, sexes))
    logger.info(
        "Enriched %d records across %d scaffolds and %d individuals",
        len(enriched), enriched["Scaffold"].nunique(), enriched["Indv"].nunique(),
    )
    return enriched
