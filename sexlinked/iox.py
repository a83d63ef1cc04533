import os
import logging
import tempfile
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Mapping, Optional

import pandas as pd
from pandas.api.types import is_numeric_dtype
from tqdm import tqdm

from .config import FEMALE, MALE
from .errors import InvalidRecord, MissingInputFile, SchemaMismatch

logger = logging.getLogger(__name__)

# canonical column -> accepted header spellings (compared case-insensitively)
HOM_COLUMNS = {
    "Scaffold": ("scaffold", "chrom", "chr"),
    "Indv": ("indv",),
    "O.HOM": ("o(hom)", "o.hom"),
    "E.HOM": ("e(hom)", "e.hom"),
    "N": ("n", "n_sites", "n.sites"),
    "F": ("f",),
}
SEX_COLUMNS = {
    "Indv": ("indv",),
    "Sex": ("sex",),
}
NUMERIC_HOM_COLUMNS = ["O.HOM", "E.HOM", "N", "F"]
# vcftools writes -nan for F on empty scaffolds
NA_TOKENS = {"", "na", "nan", "-nan", "inf", "-inf"}

SEX_LABELS = {
    "male": MALE,
    "m": MALE,
    "female": FEMALE,
    "f": FEMALE,
}


def _ensure_exists(path) -> str:
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise MissingInputFile(f"Missing required input file: {path}")
    return path


def _canonicalize_columns(df: pd.DataFrame, aliases_by_column: Mapping[str, tuple], source: str) -> pd.DataFrame:
    """Rename the columns of ``df`` to their canonical names and drop the rest."""
    lookup = {str(c).strip().lower(): c for c in df.columns}
    rename = {}
    missing = []
    for canonical, aliases in aliases_by_column.items():
        found = next((lookup[a] for a in aliases if a in lookup), None)
        if found is None:
            missing.append(canonical)
        else:
            rename[found] = canonical
    if missing:
        raise SchemaMismatch(
            f"{source} is missing columns {missing}; found {list(df.columns)}"
        )
    return df.rename(columns=rename)[list(aliases_by_column)]


def _read_tsv(path, source: str) -> pd.DataFrame:
    try:
        return pd.read_csv(_ensure_exists(path), sep="\t", dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise SchemaMismatch(f"{source} at '{path}' has no header: {e}") from e
    except pd.errors.ParserError as e:
        raise SchemaMismatch(f"{source} at '{path}' is not valid tab-separated text: {e}") from e


def coerce_homozygosity(df: pd.DataFrame, source: str = "homozygosity table") -> pd.DataFrame:
    """Validate and type an in-memory homozygosity table."""
    out = _canonicalize_columns(df, HOM_COLUMNS, source).copy()
    out["Scaffold"] = out["Scaffold"].astype(str)
    out["Indv"] = out["Indv"].astype(str)
    for col in NUMERIC_HOM_COLUMNS:
        if is_numeric_dtype(out[col]):
            continue
        raw = out[col]
        out[col] = pd.to_numeric(raw, errors="coerce")
        bad = out[col].isna() & ~raw.astype(str).str.strip().str.lower().isin(NA_TOKENS)
        if bad.any():
            examples = raw[bad].astype(str).unique()[:5].tolist()
            raise SchemaMismatch(f"{source}: column {col} has non-numeric values {examples}")
    return out.reset_index(drop=True)


def load_homozygosity(path) -> pd.DataFrame:
    """Loads the per-scaffold, per-individual homozygosity table."""
    df = _read_tsv(path, "homozygosity table")
    out = coerce_homozygosity(df, source=f"homozygosity table '{path}'")
    logger.info(
        "Loaded %d homozygosity records (%d scaffolds, %d individuals) from %s",
        len(out), out["Scaffold"].nunique(), out["Indv"].nunique(), path,
    )
    return out


def coerce_sex_table(df: pd.DataFrame, source: str = "sex table") -> pd.DataFrame:
    """Validate an in-memory sex table and normalize its labels to Male/Female."""
    out = _canonicalize_columns(df, SEX_COLUMNS, source).copy()
    out["Indv"] = out["Indv"].astype(str)
    normalized = out["Sex"].astype(str).str.strip().str.lower().map(SEX_LABELS)
    unknown = normalized.isna()
    if unknown.any():
        labels = sorted(out.loc[unknown, "Sex"].astype(str).unique().tolist())
        raise InvalidRecord(f"{source}: unrecognized sex label(s) {labels}; expected Male/Female")
    out["Sex"] = normalized

    dup_mask = out["Indv"].duplicated(keep=False)
    if dup_mask.any():
        conflicts = out.loc[dup_mask].groupby("Indv")["Sex"].nunique()
        conflicting = conflicts[conflicts > 1].index.tolist()
        if conflicting:
            raise InvalidRecord(f"{source}: conflicting sex labels for {conflicting}")
        warnings.warn(
            f"Duplicate individuals encountered in {source}; keeping the first occurrence "
            f"of {sorted(out.loc[dup_mask, 'Indv'].unique().tolist())}",
            UserWarning,
            stacklevel=2,
        )
        out = out.drop_duplicates(subset=["Indv"], keep="first")
    return out.reset_index(drop=True)


def load_sex_table(path) -> pd.DataFrame:
    """Loads the individual -> sex lookup."""
    df = _read_tsv(path, "sex table")
    out = coerce_sex_table(df, source=f"sex table '{path}'")
    counts = out["Sex"].value_counts()
    logger.info(
        "Loaded sex labels for %d individuals (%d male, %d female) from %s",
        len(out), int(counts.get(MALE, 0)), int(counts.get(FEMALE, 0)), path,
    )
    return out


def read_scaffold_het(scaffold: str, path) -> pd.DataFrame:
    """Reads one per-scaffold ``--het`` table and prepends its scaffold name."""
    df = _read_tsv(path, f"het table for {scaffold}")
    df.insert(0, "Scaffold", str(scaffold))
    return df


def combine_scaffold_tables(
    paths_by_scaffold: Mapping[str, str],
    max_workers: int = 1,
    show_progress: bool = False,
) -> pd.DataFrame:
    """
    Concatenates per-scaffold het tables into one homozygosity table.

    Each scaffold is an independent read, so the work is fanned out to a
    thread pool; the result is assembled in scaffold order regardless of
    completion order.
    """
    if not paths_by_scaffold:
        raise SchemaMismatch("No per-scaffold het tables were given")
    scaffolds = list(paths_by_scaffold)
    frames: Dict[str, pd.DataFrame] = {}
    with ThreadPoolExecutor(max_workers=max(1, int(max_workers))) as executor:
        futures = {
            executor.submit(read_scaffold_het, sc, paths_by_scaffold[sc]): sc for sc in scaffolds
        }
        iterator = as_completed(futures)
        if show_progress:
            iterator = tqdm(iterator, total=len(futures), desc="Reading scaffolds", unit="scaffold")
        for fut in iterator:
            frames[futures[fut]] = fut.result()

    combined = pd.concat([frames[sc] for sc in scaffolds], ignore_index=True)
    out = coerce_homozygosity(combined, source="combined het tables")
    logger.info("Combined %d per-scaffold tables into %d records", len(scaffolds), len(out))
    return out


def write_table(path, df: pd.DataFrame, float_format: Optional[str] = None) -> None:
    """
    Writes a TSV atomically by first writing to a unique temp path and then moving it into place.
    """
    path = os.fspath(path)
    tmpdir = os.path.dirname(path) or "."
    os.makedirs(tmpdir, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=tmpdir, prefix=os.path.basename(path) + ".tmp.")
    os.close(fd)
    try:
        df.to_csv(tmp_path, sep="\t", index=False, float_format=float_format)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
    logger.info("Wrote %d rows to %s", len(df), path)
