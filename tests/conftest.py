import pathlib
import sys

import pandas as pd
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# per-individual offsets around a group mean, symmetric so the mean is exact
JITTER = [-0.02, -0.015, -0.01, -0.005, 0.0, 0.0, 0.005, 0.01, 0.015, 0.02]

FEMALES = [f"F{i}" for i in range(1, 11)]
MALES = [f"M{i}" for i in range(1, 11)]


def hom_rows(scaffold, individuals, het_props, n=1000):
    rows = []
    for indv, p in zip(individuals, het_props):
        o_hom = int(round(n * (1.0 - p)))
        rows.append({
            "Scaffold": scaffold,
            "Indv": indv,
            "O.HOM": o_hom,
            "E.HOM": round(n * 0.75, 1),
            "N": n,
            "F": 0.1,
        })
    return rows


def sex_biased_rows(scaffold, female_mean, male_mean, n=1000, females=FEMALES, males=MALES):
    f_props = [max(0.0, female_mean + j) for j in JITTER[: len(females)]]
    m_props = [max(0.0, male_mean + j) for j in JITTER[: len(males)]]
    return hom_rows(scaffold, females, f_props, n) + hom_rows(scaffold, males, m_props, n)


@pytest.fixture
def sexes():
    return pd.DataFrame({
        "Indv": FEMALES + MALES,
        "Sex": ["Female"] * len(FEMALES) + ["Male"] * len(MALES),
    })


@pytest.fixture
def zw_hom():
    """chrZ: females nearly homozygous; chr1: males nearly homozygous; chr2: no difference."""
    rows = (
        sex_biased_rows("chrZ", female_mean=0.02, male_mean=0.30)
        + sex_biased_rows("chr1", female_mean=0.30, male_mean=0.02)
        + sex_biased_rows("chr2", female_mean=0.25, male_mean=0.25)
    )
    return pd.DataFrame(rows)


def write_tsv(path, df, rename=None):
    out = df.rename(columns=rename or {})
    out.to_csv(path, sep="\t", index=False)
    return path


@pytest.fixture
def input_files(tmp_path, zw_hom, sexes):
    hom_path = write_tsv(
        tmp_path / "het_by_scaffold.tsv",
        zw_hom,
        rename={"O.HOM": "O(HOM)", "E.HOM": "E(hom)"},
    )
    sex_path = write_tsv(tmp_path / "sex.tsv", sexes)
    return hom_path, sex_path
