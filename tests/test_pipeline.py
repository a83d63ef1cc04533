import pandas as pd
import pytest

from sexlinked import run
from sexlinked.config import get_pipeline_ctx
from sexlinked.errors import (
    ExcludedScaffoldWarning,
    InsufficientSampleSize,
    MissingInputFile,
    NoMatchingIndividual,
    SchemaMismatch,
)

from conftest import sex_biased_rows, write_tsv


def test_female_low_scaffold_is_a_zw_candidate(zw_hom, sexes):
    result = run.analyze(zw_hom, sexes)

    comparison = result.comparison.set_index("Scaffold")
    assert comparison.loc["chrZ", "Significant"] == "p-value < 0.001"
    assert comparison.loc["chr1", "Significant"] == "p-value < 0.001"
    assert comparison.loc["chr2", "Significant"] == "p-value >= 0.001"
    assert result.candidates["Scaffold"].tolist() == ["chrZ"]


def test_male_low_scaffold_is_an_xy_candidate(zw_hom, sexes):
    result = run.analyze(zw_hom, sexes, get_pipeline_ctx({"heterogametic_sex": "Male"}))
    assert result.candidates["Scaffold"].tolist() == ["chr1"]
    assert list(result.candidates.columns)[1:3] == ["PO.het_Male", "PO.het_Female"]


def test_single_sex_scaffold_absent_from_comparison(zw_hom, sexes):
    rows = sex_biased_rows("chrW", female_mean=0.01, male_mean=0.3)
    female_only = pd.DataFrame([r for r in rows if r["Indv"].startswith("F")])
    hom = pd.concat([zw_hom, female_only], ignore_index=True)

    with pytest.warns(ExcludedScaffoldWarning, match="chrW"):
        result = run.analyze(hom, sexes)

    assert "chrW" not in set(result.comparison["Scaffold"])
    assert "chrW" not in set(result.candidates["Scaffold"])
    assert "chrW" in result.excluded


def test_integer_scaffold_ids_are_handled(sexes):
    hom = pd.DataFrame(sex_biased_rows(1, 0.02, 0.30) + sex_biased_rows(2, 0.25, 0.25))

    result = run.analyze(hom, sexes)

    assert result.comparison["Scaffold"].tolist() == ["1", "2"]
    assert result.candidates["Scaffold"].tolist() == ["1"]


def test_integer_individual_ids_join_with_text_labels(sexes):
    numeric = {name: i for i, name in enumerate(sexes["Indv"], start=100)}
    hom = pd.DataFrame(sex_biased_rows("chrZ", 0.02, 0.30))
    hom["Indv"] = hom["Indv"].map(numeric)
    labels = sexes.assign(Indv=sexes["Indv"].map(numeric).astype(str))

    result = run.analyze(hom, labels)

    assert result.enriched["Indv"].nunique() == 20
    assert result.candidates["Scaffold"].tolist() == ["chrZ"]


def test_strict_mode_aborts_on_single_observation(zw_hom, sexes):
    rows = sex_biased_rows("chrX", 0.1, 0.2, males=["M1"])
    hom = pd.concat([zw_hom, pd.DataFrame(rows)], ignore_index=True)

    with pytest.raises(InsufficientSampleSize) as excinfo:
        run.analyze(hom, sexes, get_pipeline_ctx({"strict_sample_size": True}))
    assert excinfo.value.scaffolds == ["chrX"]


def test_strict_mode_through_run_pipeline(tmp_path, zw_hom, sexes):
    rows = sex_biased_rows("chrX", 0.1, 0.2, males=["M1"])
    hom = pd.concat([zw_hom, pd.DataFrame(rows)], ignore_index=True)
    hom_path = write_tsv(tmp_path / "het.tsv", hom, rename={"O.HOM": "O(HOM)", "E.HOM": "E(hom)"})
    sex_path = write_tsv(tmp_path / "sex.tsv", sexes)
    config = get_pipeline_ctx({"strict_sample_size": True})

    with pytest.raises(InsufficientSampleSize):
        run.run_pipeline(hom_path, sex_path, tmp_path / "out", config, make_plots=False)


def test_expected_heterozygosity_columns_are_named_after_the_value(zw_hom, sexes):
    # expected homozygosity tracks the observed one so the PE.het contrast mirrors PO.het
    hom = zw_hom.assign(**{"E.HOM": zw_hom["O.HOM"].astype(float)})
    result = run.analyze(hom, sexes, get_pipeline_ctx({"value_column": "PE.het"}))

    assert list(result.comparison.columns)[1:3] == ["PE.het_Male", "PE.het_Female"]
    assert not any(c.startswith("PO.het") for c in result.comparison.columns)
    assert list(result.candidates.columns)[1:3] == ["PE.het_Female", "PE.het_Male"]
    assert result.candidates["Scaffold"].tolist() == ["chrZ"]


def test_sparse_records_never_reach_the_tests(zw_hom, sexes):
    sparse = pd.DataFrame(sex_biased_rows("tiny", female_mean=0.01, male_mean=0.3, n=100))
    result = run.analyze(pd.concat([zw_hom, sparse], ignore_index=True), sexes)

    assert (result.enriched["N"] > 100).all()
    assert "tiny" not in set(result.summary["Scaffold"])


def test_empty_sex_table_aborts(zw_hom):
    with pytest.raises(NoMatchingIndividual):
        run.analyze(zw_hom, pd.DataFrame(columns=["Indv", "Sex"]))


def test_fdr_adds_qvalue_column(zw_hom, sexes):
    result = run.analyze(zw_hom, sexes, get_pipeline_ctx({"fdr_method": "fdr_bh"}))
    assert "q.value" in result.comparison.columns
    assert (result.comparison["q.value"] >= result.comparison["p.value"]).all()


def test_run_pipeline_writes_tables_and_plots(tmp_path, input_files):
    hom_path, sex_path = input_files
    out_dir = tmp_path / "results"

    result = run.run_pipeline(hom_path, sex_path, out_dir)

    comparison = pd.read_csv(out_dir / run.COMPARISON_FILE, sep="\t")
    candidates = pd.read_csv(out_dir / run.CANDIDATES_FILE, sep="\t")
    assert list(comparison.columns) == [
        "Scaffold", "PO.het_Male", "PO.het_Female", "sem_Male", "sem_Female",
        "p.value", "method", "Significant",
    ]
    assert list(candidates.columns) == [
        "Scaffold", "PO.het_Female", "PO.het_Male", "sem_Female", "sem_Male", "p.value", "method",
    ]
    assert candidates["Scaffold"].tolist() == ["chrZ"]
    for name in ("het_scatter.png", "het_scatter.pdf", "het_scatter_sem.png", "het_scatter_sem.pdf"):
        assert (out_dir / name).is_file()
    assert all(p.exists() for p in result.outputs)


def test_run_pipeline_missing_input(tmp_path, input_files):
    hom_path, _ = input_files
    with pytest.raises(MissingInputFile):
        run.run_pipeline(hom_path, tmp_path / "nope.tsv", tmp_path / "out", make_plots=False)


def test_run_pipeline_bad_header(tmp_path, input_files):
    _, sex_path = input_files
    bad = tmp_path / "bad.tsv"
    bad.write_text("Scaffold\tIndv\nchr1\tF1\n")
    with pytest.raises(SchemaMismatch):
        run.run_pipeline(bad, sex_path, tmp_path / "out", make_plots=False)
    assert not (tmp_path / "out").exists()
