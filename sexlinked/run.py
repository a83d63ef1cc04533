"""End-to-end pipeline: load, derive, summarize, test, classify, report."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from . import classify, derive, iox, summary, testing
from .config import PipelineConfig, get_pipeline_ctx
from .errors import InsufficientSampleSize

logger = logging.getLogger(__name__)

COMPARISON_FILE = "scaffold_comparison.tsv"
CANDIDATES_FILE = "sex_linked_candidates.tsv"
SUMMARY_FILE = "group_summary.tsv"
SCATTER_BASE = "het_scatter"
SCATTER_SEM_BASE = "het_scatter_sem"


@dataclass
class PipelineResult:
    enriched: pd.DataFrame
    summary: pd.DataFrame
    wide: pd.DataFrame
    tests: pd.DataFrame
    comparison: pd.DataFrame
    candidates: pd.DataFrame
    # scaffold -> reason it is absent from the comparison table
    excluded: Dict[str, str] = field(default_factory=dict)
    outputs: List[Path] = field(default_factory=list)


def analyze(
    hom: pd.DataFrame,
    sexes: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
    show_progress: bool = False,
) -> PipelineResult:
    """Run every in-memory stage on already loaded tables."""
    config = config or get_pipeline_ctx()

    enriched = derive.join_and_derive(hom, sexes, min_loci=config.min_loci)
    long_summary = summary.summarize(enriched, value=config.value_column)
    if config.strict_sample_size:
        too_few = summary.undersampled_scaffolds(long_summary)
        if too_few:
            raise InsufficientSampleSize(too_few)
    wide = summary.widen(long_summary)
    excluded = {sc: "missing mean or SEM for one sex" for sc in summary.dropped_scaffolds(long_summary, wide)}

    tests, skipped = testing.welch_by_scaffold(
        enriched,
        scaffolds=wide["Scaffold"],
        value=config.value_column,
        strict=config.strict_sample_size,
        max_workers=config.max_workers,
        show_progress=show_progress,
    )
    excluded.update(skipped)
    if config.fdr_method:
        tests = testing.add_qvalues(tests, method=config.fdr_method, alpha=config.alpha)

    comparison = classify.build_comparison(wide, tests, alpha=config.alpha, value=config.value_column)
    candidates = classify.select_candidates(
        comparison,
        heterogametic_sex=config.heterogametic_sex,
        linkage_threshold=config.linkage_threshold,
        alpha=config.alpha,
        value=config.value_column,
    )
    return PipelineResult(
        enriched=enriched,
        summary=long_summary,
        wide=wide,
        tests=tests,
        comparison=comparison,
        candidates=candidates,
        excluded=dict(sorted(excluded.items())),
    )


def run_pipeline(
    hom_path,
    sex_path,
    out_dir,
    config: Optional[PipelineConfig] = None,
    make_plots: bool = True,
    write_summary: bool = True,
) -> PipelineResult:
    """Load both input tables, analyze them and write result tables and plots to ``out_dir``."""
    config = config or get_pipeline_ctx()
    t0 = time.perf_counter()
    logger.info(
        "Starting sex-linkage scan: heterogametic sex=%s, alpha=%s, linkage threshold=%s, min loci=%d",
        config.heterogametic_sex, config.alpha, config.linkage_threshold, config.min_loci,
    )
    # both inputs are checked before any work starts
    hom = iox.load_homozygosity(hom_path)
    sexes = iox.load_sex_table(sex_path)

    result = analyze(hom, sexes, config, show_progress=config.max_workers > 1)

    out_dir = Path(out_dir)
    os.makedirs(out_dir, exist_ok=True)
    outputs = [out_dir / COMPARISON_FILE, out_dir / CANDIDATES_FILE]
    iox.write_table(outputs[0], result.comparison)
    iox.write_table(outputs[1], result.candidates)
    if write_summary:
        outputs.append(out_dir / SUMMARY_FILE)
        iox.write_table(outputs[-1], result.summary)

    if make_plots:
        from . import plots

        for base, error_bars in ((SCATTER_BASE, False), (SCATTER_SEM_BASE, True)):
            outputs += plots.plot_sex_scatter(
                result.comparison, out_dir / base, error_bars=error_bars, value=config.value_column,
            )

    result.outputs = outputs
    logger.info(
        "Finished in %.1fs: %d scaffold(s) compared, %d candidate(s), %d excluded",
        time.perf_counter() - t0, len(result.comparison), len(result.candidates), len(result.excluded),
    )
    return result
