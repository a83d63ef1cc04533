"""Male vs female heterozygosity scatter plots."""

from __future__ import annotations

from pathlib import Path
from typing import List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .config import DEFAULTS, FEMALE, MALE

plt.rcParams.update({
    "pdf.fonttype": 42,
    "ps.fonttype": 42,
})

SIG_COLOR = "#d62728"
NOT_SIG_COLOR = "#7f7f7f"
AXIS_LABELS = {
    "PO.het": "observed heterozygosity",
    "PE.het": "expected heterozygosity",
}


def plot_sex_scatter(
    comparison: pd.DataFrame,
    output_base,
    error_bars: bool = False,
    value: str = DEFAULTS["value_column"],
) -> List[Path]:
    """Scatter male (x) against female (y) mean heterozygosity; returns the written paths."""
    fig, ax = plt.subplots(figsize=(6, 6))
    x = comparison[f"{value}_{MALE}"].to_numpy(dtype=float)
    y = comparison[f"{value}_{FEMALE}"].to_numpy(dtype=float)
    is_sig = comparison["Significant"].astype(str).str.startswith("p-value <").to_numpy()

    for mask, color in ((~is_sig, NOT_SIG_COLOR), (is_sig, SIG_COLOR)):
        if not mask.any():
            continue
        label = comparison.loc[mask, "Significant"].iloc[0]
        if error_bars:
            ax.errorbar(
                x[mask], y[mask],
                xerr=comparison.loc[mask, f"sem_{MALE}"].to_numpy(dtype=float),
                yerr=comparison.loc[mask, f"sem_{FEMALE}"].to_numpy(dtype=float),
                fmt="o", ms=5, color=color, ecolor=color, elinewidth=0.8, capsize=2,
                alpha=0.8, label=label,
            )
        else:
            ax.scatter(x[mask], y[mask], s=30, color=color, alpha=0.8, label=label)

    upper = np.nanmax(np.concatenate([x, y, [0.0]])) if len(x) else 1.0
    lim = max(upper * 1.05, 0.01)
    ax.plot([0, lim], [0, lim], linestyle="--", color="black", linewidth=0.8)
    ax.set_xlim(0, lim)
    ax.set_ylim(0, lim)
    quantity = AXIS_LABELS.get(value, value)
    ax.set_xlabel(f"{MALE} {quantity}", fontsize=14)
    ax.set_ylabel(f"{FEMALE} {quantity}", fontsize=14)
    if len(x):
        ax.legend(frameon=False)

    output_base = Path(output_base)
    output_base.parent.mkdir(parents=True, exist_ok=True)
    written = []
    for ext in ("png", "pdf"):
        out_path = output_base.with_suffix(f".{ext}")
        fig.savefig(out_path, bbox_inches="tight")
        written.append(out_path)
    plt.close(fig)
    return written
