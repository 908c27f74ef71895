"""Score history chart."""

from pathlib import Path
from typing import List, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from ..models import AnalysisRecord, score_band


BAND_COLORS = {
    "good": "#22c55e",
    "fair": "#facc15",
    "poor": "#ef4444",
}


def plot_score_history(
    records: List[AnalysisRecord],
    output_path: Union[str, Path],
    commit_threshold: int = 70,
) -> Path:
    """
    Draw the Technical Debt Score of past analyses, oldest to newest.

    Args:
        records: Analyses in any order
        output_path: PNG file to write
        commit_threshold: Drawn as a dashed reference line

    Returns:
        Path of the written image
    """
    if not records:
        raise ValueError("No analyses to plot")

    ordered = sorted(records, key=lambda r: r.timestamp)
    scores = np.array([r.technical_debt_score for r in ordered])
    x = np.arange(1, len(scores) + 1)

    colors = [BAND_COLORS[score_band(int(s))] for s in scores]

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(x, scores, color="#6366f1", linewidth=1.5, zorder=1)
    ax.scatter(x, scores, c=colors, s=60, edgecolors="black", linewidths=0.5, zorder=2)

    # Rolling mean over the last 3 analyses
    if len(scores) >= 3:
        window = np.ones(3) / 3
        rolling = np.convolve(scores, window, mode="valid")
        ax.plot(x[2:], rolling, color="gray", linestyle=":", label="3-run average")

    ax.axhline(commit_threshold, color="#ef4444", linestyle="--", linewidth=1,
               label=f"Commit threshold ({commit_threshold})")

    ax.set_ylim(0, 105)
    ax.set_xticks(x)
    ax.set_xticklabels([r.timestamp.strftime("%m/%d %H:%M") for r in ordered],
                       rotation=45, ha="right", fontsize=8)
    ax.set_ylabel("Technical Debt Score")
    ax.set_title("CodeGuardian Score History", fontsize=14, fontweight="bold")
    ax.legend(loc="lower left")
    ax.grid(axis="y", alpha=0.3)

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    fig.savefig(output, dpi=150)
    plt.close(fig)

    return output
