"""
Diagnostic figures for the platform QC-yield model.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from snpqc.config import PLOT_STYLE, PLATFORM_COLORS
from snpqc.model_check import ModelCheck
from snpqc.scoring import AnomalyScore


def _save_fig(fig: plt.Figure, out_path: Path) -> None:
    """
    Save figure to file and close.

    Parameters
    ----------
    fig : plt.Figure
        Matplotlib figure
    out_path : Path
        Output path
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=300, bbox_inches='tight')
    plt.close(fig)


def apply_reference_styling(ax: plt.Axes) -> None:
    """
    Apply consistent styling to axes.

    Parameters
    ----------
    ax : plt.Axes
        Matplotlib axes object
    """
    for spine in ax.spines.values():
        spine.set_linewidth(0.8)
        spine.set_color('black')
    ax.grid(True, axis="x", alpha=0.25, linestyle="--", linewidth=0.4)
    ax.set_axisbelow(True)
    ax.tick_params(axis='x', labelsize=6.5, pad=2)
    ax.tick_params(axis='y', labelsize=7, pad=2)


def get_color_for_platform(platform: str) -> str:
    return PLATFORM_COLORS.get(platform, "#999999")


def plot_model_check(check: ModelCheck, out_path: Path) -> None:
    """
    Posterior predictive check: replicate distribution per observed row.

    Parameters
    ----------
    check : ModelCheck
        Output of ``snpqc.model_check.check``
    out_path : Path
        Output file path
    """
    plt.rcParams.update(PLOT_STYLE)
    rows = check.observed["row"].tolist()
    n = len(rows)
    fig, ax = plt.subplots(figsize=(10, max(4.5, 0.45 * n)))

    sns.violinplot(
        data=check.replicates.assign(row=check.replicates["row"].astype(str)),
        x="value",
        y="row",
        order=[str(r) for r in rows],
        orient="h",
        color="#f56565",
        inner="quartile",
        linewidth=0.6,
        cut=0,
        ax=ax,
    )
    ax.scatter(
        check.observed["observed"],
        np.arange(n),
        color="#667eea",
        edgecolor="black",
        linewidth=0.6,
        s=28,
        zorder=4,
        label="Observed",
    )

    ax.set_xlabel("Post-QC SNPs (Standardized Scale)", fontsize=8, fontweight='bold')
    ax.set_ylabel("Study", fontsize=8, fontweight='bold')
    ax.set_title("Posterior Predictive Check", fontsize=10, fontweight='bold', pad=12)
    ax.legend(
        handles=[
            mpatches.Patch(facecolor="#f56565", edgecolor="black", label="Replicates", linewidth=0.8),
            plt.Line2D([], [], marker="o", linestyle="", color="#667eea",
                       markeredgecolor="black", label="Observed"),
        ],
        fontsize=7,
        frameon=True,
    )

    apply_reference_styling(ax)

    _save_fig(fig, out_path)


def plot_predictive_distribution(
    replicates_raw: np.ndarray,
    result: AnomalyScore,
    out_path: Path,
) -> None:
    """
    Predictive distribution of one platform with the scored value marked.

    Parameters
    ----------
    replicates_raw : np.ndarray
        Predictive replicates in SNP units
    result : AnomalyScore
        Score of the marked value
    out_path : Path
        Output file path
    """
    plt.rcParams.update(PLOT_STYLE)
    fig, ax = plt.subplots(figsize=(7, 4))

    color = get_color_for_platform(result.platform)
    ax.hist(replicates_raw, bins=50, alpha=0.7, density=True,
            color=color, edgecolor='black', linewidth=0.5)
    ax.axvline(result.replicate_mean, color='black', linestyle='--', linewidth=0.8,
               label=f"Predictive mean {result.replicate_mean:,.0f}")
    ax.axvline(result.observed, color='red', linewidth=1.2,
               label=f"Observed {result.observed:,.0f}")

    sided = "one-sided" if result.one_sided else "two-sided"
    ax.text(0.02, 0.95,
            f"p = {result.p_value:.4f} ({sided})\nSD distance = {result.sd_distance:.2f}",
            transform=ax.transAxes, va='top', ha='left', fontsize=7,
            bbox=dict(boxstyle='round,pad=0.3', facecolor='white', edgecolor='none', alpha=0.8))

    ax.set_xlabel("Post-QC SNPs", fontsize=8, fontweight='bold')
    ax.set_ylabel("Density", fontsize=8, fontweight='bold')
    ax.set_title(f"Predictive Distribution: {result.platform}", fontsize=10, fontweight='bold', pad=12)
    ax.legend(fontsize=7, frameon=True, loc='upper right')

    apply_reference_styling(ax)

    _save_fig(fig, out_path)


def plot_platform_effects(effects: pd.DataFrame, out_path: Path) -> None:
    """
    Forest plot of posterior platform means (SNP units) with HDI boxes.

    Parameters
    ----------
    effects : pd.DataFrame
        Output of ``platform_effects_table``
    out_path : Path
        Output file path
    """
    plt.rcParams.update(PLOT_STYLE)
    df = effects.sort_values("mean_snps", ascending=False).reset_index(drop=True)
    fig, ax = plt.subplots(figsize=(8, max(3.5, 0.5 * len(df))))

    box_height = 0.6
    for i, row in df.iterrows():
        box = mpatches.Rectangle(
            (row["hdi_lo_snps"], i - box_height / 2),
            row["hdi_hi_snps"] - row["hdi_lo_snps"],
            box_height,
            facecolor=get_color_for_platform(row["platform"]),
            edgecolor='black',
            linewidth=0.8,
            alpha=0.75,
            zorder=2,
        )
        ax.add_patch(box)
        ax.plot([row["mean_snps"]] * 2, [i - box_height / 2, i + box_height / 2],
                color='black', linewidth=1.5, zorder=3)
        ax.text(row["hdi_hi_snps"], i, f' {row["mean_snps"]:,.0f}',
                va='center', ha='left', fontsize=7)

    ax.set_yticks(np.arange(len(df)))
    ax.set_yticklabels(df["platform"].tolist(), fontsize=7)
    ax.set_ylim(-0.5, len(df) - 0.5)
    ax.set_xlim(df["hdi_lo_snps"].min() * 0.95, df["hdi_hi_snps"].max() * 1.08)
    ax.set_xlabel("Post-QC SNPs (posterior mean, HDI)", fontsize=8, fontweight='bold')
    ax.set_title("Platform Effects", fontsize=10, fontweight='bold', pad=12)

    apply_reference_styling(ax)
    ax.invert_yaxis()

    _save_fig(fig, out_path)
