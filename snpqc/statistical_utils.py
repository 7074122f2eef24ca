"""
Posterior summaries for the platform model.
"""

from typing import Dict

import arviz as az
import numpy as np
import pandas as pd

from snpqc.models import PosteriorDraws
from snpqc.standardize import Standardizer


def _summarize_draws(draws: np.ndarray, hdi_prob: float) -> Dict[str, float]:
    """
    Summarize draws with mean, sd and HDI.

    Parameters
    ----------
    draws : np.ndarray
        1D draws
    hdi_prob : float
        HDI probability (e.g., 0.95 for 95% HDI)

    Returns
    -------
    Dict[str, float]
        Dictionary with 'mean', 'sd', 'hdi_lo', 'hdi_hi'
    """
    x = np.asarray(draws).ravel()
    hdi = az.hdi(x, hdi_prob=hdi_prob)
    return {
        "mean": float(x.mean()),
        "sd": float(x.std(ddof=1)) if x.size > 1 else float("nan"),
        "hdi_lo": float(hdi[0]),
        "hdi_hi": float(hdi[1]),
    }


def platform_effects_table(
    draws: PosteriorDraws,
    standardizer: Standardizer,
    hdi_prob: float,
) -> pd.DataFrame:
    """
    Per-platform posterior mean SNP yield on the raw scale.

    Sampler diagnostics (r_hat, ess_bulk) are joined in when the draw set
    carries its InferenceData.

    Parameters
    ----------
    draws : PosteriorDraws
        Posterior draw set
    standardizer : Standardizer
        The run's standardization parameters
    hdi_prob : float
        HDI probability

    Returns
    -------
    pd.DataFrame
        One row per platform
    """
    platforms = draws.platforms or tuple(range(draws.n_platforms))
    rows = []
    for j, platform in enumerate(platforms):
        s_std = _summarize_draws(draws.mu[:, j], hdi_prob=hdi_prob)
        s_raw = _summarize_draws(standardizer.inverse_transform(draws.mu[:, j]), hdi_prob=hdi_prob)
        rows.append(
            {
                "platform": platform,
                "mean_standardized": s_std["mean"],
                "mean_snps": s_raw["mean"],
                "sd_snps": s_raw["sd"],
                "hdi_lo_snps": s_raw["hdi_lo"],
                "hdi_hi_snps": s_raw["hdi_hi"],
            }
        )
    table = pd.DataFrame(rows)

    # Residual scale in SNP units
    sigma_raw = _summarize_draws(draws.sigma * standardizer.sd, hdi_prob=hdi_prob)
    table["sigma_snps"] = sigma_raw["mean"]

    if draws.idata is not None:
        summ = az.summary(draws.idata, var_names=["mu"], hdi_prob=hdi_prob).reset_index()
        summ = summ.rename(columns={"index": "param"})
        summ["platform"] = summ["param"].str.replace(r"mu\[|\]", "", regex=True)
        table = table.merge(summ.loc[:, ["platform", "r_hat", "ess_bulk"]], on="platform", how="left")

    return table
