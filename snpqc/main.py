"""
Main script for fitting the platform QC-yield model and scoring platforms.

Usage:
    python -m snpqc.main
"""

import numpy as np
import pandas as pd
import pymc as pm

from snpqc import console
from snpqc.config import (
    QC_TABLE,
    PLATFORM_TABLE,
    PLATFORM_COL,
    PLATFORM_ORDER,
    PLATFORM_ALIASES,
    DEFAULT_PLATFORM,
    N_REPLICATES,
    N_CHECK_ROWS,
    ONE_SIDED,
    HYPOTHETICAL_SNPS,
    HDI_PROB,
    TEST,
    SamplerConfig,
    get_output_paths,
)
from snpqc.data_utils import (
    load_qc_tables,
    normalize_platform_labels,
    filter_observations,
    build_vocabulary,
    generate_test_data,
)
from snpqc.design import encode
from snpqc.errors import SnpQCError
from snpqc.models import PymcSampler
from snpqc.pipeline import fit_context, evaluate_platforms, model_check
from snpqc.plotting import plot_model_check, plot_platform_effects, plot_predictive_distribution
from snpqc.predictive import collect_replicates, simulate
from snpqc.scoring import AnomalyScore
from snpqc.statistical_utils import platform_effects_table


def load_observations() -> pd.DataFrame:
    if TEST:
        console.info("TEST MODE: generating synthetic studies")
        return generate_test_data(PLATFORM_ORDER)
    data = load_qc_tables(QC_TABLE, PLATFORM_TABLE)
    data[PLATFORM_COL] = normalize_platform_labels(
        data[PLATFORM_COL], PLATFORM_ALIASES, default=DEFAULT_PLATFORM
    )
    return data


def main():
    """Main execution function."""
    console.banner("Platform QC-Yield Model")
    print(f"Running with PyMC version: {pm.__version__}")

    paths = get_output_paths()
    assets_dir = paths["assets_dir"]
    assets_dir.mkdir(parents=True, exist_ok=True)

    stage_name = "loading"
    try:
        t0 = console.stage("Loading studies")
        data = filter_observations(load_observations())
        # Platforms that survived filtering, in fixed order; unknown labels abort
        vocabulary = build_vocabulary(data, PLATFORM_ORDER)
        console.stage_done(stage_name, t0)

        stage_name = "fitting"
        sampler = PymcSampler(SamplerConfig())
        print(f"Sampler: {sampler.config!r}")
        context = fit_context(data, vocabulary, sampler, n_replicates=N_REPLICATES)

        stage_name = "model check"
        t0 = console.stage("Posterior predictive check")
        check = model_check(context, n_rows=N_CHECK_ROWS)
        plot_model_check(check, assets_dir / "model_check.png")
        console.stage_done(stage_name, t0)

        effects = platform_effects_table(context.draws, context.standardizer, HDI_PROB)
        effects.to_csv(paths["effects_path"], index=False)
        plot_platform_effects(effects, assets_dir / "platform_effects.png")

        stage_name = "scoring"
        t0 = console.stage(f"Scoring {HYPOTHETICAL_SNPS:,} SNPs on every platform")
        scores = evaluate_platforms(context, HYPOTHETICAL_SNPS, one_sided=ONE_SIDED)
        scores.to_csv(paths["scores_path"], index=False)
        for record in scores.to_dict("records"):
            console.info(console.format_score(record))

        # Same streams as evaluate_platforms, so the figures show the scored replicates
        streams = np.random.SeedSequence(context.random_seed).spawn(len(vocabulary))
        for platform, stream, record in zip(vocabulary, streams, scores.to_dict("records")):
            values, _ = collect_replicates(
                simulate(context.draws, encode(platform, vocabulary), rng=np.random.default_rng(stream))
            )
            plot_predictive_distribution(
                context.standardizer.inverse_transform(values),
                AnomalyScore(**record),
                assets_dir / f"predictive_{platform}.png",
            )
        console.stage_done(stage_name, t0)
    except SnpQCError as exc:
        console.fail(exc.stage, exc)
        raise
    except Exception as exc:
        console.fail(stage_name, exc)
        raise

    print("\n" + "=" * 80)
    print(f"✓ Scores written to: {paths['scores_path']}")
    print(f"✓ Platform effects written to: {paths['effects_path']}")
    print(f"✓ Figures saved to: {assets_dir}")
    print("=" * 80)


if __name__ == "__main__":
    main()
