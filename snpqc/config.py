"""
Configuration and constants for the platform QC-yield model.
"""

from pathlib import Path
from typing import Dict, Optional

# =============================================================================
# PATHS
# =============================================================================

QC_TABLE = "data/study_qc.tsv"
PLATFORM_TABLE = "data/study_platforms.tsv"

# =============================================================================
# INPUT COLUMNS
# =============================================================================

STUDY_COL = "study"
OUTCOME_COL = "snps"
PLATFORM_COL = "platform"
SAMPLES_COL = "samples"
LAMBDA_COL = "lambda_gc"
KNOWN_LOCI_COL = "known_locus_exclusions"

REQUIRED_COLUMNS = [STUDY_COL, OUTCOME_COL, PLATFORM_COL, SAMPLES_COL, KNOWN_LOCI_COL]

# =============================================================================
# FILTERS
# =============================================================================

# Platforms with fewer studies than this are dropped before fitting
MIN_STUDIES_PER_PLATFORM = 6

# Studies excluding this many prior-known loci (or more) are dropped
MAX_KNOWN_LOCUS_EXCLUSIONS = 100

# =============================================================================
# PLATFORM VOCABULARY
# =============================================================================

# Stable ordering for every encoding operation
PLATFORM_ORDER = [
    "AFFY500K",
    "AFFY6",
    "ILLU317K",
    "ILLU550K",
    "ILLU610K",
    "ILLU1M",
    "ILLUOMNI",
]

# Raw annotation spellings mapped onto PLATFORM_ORDER codes
PLATFORM_ALIASES: Dict[str, str] = {
    "AFFYMETRIX 500K": "AFFY500K",
    "AFFY 500K": "AFFY500K",
    "AFFYMETRIX 6.0": "AFFY6",
    "AFFY 6.0": "AFFY6",
    "AFFY6.0": "AFFY6",
    "ILLUMINA 317K": "ILLU317K",
    "ILLUMINA HUMANHAP300": "ILLU317K",
    "ILLUMINA 550K": "ILLU550K",
    "ILLUMINA HUMANHAP550": "ILLU550K",
    "ILLUMINA 610K": "ILLU610K",
    "ILLUMINA 610-QUAD": "ILLU610K",
    "ILLUMINA 1M": "ILLU1M",
    "ILLUMINA 1M-DUO": "ILLU1M",
    "ILLUMINA OMNI": "ILLUOMNI",
    "ILLUMINA OMNIEXPRESS": "ILLUOMNI",
}

# Label given to studies without a platform annotation (None = leave missing)
DEFAULT_PLATFORM: Optional[str] = None

# =============================================================================
# MODEL PRIORS (standardized outcome scale)
# =============================================================================

PRIOR_MU0_SD = 1.5
PRIOR_TAU_SD = 1.0
PRIOR_SIGMA_SD = 1.0

# =============================================================================
# SAMPLING CONFIGURATION
# =============================================================================

TEST = True  # Enable test mode with synthetic data

CHAINS = 4
ITERATIONS = 4000  # per chain, warmup included
WARMUP = 2000
TARGET_ACCEPT = 0.9
RANDOM_SEED = 1701

# Posterior-predictive replicates drawn for the in-sample model check
N_REPLICATES = 200
# Observed rows overlaid in the model-check figure
N_CHECK_ROWS = 12

HDI_PROB = 0.95
RHAT_WARN = 1.01

# =============================================================================
# EVALUATION
# =============================================================================

ONE_SIDED = True

# Hypothetical post-QC SNP count scored on every platform
HYPOTHETICAL_SNPS = 450_000

# =============================================================================
# VISUAL STYLING
# =============================================================================

PLATFORM_COLORS = {
    "AFFY500K": "#7986CB",
    "AFFY6": "#3F51B5",
    "ILLU317K": "#FFB74D",
    "ILLU550K": "#FF9800",
    "ILLU610K": "#81C784",
    "ILLU1M": "#4CAF50",
    "ILLUOMNI": "#e06666",
}

PLOT_STYLE = {
    "figure.dpi": 300,
    "font.size": 8,
    "axes.titlesize": 9,
    "axes.labelsize": 8,
    "xtick.labelsize": 6.5,
    "ytick.labelsize": 7,
    "axes.linewidth": 0.8,
    "axes.titleweight": "bold",
    "axes.titlepad": 8,
    "grid.alpha": 0.25,
    "grid.linestyle": "--",
    "grid.linewidth": 0.4,
    "pdf.fonttype": 42,
    "ps.fonttype": 42,
}


class SamplerConfig:
    """
    Sampling budget handed to the fitting engine.

    ``iterations`` counts every iteration of a chain, warmup included, so
    each chain keeps ``iterations - warmup`` draws.
    """

    def __init__(
        self,
        chains: int = CHAINS,
        iterations: int = ITERATIONS,
        warmup: int = WARMUP,
        target_accept: float = TARGET_ACCEPT,
        random_seed: int = RANDOM_SEED,
    ):
        self.chains = chains
        self.iterations = iterations
        self.warmup = warmup
        self.target_accept = target_accept
        self.random_seed = random_seed

    @property
    def draws_per_chain(self) -> int:
        return self.iterations - self.warmup

    @property
    def total_draws(self) -> int:
        return self.chains * self.draws_per_chain

    def validate(self):
        for name in ("chains", "iterations", "warmup"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"Invalid config.{name} = {value!r}: must be an integer > 0")
        if self.warmup >= self.iterations:
            raise ConfigError(
                f"Invalid config.warmup = {self.warmup}: must be < iterations ({self.iterations})"
            )
        if not 0.0 < self.target_accept < 1.0:
            raise ConfigError(f"Invalid config.target_accept = {self.target_accept}: must be in (0, 1)")
        return self

    def __repr__(self):
        return (
            f"SamplerConfig(chains={self.chains}, iterations={self.iterations}, "
            f"warmup={self.warmup}, target_accept={self.target_accept}, "
            f"random_seed={self.random_seed})"
        )


class ConfigError(Exception):
    pass


# =============================================================================
# OUTPUT PATHS
# =============================================================================

def get_output_paths(base_dir: Path = None):
    """Get output directory paths."""
    if base_dir is None:
        base_dir = Path.cwd() / "snpqc_output"

    assets_dir = base_dir / "figures"
    scores_path = base_dir / "platform_anomaly_scores.csv"
    effects_path = base_dir / "platform_effects.csv"

    return {
        "base_dir": base_dir,
        "assets_dir": assets_dir,
        "scores_path": scores_path,
        "effects_path": effects_path,
    }
