"""
Data loading, filtering and synthetic-data utilities.
"""

import os
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from snpqc import console
from snpqc.config import (
    STUDY_COL,
    OUTCOME_COL,
    PLATFORM_COL,
    SAMPLES_COL,
    LAMBDA_COL,
    KNOWN_LOCI_COL,
    REQUIRED_COLUMNS,
    MIN_STUDIES_PER_PLATFORM,
    MAX_KNOWN_LOCUS_EXCLUSIONS,
)
from snpqc.design import PlatformVocabulary
from snpqc.errors import InputValidationError


def _read_table(path: str) -> pd.DataFrame:
    sep = "," if str(path).lower().endswith(".csv") else "\t"
    return pd.read_csv(path, sep=sep)


def load_qc_tables(qc_path: str, platform_path: str) -> pd.DataFrame:
    """
    Load per-study QC fields and join the platform annotation.

    Parameters
    ----------
    qc_path : str
        CSV/TSV keyed by study id with post-QC sample and SNP counts,
        genomic-control lambda and known-locus exclusion counts
    platform_path : str
        CSV/TSV with study id and platform columns

    Returns
    -------
    pd.DataFrame
        One row per study in the QC table, platform missing where unannotated
    """
    for path in (qc_path, platform_path):
        if not os.path.exists(path):
            raise InputValidationError(f"Input table {path} does not exist", offending=path)

    qc = _read_table(qc_path)
    platforms = _read_table(platform_path)

    for name, df, needed in (
        ("QC table", qc, [STUDY_COL, OUTCOME_COL]),
        ("platform table", platforms, [STUDY_COL, PLATFORM_COL]),
    ):
        missing = [c for c in needed if c not in df.columns]
        if missing:
            raise InputValidationError(f"{name} is missing columns {missing}", offending=missing)

    dupes = platforms[STUDY_COL][platforms[STUDY_COL].duplicated()].unique()
    if len(dupes):
        raise InputValidationError(
            f"Platform table lists {len(dupes)} study id(s) more than once, e.g. {dupes[0]!r}",
            offending=list(dupes),
        )

    qc = qc.drop(columns=[PLATFORM_COL], errors="ignore")
    return qc.merge(platforms[[STUDY_COL, PLATFORM_COL]], on=STUDY_COL, how="left")


def normalize_platform_labels(
    labels: pd.Series,
    aliases: Dict[str, str],
    default: Optional[str] = None,
) -> pd.Series:
    """
    Canonicalize raw platform annotations.

    Labels are stripped and upper-cased, then mapped through ``aliases``
    (keys compared upper-case). Missing labels become ``default``.
    """
    upper_aliases = {k.strip().upper(): v for k, v in aliases.items()}

    def _canon(label):
        if pd.isna(label):
            return default
        s = str(label).strip().upper()
        if not s:
            return default
        return upper_aliases.get(s, s)

    return labels.map(_canon)


def filter_observations(
    df: pd.DataFrame,
    min_per_platform: int = MIN_STUDIES_PER_PLATFORM,
    max_known_loci: int = MAX_KNOWN_LOCUS_EXCLUSIONS,
    required: Sequence[str] = REQUIRED_COLUMNS,
) -> pd.DataFrame:
    """
    Apply the study-level inclusion rules before fitting.

    Drops, in order: studies with a missing required field, studies
    excluding ``max_known_loci`` or more prior-known loci, and platforms
    left with fewer than ``min_per_platform`` studies.
    """
    missing_cols = [c for c in required if c not in df.columns]
    if missing_cols:
        raise InputValidationError(
            f"Observations are missing columns {missing_cols}", offending=missing_cols
        )

    n0 = len(df)
    out = df.dropna(subset=list(required)).copy()
    n_missing = n0 - len(out)

    n1 = len(out)
    out = out.loc[out[KNOWN_LOCI_COL] < max_known_loci]
    n_known = n1 - len(out)

    counts = out[PLATFORM_COL].value_counts()
    small = sorted(counts.index[counts < min_per_platform])
    n2 = len(out)
    out = out.loc[~out[PLATFORM_COL].isin(small)]
    n_small = n2 - len(out)

    console.info(
        f"kept {len(out)}/{n0} studies (missing fields: -{n_missing}, "
        f"known-locus exclusions >= {max_known_loci}: -{n_known}, "
        f"platforms with < {min_per_platform} studies: -{n_small})"
    )
    if small:
        console.warn(f"dropped sparse platforms {small}")
    return out.reset_index(drop=True)


def observed_platforms(df: pd.DataFrame, platform_order: Sequence[str]) -> List[str]:
    """Platforms of ``platform_order`` present in ``df``, in that order."""
    present = set(df[PLATFORM_COL].dropna())
    return [p for p in platform_order if p in present]


def build_vocabulary(df: pd.DataFrame, platform_order: Sequence[str]) -> PlatformVocabulary:
    """
    Vocabulary of the platforms in ``df``, ordered as ``platform_order``.

    Raises InputValidationError when ``df`` carries a platform label that
    ``platform_order`` does not know, or when no platform is left at all.
    """
    known = set(platform_order)
    unknown = sorted(set(df[PLATFORM_COL].dropna()) - known)
    if unknown:
        counts = df[PLATFORM_COL].value_counts()
        detail = ", ".join(f"{p!r} ({counts[p]} studies)" for p in unknown)
        raise InputValidationError(
            f"Platforms not in the platform order: {detail}; add an alias or a code",
            offending=unknown,
        )
    return PlatformVocabulary(observed_platforms(df, platform_order))


def generate_test_data(
    platform_order: List[str],
    n_per_platform: int = 12,
    seed: int = 1701,
) -> pd.DataFrame:
    """
    Generate synthetic studies with known platform effects.

    Parameters
    ----------
    platform_order : List[str]
        Platform codes
    n_per_platform : int
        Studies per platform
    seed : int
        Random seed

    Returns
    -------
    pd.DataFrame
        Synthetic QC table with every column the pipeline reads
    """
    rng = np.random.default_rng(seed)

    # Rough post-QC SNP yield by array density
    base_snps = {
        "AFFY500K": 390_000,
        "AFFY6": 690_000,
        "ILLU317K": 300_000,
        "ILLU550K": 520_000,
        "ILLU610K": 560_000,
        "ILLU1M": 880_000,
        "ILLUOMNI": 650_000,
    }
    within_sd = 25_000

    frames = []
    for j, platform in enumerate(platform_order):
        centre = base_snps.get(platform, 500_000) + rng.normal(0.0, 10_000)
        frames.append(
            pd.DataFrame(
                {
                    STUDY_COL: [f"{platform}_{i:03d}" for i in range(n_per_platform)],
                    OUTCOME_COL: np.round(rng.normal(centre, within_sd, n_per_platform)),
                    PLATFORM_COL: platform,
                    SAMPLES_COL: rng.integers(500, 12_000, n_per_platform),
                    LAMBDA_COL: np.round(rng.normal(1.03, 0.02, n_per_platform), 3),
                    KNOWN_LOCI_COL: rng.integers(0, 60, n_per_platform),
                }
            )
        )

    return pd.concat(frames, ignore_index=True)
