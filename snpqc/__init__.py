"""
Hierarchical model of post-QC SNP yield by genotyping platform, with
posterior-predictive anomaly scoring of new studies.
"""

from snpqc.design import PlatformVocabulary, encode, encode_many
from snpqc.errors import (
    DegenerateScaleError,
    InputValidationError,
    InsufficientReplicatesError,
    SamplerConvergenceError,
    SnpQCError,
    UnknownPlatformError,
)
from snpqc.scoring import AnomalyScore, score
from snpqc.standardize import Standardizer

__all__ = [
    "AnomalyScore",
    "DegenerateScaleError",
    "InputValidationError",
    "InsufficientReplicatesError",
    "PlatformVocabulary",
    "SamplerConvergenceError",
    "SnpQCError",
    "Standardizer",
    "UnknownPlatformError",
    "encode",
    "encode_many",
    "score",
]

__version__ = "0.1.0"
