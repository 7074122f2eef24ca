"""
Exceptions raised by the QC-yield pipeline.

Every error records the pipeline stage it came from and the input that
triggered it, so a failed run can say where it stopped and why.
"""

from typing import Any


class SnpQCError(Exception):
    """Base class for pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, offending: Any = None):
        super().__init__(message)
        self.offending = offending

    def __str__(self):
        return f"[{self.stage}] {self.args[0]}"


class InputValidationError(SnpQCError, ValueError):
    stage = "input"


class UnknownPlatformError(SnpQCError, KeyError):
    stage = "encoding"


class DegenerateScaleError(SnpQCError, ValueError):
    stage = "standardization"


class SamplerConvergenceError(SnpQCError, RuntimeError):
    stage = "fitting"


class InsufficientReplicatesError(SnpQCError, ValueError):
    stage = "scoring"
