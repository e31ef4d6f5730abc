"""
Exception hierarchy for FactorialPower.

Validation errors (``InvalidDesign``, ``InvalidEffectSpec``) are raised
before any simulation runs. ``SingularDesign`` comes from the model fitter,
and ``RepetitionFailure`` wraps any error raised inside one Monte Carlo
repetition together with the seed needed to reproduce it.
"""

from typing import Any, Optional


class FactorialPowerError(Exception):
    """Base class for all FactorialPower errors."""


class InvalidDesign(FactorialPowerError, ValueError):
    """Raised when design counts (group size, levels, topics, repetitions) are invalid."""


class InvalidEffectSpec(FactorialPowerError, ValueError):
    """Raised when the cell means or the shared SD are malformed."""


class SingularDesign(FactorialPowerError, ArithmeticError):
    """Raised when the OLS design matrix is rank-deficient.

    Attributes:
        rank: Numerical rank of the design matrix (with intercept).
        n_columns: Number of columns of the design matrix.
    """

    def __init__(self, message: str, rank: Optional[int] = None, n_columns: Optional[int] = None):
        super().__init__(message)
        self.rank = rank
        self.n_columns = n_columns


class RepetitionFailure(FactorialPowerError, RuntimeError):
    """Raised when a single Monte Carlo repetition fails.

    The original exception is chained as ``__cause__``.

    Attributes:
        seed: Seed of the failing repetition.
        design_spec: Design specification used by the run.
    """

    def __init__(self, seed: int, design_spec: Any, cause: BaseException):
        self.seed = seed
        self.design_spec = design_spec
        self.cause = cause
        super().__init__(
            f"Repetition with seed={seed} failed ({type(cause).__name__}: {cause}). "
            f"Design: {design_spec!r}. Re-run with the same seed to reproduce."
        )

    def __reduce__(self):
        # Keeps the exception picklable across joblib worker processes
        return (type(self), (self.seed, self.design_spec, self.cause))
