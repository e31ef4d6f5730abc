"""FactorialPower - Monte Carlo power analysis for factorial designs.

Simulates a persistence x identification (2x2) study crossed with topics
and repetitions, fits a main-effects OLS model to each simulated dataset,
and reports the share of repetitions in which each main effect is
significant.

Example:
    >>> from factorialpower import FactorialPower
    >>>
    >>> model = FactorialPower(groupsize=20, topics=3, repetitions=4)
    >>> model.set_effects("-.4, -.2, -.2, 0").set_sd(1.0)
    >>> model.find_power()
    >>>
    >>> model.find_groupsize(from_size=10, to_size=60, by=10)
"""

from importlib.metadata import version as _get_version

from .core import DesignSpec, aggregate, generate_design, run_power_simulation
from .exceptions import (
    FactorialPowerError,
    InvalidDesign,
    InvalidEffectSpec,
    RepetitionFailure,
    SingularDesign,
)
from .model import FactorialPower
from .progress import PrintReporter, ProgressReporter, SimulationCancelled, TqdmReporter
from .stats.data_generation import EffectSpec, simulate_outcomes
from .stats.ols import FitResultRow, fit

__version__ = _get_version("FactorialPower")

__all__ = [
    "FactorialPower",
    # Pipeline
    "DesignSpec",
    "EffectSpec",
    "FitResultRow",
    "generate_design",
    "simulate_outcomes",
    "fit",
    "run_power_simulation",
    "aggregate",
    # Errors
    "FactorialPowerError",
    "InvalidDesign",
    "InvalidEffectSpec",
    "SingularDesign",
    "RepetitionFailure",
    "SimulationCancelled",
    # Progress
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
