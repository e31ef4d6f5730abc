"""Core components for the FactorialPower framework.

Re-exports the pipeline stages:

- ``DesignSpec``, ``Factor``, ``generate_design``: design skeleton.
- ``SimulationRunner``, ``run_power_simulation``: Monte Carlo repetitions.
- ``ResultsProcessor``, ``aggregate``, ``build_power_result``,
  ``build_groupsize_result``: power calculation and result assembly.
"""

from .design import (
    FACTOR_COLUMNS,
    FACTORS,
    DesignSpec,
    Factor,
    attach_outcome,
    design_cell_counts,
    generate_design,
    generate_design_from_spec,
)
from .results import ResultsProcessor, aggregate, build_groupsize_result, build_power_result
from .simulation import RESULT_COLUMNS, SimulationRunner, run_power_simulation

__all__ = [
    # Design
    "Factor",
    "FACTORS",
    "FACTOR_COLUMNS",
    "DesignSpec",
    "generate_design",
    "generate_design_from_spec",
    "design_cell_counts",
    "attach_outcome",
    # Simulation
    "SimulationRunner",
    "run_power_simulation",
    "RESULT_COLUMNS",
    # Results
    "ResultsProcessor",
    "aggregate",
    "build_power_result",
    "build_groupsize_result",
]
