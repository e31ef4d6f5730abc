"""
Simulation execution for FactorialPower.

This module contains the Monte Carlo loop: for every seed it simulates an
outcome on the (deterministic) design skeleton with a generator owned by
that repetition, fits the main-effects model, and collects the per-predictor
rows into one result table.
"""

import warnings
from dataclasses import asdict
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import InvalidDesign, RepetitionFailure
from ..progress import SimulationCancelled
from ..stats.data_generation import EffectSpec, _as_effect_spec, simulate_outcomes
from ..stats.ols import DEFAULT_PREDICTORS, fit
from ..utils.validators import _validate_on_error, _validate_seed, _validate_simulations
from .design import DesignSpec, generate_design_from_spec

RESULT_COLUMNS = ["seed", "predictor", "estimate", "std_error", "statistic", "p_value", "n_obs"]


def _as_design_spec(design_spec: Union[DesignSpec, Mapping[str, Any]]) -> DesignSpec:
    if isinstance(design_spec, DesignSpec):
        return design_spec
    if isinstance(design_spec, Mapping):
        try:
            return DesignSpec(**design_spec)
        except TypeError as e:
            raise InvalidDesign(f"Invalid design specification {dict(design_spec)!r}: {e}") from e
    raise InvalidDesign(f"design_spec must be a DesignSpec or a mapping, got {type(design_spec).__name__}")


def _single_repetition(
    seed: int,
    design: pd.DataFrame,
    effects: EffectSpec,
    predictors: Sequence[str],
) -> List[Dict[str, Any]]:
    """Simulate and fit one repetition with its own generator."""
    rng = np.random.default_rng(seed)
    outcome = simulate_outcomes(design, rng, effects)
    return [{"seed": seed, **asdict(row)} for row in fit(outcome, design, predictors)]


def _run_chunk(
    seeds: Sequence[int],
    design: pd.DataFrame,
    effects: EffectSpec,
    design_spec: DesignSpec,
    predictors: Sequence[str],
    on_error: str,
) -> Tuple[List[Dict[str, Any]], List[RepetitionFailure]]:
    """Run a batch of repetitions; worker entry point in parallel mode."""
    rows: List[Dict[str, Any]] = []
    failures: List[RepetitionFailure] = []
    for seed in seeds:
        try:
            rows.extend(_single_repetition(seed, design, effects, predictors))
        except Exception as e:
            failure = RepetitionFailure(seed, design_spec, e)
            if on_error == "raise":
                raise failure from e
            failures.append(failure)
    return rows, failures


class SimulationRunner:
    """Executes the Monte Carlo repetitions of a power analysis.

    Each repetition ``seed`` draws from ``np.random.default_rng(seed)``,
    so results are reproducible per seed and identical between sequential
    and parallel execution. A failing repetition aborts the run
    (``on_error="raise"``) or is recorded and skipped (``on_error="skip"``).
    """

    def __init__(
        self,
        n_simulations: int,
        seed_start: int = 1,
        parallel: bool = False,
        n_cores: int = 1,
        on_error: str = "raise",
        predictors: Sequence[str] = DEFAULT_PREDICTORS,
    ):
        """Initialise the simulation runner.

        Args:
            n_simulations: Number of Monte Carlo repetitions.
            seed_start: First seed; repetitions use
                ``seed_start .. seed_start + n_simulations - 1``.
            parallel: Run repetitions on a joblib worker pool.
            n_cores: Number of worker processes in parallel mode.
            on_error: ``"raise"`` (default) or ``"skip"``.
            predictors: Predictor columns fitted in every repetition.
        """
        n_sims, result = _validate_simulations(n_simulations)
        result.raise_if_invalid()
        _validate_seed(seed_start).raise_if_invalid()
        _validate_on_error(on_error).raise_if_invalid()

        self.n_simulations = n_sims
        self.seed_start = int(seed_start)
        self.parallel = parallel
        self.n_cores = n_cores
        self.on_error = on_error
        self.predictors = tuple(predictors)
        self.failures: List[RepetitionFailure] = []

    @property
    def seeds(self) -> range:
        return range(self.seed_start, self.seed_start + self.n_simulations)

    def run_power_simulations(
        self,
        design_spec: DesignSpec,
        effects: EffectSpec,
        progress=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> pd.DataFrame:
        """Run the full Monte Carlo simulation loop.

        Args:
            design_spec: Validated design specification.
            effects: Validated cell means and SD.
            progress: Optional ``ProgressReporter`` (advanced by 1 per
                repetition).
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            DataFrame with columns ``RESULT_COLUMNS``, ordered by seed.
            ``attrs["failed_seeds"]`` lists skipped repetitions.

        Raises:
            RepetitionFailure: On the first failing repetition when
                ``on_error="raise"``.
            SimulationCancelled: If *cancel_check* returns ``True``.
            RuntimeError: If every repetition failed.
        """
        design = generate_design_from_spec(design_spec)

        if self.parallel and self.n_cores > 1:
            rows, failures = self._run_parallel(design, design_spec, effects, progress, cancel_check)
        else:
            rows, failures = self._run_sequential(design, design_spec, effects, progress, cancel_check)

        self.failures = failures
        if not rows:
            raise RuntimeError(
                f"All simulations failed (seeds {self.seeds.start}..{self.seeds.stop - 1}); "
                f"first error: {failures[0] if failures else 'unknown'}"
            )

        n_failed = len(failures)
        if n_failed > 0:
            failed_pct = n_failed / self.n_simulations
            failed_seeds = [f.seed for f in failures]
            warnings.warn(
                f"{n_failed} simulations failed ({failed_pct:.1%}) and were skipped; "
                f"seeds: {failed_seeds[:10]}{'...' if n_failed > 10 else ''}",
                stacklevel=2,
            )

        table = pd.DataFrame.from_records(rows, columns=RESULT_COLUMNS)
        table = table.sort_values("seed", kind="stable", ignore_index=True)
        table.attrs["failed_seeds"] = [f.seed for f in failures]
        table.attrs["n_simulations"] = self.n_simulations
        return table

    def _run_sequential(self, design, design_spec, effects, progress, cancel_check):
        rows: List[Dict[str, Any]] = []
        failures: List[RepetitionFailure] = []
        for seed in self.seeds:
            if cancel_check is not None and cancel_check():
                raise SimulationCancelled("Simulation cancelled by user")

            chunk_rows, chunk_failures = _run_chunk([seed], design, effects, design_spec, self.predictors, self.on_error)
            rows.extend(chunk_rows)
            failures.extend(chunk_failures)

            if progress is not None:
                progress.advance(1)
        return rows, failures

    def _run_parallel(self, design, design_spec, effects, progress, cancel_check):
        from joblib import Parallel, delayed

        seeds = list(self.seeds)
        n_chunks = min(len(seeds), self.n_cores * 4)
        chunks = [chunk.tolist() for chunk in np.array_split(np.asarray(seeds), n_chunks)]

        rows: List[Dict[str, Any]] = []
        failures: List[RepetitionFailure] = []
        start = progress.current if progress is not None else 0
        try:
            chunk_results = Parallel(
                n_jobs=self.n_cores,
                backend="loky",
                verbose=0,
                return_as="generator",
            )(delayed(_run_chunk)(chunk, design, effects, design_spec, self.predictors, self.on_error) for chunk in chunks)
            for chunk, (chunk_rows, chunk_failures) in zip(chunks, chunk_results):
                if cancel_check is not None and cancel_check():
                    raise SimulationCancelled("Simulation cancelled by user")
                rows.extend(chunk_rows)
                failures.extend(chunk_failures)
                if progress is not None:
                    progress.advance(len(chunk))
        except RepetitionFailure as err:
            # loky replaces __cause__ with the remote traceback
            raise err from err.cause
        except SimulationCancelled:
            raise
        except Exception as e:
            print(f"Warning: Parallel execution failed ({e}). Falling back to sequential.")
            if progress is not None:
                progress.rewind(start)
            return self._run_sequential(design, design_spec, effects, progress, cancel_check)
        return rows, failures


def run_power_simulation(
    n_sim: int,
    design_spec: Union[DesignSpec, Mapping[str, Any]],
    effects: Union[EffectSpec, Sequence[float]],
    sd: Optional[float] = None,
    seed_start: int = 1,
    on_error: str = "raise",
    parallel: bool = False,
    n_cores: int = 1,
    progress=None,
    cancel_check: Optional[Callable[[], bool]] = None,
) -> pd.DataFrame:
    """Repeat simulate-and-fit for seeds ``seed_start .. seed_start + n_sim - 1``.

    The design specification and effects are validated before any random
    generator is created, so a misconfigured study fails with no wasted
    computation.

    Args:
        n_sim: Number of repetitions.
        design_spec: ``DesignSpec`` or a mapping of its fields
            (``groupsize``, ``topics``, ``repetitions``, optional ``levels``).
        effects: Four cell means (``CELL_ORDER``) or an ``EffectSpec``.
        sd: Shared outcome SD (defaults to the ``EffectSpec`` SD, or 1.0).
        seed_start: First seed (default 1).
        on_error: ``"raise"`` (default, fail fast) or ``"skip"``.
        parallel: Run on a joblib worker pool.
        n_cores: Worker processes for parallel mode.
        progress: Optional ``ProgressReporter``.
        cancel_check: Optional callable returning ``True`` to abort.

    Returns:
        DataFrame with one row per predictor per repetition and columns
        ``seed, predictor, estimate, std_error, statistic, p_value, n_obs``.

    Raises:
        InvalidDesign: Invalid design counts.
        InvalidEffectSpec: Malformed means or SD.
        RepetitionFailure: A repetition failed and ``on_error="raise"``.
    """
    spec = _as_design_spec(design_spec)
    effect_spec = _as_effect_spec(effects, sd)

    runner = SimulationRunner(
        n_simulations=n_sim,
        seed_start=seed_start,
        parallel=parallel,
        n_cores=n_cores,
        on_error=on_error,
    )
    return runner.run_power_simulations(spec, effect_spec, progress=progress, cancel_check=cancel_check)
