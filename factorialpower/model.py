"""
FactorialPower - Monte Carlo power analysis for a 2x2 factorial design.

This module provides the main FactorialPower class for estimating the power
to detect the persistence and identification main effects by simulation.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from .core import (
    DesignSpec,
    ResultsProcessor,
    SimulationRunner,
    build_groupsize_result,
    build_power_result,
)
from .exceptions import InvalidDesign, InvalidEffectSpec
from .stats.data_generation import CELL_LABELS, EffectSpec
from .stats.ols import DEFAULT_PREDICTORS
from .utils.parsers import _parse_effects
from .utils.validators import (
    _validate_alpha,
    _validate_groupsize_range,
    _validate_on_error,
    _validate_parallel_settings,
    _validate_power,
    _validate_sd,
    _validate_seed,
    _validate_simulations,
)


class FactorialPower:
    """Monte Carlo power analysis for a persistence x identification study.

    Every repetition simulates one full study: ``groupsize`` participants in
    each of the 2 x 2 x topics x repetitions groups, with outcomes drawn
    from the assumed cell means and a shared SD. A main-effects OLS model
    is fitted and the p-values of both factors are collected; power is
    the share of repetitions with ``p < alpha``.

    Configuration methods (``set_*``) validate immediately and return
    ``self`` for method chaining.

    Attributes:
        design: Current ``DesignSpec``.
        effects: Current ``EffectSpec`` (cell means and SD).
        seed: First seed of the seed range (default: 1).
        power: Target power level in percent (default: 80.0).
        alpha: Significance level (default: 0.05).
        n_simulations: Number of Monte Carlo repetitions (default: 1000).
        parallel: Whether repetitions run on a joblib worker pool.
        n_cores: Number of CPU cores for parallel execution.
        on_error: Per-repetition failure policy (``"raise"`` or ``"skip"``).

    Example:
        >>> model = FactorialPower(groupsize=20, topics=3, repetitions=4)
        >>> model.set_effects("-.4, -.2, -.2, 0").set_sd(1.0)
        >>> model.find_power()
    """

    def __init__(self, groupsize: int = 20, topics: int = 3, repetitions: int = 4):
        """Initialise with a design and the default effect assumptions.

        Args:
            groupsize: Participants per factor x topic x repetition cell.
            topics: Number of topics.
            repetitions: Number of repetitions per topic.

        Raises:
            InvalidDesign: If any count is not a positive integer.
        """
        self.design = DesignSpec(groupsize=groupsize, topics=topics, repetitions=repetitions)
        self.effects = EffectSpec()

        self.seed = 1
        self.power = 80.0
        self.alpha = 0.05
        self.n_simulations = 1000

        import multiprocessing as mp

        self.parallel = False
        self.n_cores = max(1, (mp.cpu_count() or 1) // 2)

        self.on_error = "raise"

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_design(
        self,
        groupsize: Optional[int] = None,
        topics: Optional[int] = None,
        repetitions: Optional[int] = None,
    ):
        """Update design counts; unspecified counts are kept.

        Returns:
            self: For method chaining.

        Raises:
            InvalidDesign: If any resulting count is not a positive integer.
        """
        changes = {
            name: value
            for name, value in (("groupsize", groupsize), ("topics", topics), ("repetitions", repetitions))
            if value is not None
        }
        self.design = replace(self.design, **changes)
        return self

    def set_effects(self, effects: Union[str, Sequence[float], Dict[Any, float]]):
        """Set the assumed cell means.

        Args:
            effects: Four means ordered ``persistent:identifiable,
                persistent:anonymous, ephemeral:identifiable,
                ephemeral:anonymous`` as a sequence or comma-separated
                string, an assignment string such as
                ``"persistent:identifiable=-0.4, ..."``, or a dict keyed by
                cell label or ``(persistence, identification)`` codes.

        Returns:
            self: For method chaining.

        Raises:
            InvalidEffectSpec: If the input does not define exactly the
                four cell means.
        """
        means, errors = _parse_effects(effects)
        if errors:
            raise InvalidEffectSpec("Validation failed:\n" + "\n".join(f"• {err}" for err in errors))
        assert means is not None
        self.effects = EffectSpec(means, self.effects.sd)
        return self

    def set_sd(self, sd: float):
        """Set the shared outcome standard deviation (> 0).

        Returns:
            self: For method chaining.
        """
        _validate_sd(sd).raise_if_invalid(InvalidEffectSpec)
        self.effects = EffectSpec(self.effects.means, sd)
        return self

    def set_seed(self, seed: int = 1):
        """Set the first seed; repetitions use ``seed .. seed + n_simulations - 1``.

        Returns:
            self: For method chaining.
        """
        _validate_seed(seed).raise_if_invalid()
        self.seed = int(seed)
        print(f"Seed set to: {seed}")
        return self

    def set_power(self, power: float):
        """Set the target power (percent) used by ``find_groupsize``.

        Returns:
            self: For method chaining.
        """
        _validate_power(power).raise_if_invalid()
        self.power = float(power)
        return self

    def set_alpha(self, alpha: float):
        """Set the significance level for hypothesis testing.

        Args:
            alpha: Type-I error rate in (0, 1). Default is 0.05.

        Returns:
            self: For method chaining.
        """
        _validate_alpha(alpha).raise_if_invalid()
        self.alpha = float(alpha)
        return self

    def set_simulations(self, n_simulations: int):
        """Set the number of Monte Carlo repetitions.

        Returns:
            self: For method chaining.
        """
        n_sims, result = _validate_simulations(n_simulations)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid()
        self.n_simulations = n_sims
        return self

    def set_parallel(self, enable: bool = True, n_cores: Optional[int] = None):
        """Enable or disable parallel repetitions.

        Args:
            enable: ``True`` for a worker pool, ``False`` for sequential.
            n_cores: Number of CPU cores to use. Defaults to
                ``cpu_count // 2``.

        Returns:
            self: For method chaining.
        """
        if enable is False:
            self.parallel, self.n_cores = False, 1
            return self

        settings, result = _validate_parallel_settings(enable, n_cores)
        result.raise_if_invalid()
        self.parallel, self.n_cores = settings
        return self

    def set_on_error(self, on_error: str):
        """Choose how a failing repetition is handled.

        Args:
            on_error: ``"raise"`` aborts the run with ``RepetitionFailure``
                (default); ``"skip"`` records the seed and continues.

        Returns:
            self: For method chaining.
        """
        _validate_on_error(on_error).raise_if_invalid()
        self.on_error = on_error
        return self

    # =========================================================================
    # Analysis
    # =========================================================================

    def find_power(
        self,
        target_test: Union[str, List[str]] = "all",
        print_results: bool = True,
        return_results: bool = False,
        progress_callback=None,
        cancel_check=None,
    ):
        """
        Estimate power for the current design and effect assumptions.

        Args:
            target_test: Predictor(s) to report - "all", a name, or a list
            print_results: Whether to print the summary table
            return_results: Return results dict
            progress_callback: Progress reporting control:
                - ``None`` (default): auto-use ``PrintReporter`` when
                  *print_results* is ``True``.
                - ``False``: explicitly disable progress.
                - callable ``(current, total)``: custom callback.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            dict or None: If *return_results* is ``True``, a dict with keys
            ``"model"`` (settings) and ``"results"`` (``"summary"``
            DataFrame, per-predictor powers in percent, and the
            per-repetition ``"rows"`` table).
        """
        target_tests = self._parse_target_tests(target_test)
        reporter = self._make_reporter(progress_callback, print_results, self.n_simulations)

        if reporter is not None:
            reporter.start()
        result = self._run_find_power(self.design, target_tests, progress=reporter, cancel_check=cancel_check)
        if reporter is not None:
            reporter.finish()

        if print_results:
            print(f"\n{'=' * 80}")
            print("MONTE CARLO POWER ANALYSIS RESULTS")
            print(f"{'=' * 80}")
            print(self._describe_settings(self.design))
            print(result["results"]["summary"].to_string(index=False))

        return result if return_results else None

    def find_groupsize(
        self,
        target_test: Union[str, List[str]] = "all",
        from_size: int = 5,
        to_size: int = 50,
        by: int = 5,
        print_results: bool = True,
        return_results: bool = False,
        progress_callback=None,
        cancel_check=None,
    ):
        """
        Sweep group sizes and find the smallest one reaching the target power.

        Args:
            target_test: Predictor(s) to report - "all", a name, or a list
            from_size: Smallest group size tested
            to_size: Largest group size tested (inclusive)
            by: Step between group sizes
            print_results: Whether to print the sweep table
            return_results: Return results dict
            progress_callback: See ``find_power``
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            dict or None: If *return_results* is ``True``, a dict with keys
            ``"model"`` and ``"results"`` (``"groupsizes_tested"``,
            ``"powers_by_test"``, ``"first_achieved"``).
        """
        result = _validate_groupsize_range(from_size, to_size, by)
        for warning in result.warnings:
            print(f"Warning: {warning}")
        result.raise_if_invalid(InvalidDesign)

        target_tests = self._parse_target_tests(target_test)
        groupsizes = list(range(from_size, to_size + 1, by))

        from .progress import compute_total_simulations

        total = compute_total_simulations(self.n_simulations, len(groupsizes))
        reporter = self._make_reporter(progress_callback, print_results, total)
        if reporter is not None:
            reporter.start()

        results = []
        for groupsize in groupsizes:
            design = replace(self.design, groupsize=groupsize)
            power_result = self._run_find_power(design, target_tests, progress=reporter, cancel_check=cancel_check)
            results.append((groupsize, power_result))

        if reporter is not None:
            reporter.finish()

        processor = ResultsProcessor(target_power=self.power, alpha=self.alpha)
        analysis_results = processor.process_groupsize_results(results, target_tests)

        sweep = build_groupsize_result(
            design={"topics": self.design.topics, "repetitions": self.design.repetitions, "levels": self.design.levels},
            effects=self._labelled_effects(),
            sd=self.effects.sd,
            groupsizes=groupsizes,
            alpha=self.alpha,
            n_simulations=self.n_simulations,
            target_power=self.power,
            parallel=self.parallel,
            analysis_results=analysis_results,
        )

        if print_results:
            table = pd.DataFrame({"groupsize": groupsizes, **analysis_results["powers_by_test"]})
            print(f"\n{'=' * 80}")
            print("GROUP SIZE ANALYSIS RESULTS")
            print(f"{'=' * 80}")
            print(f"Target power: {self.power:.1f}%")
            print(table.to_string(index=False, float_format=lambda v: f"{v:.1f}"))
            for test, groupsize in analysis_results["first_achieved"].items():
                reached = f"groupsize {groupsize}" if groupsize is not None else f"not reached by groupsize {to_size}"
                print(f"{test}: {reached}")

        return sweep if return_results else None

    # =========================================================================
    # Internals
    # =========================================================================

    def _run_find_power(self, design: DesignSpec, target_tests, progress=None, cancel_check=None):
        """Run the Monte Carlo loop for one design and return a power result dict."""
        runner = SimulationRunner(
            n_simulations=self.n_simulations,
            seed_start=self.seed,
            parallel=self.parallel,
            n_cores=self.n_cores,
            on_error=self.on_error,
        )
        rows = runner.run_power_simulations(design, self.effects, progress=progress, cancel_check=cancel_check)

        processor = ResultsProcessor(target_power=self.power, alpha=self.alpha)
        power_results = processor.calculate_powers(rows)
        summary = power_results["summary"]
        power_results["summary"] = summary[summary["predictor"].isin(target_tests)].reset_index(drop=True)
        power_results["individual_powers"] = {t: power_results["individual_powers"][t] for t in target_tests}
        power_results["mean_effects"] = {t: power_results["mean_effects"][t] for t in target_tests}

        return build_power_result(
            design={
                "groupsize": design.groupsize,
                "levels": design.levels,
                "topics": design.topics,
                "repetitions": design.repetitions,
                "sample_size": design.sample_size,
            },
            effects=self._labelled_effects(),
            sd=self.effects.sd,
            alpha=self.alpha,
            n_simulations=self.n_simulations,
            seed_start=self.seed,
            target_power=self.power,
            parallel=self.parallel,
            power_results=power_results,
            rows=rows,
        )

    def _parse_target_tests(self, target_test: Union[str, List[str]]) -> List[str]:
        """Resolve *target_test* into a list of predictor names."""
        if target_test == "all":
            return list(DEFAULT_PREDICTORS)
        tests = [target_test] if isinstance(target_test, str) else list(target_test)
        unknown = [t for t in tests if t not in DEFAULT_PREDICTORS]
        if unknown or not tests:
            raise ValueError(f"Unknown target test(s) {unknown}. Available: {', '.join(DEFAULT_PREDICTORS)} or 'all'")
        return tests

    @staticmethod
    def _make_reporter(progress_callback, print_results: bool, total: int):
        from .progress import PrintReporter, ProgressReporter

        if progress_callback is None:
            effective_cb = PrintReporter() if print_results else None
        elif progress_callback is False:
            effective_cb = None
        else:
            effective_cb = progress_callback

        return ProgressReporter(total, effective_cb) if effective_cb is not None else None

    def _labelled_effects(self) -> Dict[str, float]:
        return {CELL_LABELS[cell]: mean for cell, mean in self.effects.means.items()}

    def _describe_settings(self, design: DesignSpec) -> str:
        means = ", ".join(f"{label}={mean:g}" for label, mean in self._labelled_effects().items())
        return (
            f"Design: groupsize={design.groupsize}, topics={design.topics}, "
            f"repetitions={design.repetitions} (N={design.sample_size})\n"
            f"Cell means: {means}; sd={self.effects.sd:g}\n"
            f"alpha={self.alpha}, repetitions simulated={self.n_simulations}, seeds from {self.seed}\n"
        )

    def __repr__(self):
        return (
            f"FactorialPower(groupsize={self.design.groupsize}, topics={self.design.topics}, "
            f"repetitions={self.design.repetitions}, n_simulations={self.n_simulations}, alpha={self.alpha})"
        )
