"""
Tests for parallel execution in FactorialPower.

These call the runner with ``n_cores=2`` directly, since ``set_parallel``
caps the core count at the machine's CPU count. Every test also checks
stdout, because a broken worker pool silently falls back to the
sequential loop and would still produce matching numbers.
"""

import pandas as pd
import pytest


def _joblib_available():
    """Check if joblib is available."""
    import importlib.util

    return importlib.util.find_spec("joblib") is not None


pytestmark = pytest.mark.skipif(not _joblib_available(), reason="joblib not installed")

# Duplicated predictor columns make every fit rank-deficient, which fails
# inside the worker processes where monkeypatching does not reach.
COLLINEAR = ("persistence", "persistence")


def _assert_ran_in_parallel(capsys):
    out = capsys.readouterr().out
    assert "Falling back" not in out


class TestParallelExecution:
    """Parallel repetitions must reproduce the sequential run exactly."""

    def test_rows_match_sequential(self, capsys):
        from factorialpower import run_power_simulation

        spec = {"groupsize": 5, "topics": 2, "repetitions": 2}
        effects = [-0.4, -0.2, -0.2, 0.0]

        sequential = run_power_simulation(40, spec, effects, 1.0)
        parallel = run_power_simulation(40, spec, effects, 1.0, parallel=True, n_cores=2)

        _assert_ran_in_parallel(capsys)
        pd.testing.assert_frame_equal(sequential, parallel, check_exact=False, rtol=1e-10)

    @pytest.mark.parametrize("groupsize", [5, 10, 15])
    def test_groupsize_sweep_matches_sequential(self, groupsize, capsys):
        from factorialpower import aggregate, run_power_simulation

        spec = {"groupsize": groupsize, "topics": 2, "repetitions": 2}
        effects = [-0.4, -0.2, -0.2, 0.0]

        seq = aggregate(run_power_simulation(100, spec, effects, seed_start=42), alpha=0.05)
        par = aggregate(run_power_simulation(100, spec, effects, seed_start=42, parallel=True, n_cores=2), alpha=0.05)

        _assert_ran_in_parallel(capsys)
        pd.testing.assert_frame_equal(seq, par, check_exact=False, rtol=1e-10)

    def test_progress_reaches_total(self, capsys):
        from unittest.mock import MagicMock

        from factorialpower import run_power_simulation
        from factorialpower.progress import ProgressReporter

        cb = MagicMock()
        reporter = ProgressReporter(30, cb)
        run_power_simulation(30, {"groupsize": 4, "topics": 1, "repetitions": 1}, [0, 0, 0, 0], parallel=True, n_cores=2, progress=reporter)

        _assert_ran_in_parallel(capsys)
        assert reporter.current == 30
        cb.assert_called_with(30, 30)


class TestParallelFailures:
    """Repetition failures inside workers surface like sequential ones."""

    def test_raise_keeps_seed_and_cause(self, capsys):
        from factorialpower import DesignSpec, EffectSpec, RepetitionFailure, SingularDesign
        from factorialpower.core.simulation import SimulationRunner

        runner = SimulationRunner(5, parallel=True, n_cores=2, predictors=COLLINEAR)
        with pytest.raises(RepetitionFailure) as exc_info:
            runner.run_power_simulations(DesignSpec(5, 1, 1), EffectSpec())

        _assert_ran_in_parallel(capsys)
        err = exc_info.value
        assert err.seed in runner.seeds
        assert isinstance(err.cause, SingularDesign)
        assert isinstance(err.__cause__, SingularDesign)
        assert err.__cause__.rank == 2

    def test_skip_records_every_seed(self, capsys):
        from factorialpower import DesignSpec, EffectSpec, RepetitionFailure
        from factorialpower.core.simulation import SimulationRunner

        runner = SimulationRunner(8, seed_start=3, parallel=True, n_cores=2, on_error="skip", predictors=COLLINEAR)
        with pytest.raises(RuntimeError, match="All simulations failed") as exc_info:
            runner.run_power_simulations(DesignSpec(5, 1, 1), EffectSpec())

        _assert_ran_in_parallel(capsys)
        assert not isinstance(exc_info.value, RepetitionFailure)
        assert sorted(f.seed for f in runner.failures) == list(range(3, 11))


class _PoolDiesAfterFirstChunk:
    """Stand-in for ``joblib.Parallel`` whose pool breaks after one chunk."""

    def __init__(self, **kwargs):
        pass

    def __call__(self, tasks):
        def results():
            for func, args, kwargs in tasks:
                yield func(*args, **kwargs)
                raise OSError("worker pool died")

        return results()


class TestSequentialFallback:
    def test_fallback_matches_sequential_and_counts_once(self, monkeypatch, capsys):
        import joblib

        from factorialpower import run_power_simulation
        from factorialpower.progress import ProgressReporter

        spec = {"groupsize": 4, "topics": 1, "repetitions": 1}
        effects = [-0.4, -0.2, -0.2, 0.0]
        expected = run_power_simulation(30, spec, effects)

        monkeypatch.setattr(joblib, "Parallel", _PoolDiesAfterFirstChunk)
        seen = []
        reporter = ProgressReporter(30, lambda current, total: seen.append(current), update_every=1)
        table = run_power_simulation(30, spec, effects, parallel=True, n_cores=2, progress=reporter)

        assert "Falling back to sequential" in capsys.readouterr().out
        assert reporter.current == 30
        assert max(seen) == 30
        pd.testing.assert_frame_equal(expected, table)
