"""
Integration tests for the group size sweep.
"""

from unittest.mock import MagicMock

import pytest

from tests.config import N_SIMS_CHECK, REFERENCE_EFFECTS


@pytest.fixture
def sweep_model(suppress_output):
    from factorialpower import FactorialPower

    model = FactorialPower(groupsize=20, topics=3, repetitions=4)
    model.set_effects(REFERENCE_EFFECTS)
    model.set_simulations(200)
    model.set_power(70)
    return model


class TestFindGroupsize:
    def test_first_achieved(self, sweep_model):
        result = sweep_model.find_groupsize(from_size=5, to_size=35, by=15, print_results=False, return_results=True)

        results = result["results"]
        assert results["groupsizes_tested"] == [5, 20, 35]
        # N=240 gives ~34% power, N=960 ~87%
        assert results["first_achieved"] == {"persistence": 20, "identification": 20}
        for powers in results["powers_by_test"].values():
            assert len(powers) == 3
            assert powers[0] < powers[2]

    def test_model_section(self, sweep_model):
        result = sweep_model.find_groupsize(from_size=5, to_size=15, by=5, print_results=False, return_results=True)
        model_info = result["model"]
        assert model_info["groupsize_range"] == {"from_size": 5, "to_size": 15, "by": 5}
        assert model_info["target_power"] == 70.0
        assert model_info["design"]["topics"] == 3

    def test_does_not_change_model_design(self, sweep_model):
        sweep_model.find_groupsize(from_size=5, to_size=10, by=5, print_results=False)
        assert sweep_model.design.groupsize == 20

    def test_not_reached(self, suppress_output):
        from factorialpower import FactorialPower

        model = FactorialPower(groupsize=5, topics=1, repetitions=1)
        model.set_effects((0.0, 0.0, 0.0, 0.0)).set_simulations(N_SIMS_CHECK)
        result = model.find_groupsize(target_test="persistence", from_size=2, to_size=4, by=2, print_results=False, return_results=True)
        assert result["results"]["first_achieved"] == {"persistence": None}

    def test_printed_table(self, capsys):
        from factorialpower import FactorialPower

        model = FactorialPower(groupsize=20, topics=3, repetitions=4)
        model.set_simulations(N_SIMS_CHECK)
        capsys.readouterr()
        model.find_groupsize(from_size=5, to_size=10, by=5, progress_callback=False)
        out = capsys.readouterr().out
        assert "GROUP SIZE ANALYSIS RESULTS" in out
        assert "groupsize" in out

    def test_progress_total_covers_sweep(self, sweep_model):
        sweep_model.set_simulations(N_SIMS_CHECK)
        cb = MagicMock()
        sweep_model.find_groupsize(from_size=5, to_size=15, by=5, print_results=False, progress_callback=cb)
        cb.assert_called_with(3 * N_SIMS_CHECK, 3 * N_SIMS_CHECK)

    @pytest.mark.parametrize("args", [(10, 5, 1), (0, 10, 5), (5, 10, 0)])
    def test_invalid_range(self, sweep_model, args):
        from factorialpower import InvalidDesign

        from_size, to_size, by = args
        with pytest.raises(InvalidDesign):
            sweep_model.find_groupsize(from_size=from_size, to_size=to_size, by=by, print_results=False)
