"""
Power monotonicity tests.

Power must increase with effect size, group size, and alpha.
"""

import contextlib
import io

import pytest

from tests.config import N_SIMS_ORDERING as N_SIMS, REFERENCE_DESIGN, SEED
from tests.helpers.power_helpers import get_power, make_model


@pytest.fixture(autouse=True)
def _quiet():
    """Suppress stdout for all tests in this module."""
    with contextlib.redirect_stdout(io.StringIO()):
        yield


class TestPowerMonotonicity:
    """Power must increase with effect size, group size, and alpha."""

    def test_power_increases_with_effect_size(self):
        """Larger difference between levels → higher power."""
        powers = []
        for scale in [0.25, 0.5, 1.0]:
            effects = tuple(scale * m for m in (-0.4, -0.2, -0.2, 0.0))
            m = make_model(effects, N_SIMS, seed=SEED)
            result = m.find_power(target_test="persistence", print_results=False, return_results=True)
            powers.append(get_power(result, "persistence"))

        for i in range(len(powers) - 1):
            assert powers[i] < powers[i + 1], f"Power not monotonic in effect size: {powers}"

    def test_power_increases_with_groupsize(self):
        """Larger groups → higher power (for non-zero effect)."""
        powers = []
        for groupsize in [5, 10, 20]:
            design = {**REFERENCE_DESIGN, "groupsize": groupsize}
            m = make_model((-0.4, -0.2, -0.2, 0.0), N_SIMS, design=design, seed=SEED)
            result = m.find_power(target_test="identification", print_results=False, return_results=True)
            powers.append(get_power(result, "identification"))

        for i in range(len(powers) - 1):
            assert powers[i] < powers[i + 1], f"Power not monotonic in groupsize: {powers}"

    def test_power_increases_with_topics(self):
        powers = []
        for topics in [1, 3]:
            design = {**REFERENCE_DESIGN, "topics": topics}
            m = make_model((-0.4, -0.2, -0.2, 0.0), N_SIMS, design=design, seed=SEED)
            result = m.find_power(target_test="persistence", print_results=False, return_results=True)
            powers.append(get_power(result, "persistence"))

        assert powers[0] < powers[1], f"Power not monotonic in topics: {powers}"

    def test_power_non_decreasing_with_alpha(self):
        """Same seeds, looser alpha → at least as many rejections."""
        powers = []
        for alpha in [0.01, 0.05, 0.10]:
            m = make_model((-0.2, -0.1, -0.1, 0.0), N_SIMS, alpha=alpha, seed=SEED)
            result = m.find_power(target_test="persistence", print_results=False, return_results=True)
            powers.append(get_power(result, "persistence"))

        for i in range(len(powers) - 1):
            assert powers[i] <= powers[i + 1], f"Power decreased with alpha: {powers}"
        assert powers[0] < powers[-1]

    def test_power_decreases_with_sd(self):
        powers = []
        for sd in [0.5, 1.0, 2.0]:
            m = make_model((-0.4, -0.2, -0.2, 0.0), N_SIMS, sd=sd, seed=SEED)
            result = m.find_power(target_test="persistence", print_results=False, return_results=True)
            powers.append(get_power(result, "persistence"))

        assert powers[0] >= powers[1] > powers[2], f"Power not decreasing in sd: {powers}"
