"""
Shared pytest fixtures for FactorialPower tests.
"""

import contextlib
import io

import numpy as np
import pytest

from tests.config import REFERENCE_DESIGN, REFERENCE_EFFECTS, REFERENCE_SD


@pytest.fixture
def suppress_output():
    """Silence stdout/stderr (results tables and progress bars)."""
    with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
        yield


@pytest.fixture
def design_spec():
    """Reference design: groupsize=20, 2x2, 3 topics, 4 repetitions."""
    from factorialpower import DesignSpec

    return DesignSpec(**REFERENCE_DESIGN)


@pytest.fixture
def reference_design(design_spec):
    """Design table for the reference design."""
    from factorialpower.core.design import generate_design_from_spec

    return generate_design_from_spec(design_spec)


@pytest.fixture
def small_design():
    """A small design for fast tests (groupsize=5, 1 topic, 2 repetitions)."""
    from factorialpower import generate_design

    return generate_design(5, (2, 2), 1, 2)


@pytest.fixture
def effect_spec():
    """Reference cell means (-.4, -.2, -.2, 0) with sd=1."""
    from factorialpower import EffectSpec

    return EffectSpec.from_sequence(REFERENCE_EFFECTS, REFERENCE_SD)


@pytest.fixture
def rng():
    """Fresh generator for tests that need arbitrary data."""
    return np.random.default_rng(2137)


@pytest.fixture
def quiet_model():
    """Reference model with a small simulation count and no printing."""
    from factorialpower import FactorialPower

    with contextlib.redirect_stdout(io.StringIO()):
        model = FactorialPower(**REFERENCE_DESIGN)
        model.set_simulations(50)
        model.set_effects(REFERENCE_EFFECTS)
    return model
