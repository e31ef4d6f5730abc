"""
Power analysis helpers for tests.

Shared utilities for model creation, power extraction, and analytical power.
"""

import numpy as np
from scipy import stats

from tests.config import DEFAULT_ALPHA, REFERENCE_DESIGN, REFERENCE_SD, SEED


def make_model(effects, n_sims, design=None, sd=REFERENCE_SD, alpha=DEFAULT_ALPHA, seed=SEED):
    """Create a configured, quiet FactorialPower model."""
    from factorialpower import FactorialPower

    m = FactorialPower(**(design or REFERENCE_DESIGN))
    m.set_simulations(n_sims)
    m.set_seed(seed)
    m.set_alpha(alpha)
    m.set_effects(effects)
    m.set_sd(sd)
    return m


def make_null_model(n_sims, design=None, alpha=DEFAULT_ALPHA, seed=SEED):
    """Create a model with all four cell means equal."""
    return make_model((0.0, 0.0, 0.0, 0.0), n_sims, design=design, alpha=alpha, seed=seed)


def get_power(result, test_name):
    """Extract power (in %) for a predictor from a result dict."""
    return result["results"]["individual_powers"][test_name]


def analytical_main_effect_power(effect, sd, sample_size, alpha=DEFAULT_ALPHA, n_params=3):
    """Power of the t-test for an additive balanced 0/1 main effect.

    With a balanced 2x2 design the dummy has variance 1/4, so
    ``SE = 2 * sd / sqrt(N)``.
    """
    dof = sample_size - n_params
    se = 2 * sd / np.sqrt(sample_size)
    ncp = abs(effect) / se
    t_crit = stats.t.ppf(1 - alpha / 2, dof)
    return (stats.nct.sf(t_crit, dof, ncp) + stats.nct.cdf(-t_crit, dof, ncp)) * 100
