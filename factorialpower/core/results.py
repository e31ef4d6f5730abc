"""
Results processing for FactorialPower.

This module turns the per-repetition fit table into power estimates and
assembles the result dictionaries returned by the public API.
"""

from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..stats.ols import FitResultRow
from ..utils.validators import _validate_alpha

SUMMARY_COLUMNS = ["predictor", "power", "mean_effect", "n_sims", "mc_se"]


def _as_frame(rows: Union[pd.DataFrame, Iterable[FitResultRow]]) -> pd.DataFrame:
    if isinstance(rows, pd.DataFrame):
        return rows
    records = [asdict(row) if is_dataclass(row) else dict(row) for row in rows]
    return pd.DataFrame.from_records(records, columns=None if records else ["predictor", "estimate", "p_value"])


def aggregate(rows: Union[pd.DataFrame, Iterable[FitResultRow]], alpha: float = 0.05) -> pd.DataFrame:
    """Compute empirical power and mean estimate per predictor.

    Args:
        rows: Fit rows (a DataFrame with ``predictor``, ``estimate`` and
            ``p_value`` columns, or an iterable of ``FitResultRow``).
        alpha: Significance threshold; a row counts as a rejection when
            ``p_value < alpha``.

    Returns:
        DataFrame with columns ``predictor, power, mean_effect, n_sims,
        mc_se``, one row per distinct predictor in first-appearance order.
        ``power`` is a proportion in [0, 1].
    """
    _validate_alpha(alpha).raise_if_invalid()
    table = _as_frame(rows)

    if table.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    grouped = table.assign(rejected=table["p_value"] < alpha).groupby("predictor", sort=False)
    summary = grouped.agg(
        power=("rejected", "mean"),
        mean_effect=("estimate", "mean"),
        n_sims=("rejected", "size"),
    ).reset_index()

    summary["power"] = summary["power"].astype(float)
    summary["n_sims"] = summary["n_sims"].astype(int)
    summary["mc_se"] = np.sqrt(summary["power"] * (1.0 - summary["power"]) / summary["n_sims"])
    return summary[SUMMARY_COLUMNS]


class ResultsProcessor:
    """Converts simulation output into power estimates and sweep summaries.

    Computes individual power per predictor and aggregates group-size
    sweep results to find the first group size that achieves the target
    power.
    """

    def __init__(self, target_power: float = 80.0, alpha: float = 0.05):
        """Initialise the results processor.

        Args:
            target_power: Target power as a percentage (0–100).
            alpha: Significance level used for rejections.
        """
        self.target_power = target_power
        self.alpha = alpha

    def calculate_powers(self, rows: pd.DataFrame) -> Dict[str, Any]:
        """
        Calculate power estimates from a simulation result table.

        Args:
            rows: Result table from the simulation runner

        Returns:
            Dictionary with the summary table, per-predictor powers in
            percent, and the number of repetitions used
        """
        summary = aggregate(rows, self.alpha)
        n_used = int(rows["seed"].nunique()) if "seed" in rows else int(summary["n_sims"].max())

        return {
            "summary": summary,
            "individual_powers": dict(zip(summary["predictor"], summary["power"] * 100)),
            "mean_effects": dict(zip(summary["predictor"], summary["mean_effect"])),
            "n_simulations_used": n_used,
            "n_simulations_failed": len(rows.attrs.get("failed_seeds", [])),
        }

    def process_groupsize_results(
        self,
        results: List[Tuple[int, Dict]],
        target_tests: List[str],
    ) -> Dict[str, Any]:
        """
        Process power results from a group size sweep.

        Args:
            results: List of (groupsize, power_result) tuples
            target_tests: Predictors to report

        Returns:
            Dictionary with powers per predictor and the first group size
            reaching the target power (``None`` if never reached)
        """
        powers_by_test: Dict[str, List[float]] = {test: [] for test in target_tests}
        first_achieved: Dict[str, Optional[int]] = dict.fromkeys(target_tests)

        for groupsize, power_result in results:
            for test in target_tests:
                power = power_result["results"]["individual_powers"][test]
                powers_by_test[test].append(power)

                if power >= self.target_power and first_achieved[test] is None:
                    first_achieved[test] = groupsize

        return {
            "groupsizes_tested": [r[0] for r in results],
            "powers_by_test": powers_by_test,
            "first_achieved": first_achieved,
        }


def build_power_result(
    design: Dict[str, Any],
    effects: Dict[str, float],
    sd: float,
    alpha: float,
    n_simulations: int,
    seed_start: int,
    target_power: float,
    parallel: bool,
    power_results: Dict,
    rows: pd.DataFrame,
) -> Dict[str, Any]:
    """
    Build complete power analysis result dictionary.

    Args:
        design: Design counts (groupsize, levels, topics, repetitions, sample_size)
        effects: Cell means keyed by cell label
        sd: Shared outcome SD
        alpha: Significance level
        n_simulations: Number of repetitions requested
        seed_start: First seed of the seed range
        target_power: Target power level
        parallel: Whether parallel processing was used
        power_results: Results from power calculation
        rows: Per-repetition fit table

    Returns:
        Complete result dictionary
    """
    return {
        "model": {
            "design": design,
            "effects": effects,
            "sd": sd,
            "alpha": alpha,
            "n_simulations": power_results.get("n_simulations_used", n_simulations),
            "seed_start": seed_start,
            "target_power": target_power,
            "parallel": parallel,
        },
        "results": {**power_results, "rows": rows},
    }


def build_groupsize_result(
    design: Dict[str, Any],
    effects: Dict[str, float],
    sd: float,
    groupsizes: List[int],
    alpha: float,
    n_simulations: int,
    target_power: float,
    parallel: bool,
    analysis_results: Dict,
) -> Dict[str, Any]:
    """
    Build complete group size sweep result dictionary.

    Args:
        design: Fixed design counts (topics, repetitions, levels)
        effects: Cell means keyed by cell label
        sd: Shared outcome SD
        groupsizes: Group sizes tested
        alpha: Significance level
        n_simulations: Repetitions per group size
        target_power: Target power level
        parallel: Whether parallel processing was used
        analysis_results: Results from the sweep

    Returns:
        Complete result dictionary
    """
    return {
        "model": {
            "design": design,
            "effects": effects,
            "sd": sd,
            "alpha": alpha,
            "n_simulations": n_simulations,
            "target_power": target_power,
            "parallel": parallel,
            "groupsize_range": {
                "from_size": groupsizes[0],
                "to_size": groupsizes[-1],
                "by": groupsizes[1] - groupsizes[0] if len(groupsizes) > 1 else 1,
            },
        },
        "results": analysis_results,
    }
