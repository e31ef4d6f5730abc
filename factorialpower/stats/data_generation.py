"""
Outcome generation for factorial power simulations.

Each unit record receives one draw from ``N(mean_cell, sd)``, where the
cell mean is looked up from the record's (persistence, identification)
codes. Randomness always comes from an explicitly owned
``numpy.random.Generator`` so that concurrent repetitions never share
state.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..core.design import FACTOR_COLUMNS, IDENTIFICATION, PERSISTENCE
from ..exceptions import InvalidDesign, InvalidEffectSpec
from ..utils.validators import _validate_effects, _validate_sd

Cell = Tuple[int, int]

# Order of the four means in a plain effects sequence
CELL_ORDER: Tuple[Cell, Cell, Cell, Cell] = ((1, 1), (1, 0), (0, 1), (0, 0))

CELL_LABELS: Dict[Cell, str] = {(a, b): f"{PERSISTENCE.labels[a]}:{IDENTIFICATION.labels[b]}" for a, b in CELL_ORDER}

DEFAULT_EFFECTS = (-0.4, -0.2, -0.2, 0.0)
DEFAULT_SD = 1.0


@dataclass(frozen=True)
class EffectSpec:
    """Cell means of the 2x2 design plus one shared standard deviation.

    Attributes:
        means: Mapping ``(persistence, identification) -> mean`` covering
            all four cells.
        sd: Residual standard deviation shared by all cells.
    """

    means: Mapping[Cell, float] = field(default_factory=lambda: dict(zip(CELL_ORDER, DEFAULT_EFFECTS)))
    sd: float = DEFAULT_SD

    def __post_init__(self):
        if not isinstance(self.means, Mapping):
            raise InvalidEffectSpec(f"means must be a mapping of cell -> mean, got {type(self.means).__name__}")
        if set(self.means) != set(CELL_ORDER):
            raise InvalidEffectSpec(
                f"Effect means must cover exactly the cells {list(CELL_ORDER)}, got {sorted(self.means)}"
            )
        _, result = _validate_effects([self.means[cell] for cell in CELL_ORDER])
        result.raise_if_invalid(InvalidEffectSpec)
        _validate_sd(self.sd).raise_if_invalid(InvalidEffectSpec)
        object.__setattr__(self, "means", {cell: float(self.means[cell]) for cell in CELL_ORDER})
        object.__setattr__(self, "sd", float(self.sd))

    @classmethod
    def from_sequence(cls, effects: Sequence[float], sd: float = DEFAULT_SD) -> "EffectSpec":
        """Build from four means ordered as ``CELL_ORDER``."""
        means, result = _validate_effects(effects)
        result.raise_if_invalid(InvalidEffectSpec)
        assert means is not None
        return cls(dict(zip(CELL_ORDER, means)), sd)

    def as_tuple(self) -> Tuple[float, ...]:
        """Means in ``CELL_ORDER``."""
        return tuple(self.means[cell] for cell in CELL_ORDER)


def _as_effect_spec(effects: Union[EffectSpec, Sequence[float]], sd: Optional[float]) -> EffectSpec:
    if isinstance(effects, EffectSpec):
        return effects if sd is None else EffectSpec(effects.means, sd)
    return EffectSpec.from_sequence(effects, DEFAULT_SD if sd is None else sd)


def _as_generator(rng: Union[np.random.Generator, int]) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def cell_means_for(design: pd.DataFrame, effects: EffectSpec) -> np.ndarray:
    """Return the assumed mean of every record, in design order.

    Raises:
        InvalidDesign: If a record carries a factor code outside {0, 1}.
    """
    codes_a, codes_b = (design[column].to_numpy() for column in FACTOR_COLUMNS)

    means = np.full(len(design), np.nan)
    assigned = np.zeros(len(design), dtype=np.int64)
    for (a, b), mean in effects.means.items():
        mask = (codes_a == a) & (codes_b == b)
        means[mask] = mean
        assigned += mask

    if np.any(assigned != 1):
        bad = design.loc[assigned != 1, FACTOR_COLUMNS].drop_duplicates()
        raise InvalidDesign(
            "Design contains factor codes with no cell mean: "
            f"{list(bad.itertuples(index=False, name=None))}"
        )
    return means


def simulate_outcomes(
    design: pd.DataFrame,
    rng: Union[np.random.Generator, int],
    effects: Union[EffectSpec, Sequence[float]] = DEFAULT_EFFECTS,
    sd: Optional[float] = None,
) -> np.ndarray:
    """Draw one normal outcome per unit record.

    Args:
        design: Design table from ``generate_design``.
        rng: A ``numpy.random.Generator`` owned by the caller, or an
            integer seed used to create a fresh one.
        effects: Four cell means ordered as ``CELL_ORDER``, or an
            ``EffectSpec``.
        sd: Shared standard deviation (> 0). Defaults to the
            ``EffectSpec`` SD, or 1.0 for a plain sequence of means.

    Returns:
        Read-only float array of length ``len(design)``.

    Raises:
        InvalidEffectSpec: If *effects* does not hold exactly 4 finite
            means or *sd* is not a positive finite number.
    """
    spec = _as_effect_spec(effects, sd)
    means = cell_means_for(design, spec)

    generator = _as_generator(rng)
    outcome = generator.normal(loc=means, scale=spec.sd)
    outcome.flags.writeable = False
    return outcome
