"""
Design skeleton for the 2x2 factorial study.

Builds the full cross of participants, factor levels, topics and
repetitions, recodes each binary factor to a 0/1 dummy, and numbers the
factor x topic x repetition cells.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from ..exceptions import InvalidDesign
from ..utils.validators import _validate_design


@dataclass(frozen=True)
class Factor:
    """A binary experimental dimension.

    Attributes:
        name: Column name of the 0/1 dummy in the design table.
        labels: Labels of raw level 1 and raw level 2 (coded 0 and 1).
    """

    name: str
    labels: Tuple[str, str]

    @property
    def levels(self) -> int:
        return len(self.labels)


PERSISTENCE = Factor("persistence", ("ephemeral", "persistent"))
IDENTIFICATION = Factor("identification", ("anonymous", "identifiable"))
FACTORS: Tuple[Factor, Factor] = (PERSISTENCE, IDENTIFICATION)

FACTOR_COLUMNS = [factor.name for factor in FACTORS]
DESIGN_COLUMNS = ["id", "participant", *FACTOR_COLUMNS, "topic", "repetition", "group"]


@dataclass(frozen=True)
class DesignSpec:
    """Counts that fully determine the design skeleton.

    Validated on construction, so an invalid study design fails before
    any simulation work starts.

    Attributes:
        groupsize: Participants per factor x topic x repetition cell.
        topics: Number of discussion topics.
        repetitions: Number of repetitions of each topic.
        levels: Level counts of the two factors (always ``(2, 2)``).
    """

    groupsize: int
    topics: int
    repetitions: int
    levels: Tuple[int, int] = (2, 2)

    def __post_init__(self):
        _validate_design(self.groupsize, self.levels, self.topics, self.repetitions).raise_if_invalid(InvalidDesign)
        object.__setattr__(self, "levels", tuple(int(lc) for lc in self.levels))

    @property
    def n_cells(self) -> int:
        """Number of factor-level combinations (4 for 2x2)."""
        return int(np.prod(self.levels))

    @property
    def n_groups(self) -> int:
        """Number of factor x topic x repetition groups."""
        return self.n_cells * self.topics * self.repetitions

    @property
    def sample_size(self) -> int:
        """Total number of unit records."""
        return self.groupsize * self.n_groups


def generate_design(
    groupsize: int,
    levels_per_factor: Sequence[int] = (2, 2),
    topics: int = 1,
    repetitions: int = 1,
) -> pd.DataFrame:
    """Build the design skeleton as a fresh table of unit records.

    Rows are the full cross product participant x persistence x
    identification x topic x repetition, with the participant index
    varying fastest. Raw factor levels 1/2 are recoded to 0/1, and every
    run of ``groupsize`` consecutive rows shares one ``group`` id.

    Args:
        groupsize: Participants per cell.
        levels_per_factor: Level counts of the two factors; must be ``(2, 2)``.
        topics: Number of topics.
        repetitions: Number of repetitions.

    Returns:
        DataFrame with columns ``id, participant, persistence,
        identification, topic, repetition, group`` (all integers).

    Raises:
        InvalidDesign: If any count is non-positive or non-integer, or the
            factor levels are not ``(2, 2)``.
    """
    _validate_design(groupsize, levels_per_factor, topics, repetitions).raise_if_invalid(InvalidDesign)

    factor_a, factor_b = FACTORS
    levels_a, levels_b = (int(lc) for lc in levels_per_factor)
    # Reversed shape + C order makes the first axis (participant) vary fastest
    grid = np.indices((repetitions, topics, levels_b, levels_a, groupsize)).reshape(5, -1)
    repetition, topic, raw_b, raw_a, participant = grid + 1

    n_rows = participant.shape[0]
    row_index = np.arange(n_rows)

    return pd.DataFrame(
        {
            "id": row_index + 1,
            "participant": participant,
            factor_a.name: raw_a - 1,
            factor_b.name: raw_b - 1,
            "topic": topic,
            "repetition": repetition,
            "group": row_index // groupsize + 1,
        },
        columns=DESIGN_COLUMNS,
    )


def generate_design_from_spec(spec: DesignSpec) -> pd.DataFrame:
    """Build the design skeleton for a validated ``DesignSpec``."""
    return generate_design(spec.groupsize, spec.levels, spec.topics, spec.repetitions)


def design_cell_counts(design: pd.DataFrame) -> pd.Series:
    """Count records per (persistence, identification, topic, repetition) cell."""
    return design.groupby([*FACTOR_COLUMNS, "topic", "repetition"]).size()


def attach_outcome(design: pd.DataFrame, outcome: np.ndarray, name: str = "outcome") -> pd.DataFrame:
    """Return a copy of *design* with the simulated outcome as an extra column.

    The input table is left untouched.
    """
    outcome = np.asarray(outcome, dtype=np.float64)
    if outcome.shape != (len(design),):
        raise ValueError(f"outcome has shape {outcome.shape}, expected ({len(design)},)")
    return design.assign(**{name: outcome})
