"""Statistical analysis and data generation modules."""

from . import data_generation as data_generation
from . import ols as ols
