"""
Validation utilities for factorial power analysis.

This module provides validation functions for design counts, effect
specifications, and simulation parameters. Each validator returns a
``_ValidationResult``; callers decide which exception to raise.
"""

import math
from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, List, Optional, Sequence, Tuple, Type, Union

import numpy as np

__all__ = []


@dataclass
class _ValidationResult:
    """Errors and warnings collected by one validator.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self, exc_type: Type[Exception] = ValueError):
        """Raise *exc_type* if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise exc_type(error_msg)


class _Validator:
    """Type and range checks shared by the parameter validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type (bools are never accepted as numbers)."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Return an error message if *value* lies outside [min_val, max_val]."""
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (Real,),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> _ValidationResult:
    """Check that *value* is a finite real number within the given bounds."""
    errors: List[str] = []
    warnings: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, warnings)

    if not math.isfinite(value):
        errors.append(f"{name} must be finite, got {value}")
        return _ValidationResult(False, errors, warnings)

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_positive_count(value: Any, name: str) -> _ValidationResult:
    """Validate a strictly positive integer count."""
    errors: List[str] = []
    if isinstance(value, bool) or not isinstance(value, Integral):
        errors.append(f"{name} must be a positive integer, got {value!r} ({type(value).__name__})")
    elif value <= 0:
        errors.append(f"{name} must be a positive integer, got {value}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_design(
    groupsize: Any,
    levels_per_factor: Any,
    topics: Any,
    repetitions: Any,
) -> _ValidationResult:
    """Validate the counts that define a 2x2 factorial design.

    Every count must be a positive integer and ``levels_per_factor`` must
    describe exactly two binary factors.
    """
    errors: List[str] = []

    for value, name in [(groupsize, "groupsize"), (topics, "topics"), (repetitions, "repetitions")]:
        errors.extend(_validate_positive_count(value, name).errors)

    try:
        levels = tuple(levels_per_factor)
    except TypeError:
        errors.append(f"levels_per_factor must be a sequence of level counts, got {levels_per_factor!r}")
    else:
        for i, level_count in enumerate(levels):
            errors.extend(_validate_positive_count(level_count, f"levels_per_factor[{i}]").errors)
        if len(levels) != 2 or any(not isinstance(lc, Integral) or lc != 2 for lc in levels):
            errors.append(f"levels_per_factor must be (2, 2) for the 2x2 design, got {levels!r}")

    if errors:
        errors.append(
            f"design counts: groupsize={groupsize!r}, levels_per_factor={levels_per_factor!r}, "
            f"topics={topics!r}, repetitions={repetitions!r}"
        )

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_effects(effects: Any, n_cells: int = 4) -> Tuple[Optional[Tuple[float, ...]], _ValidationResult]:
    """Validate the cell means and coerce them to a tuple of floats."""
    errors: List[str] = []

    if isinstance(effects, (str, bytes)) or not isinstance(effects, (Sequence, np.ndarray)):
        errors.append(f"effects must be a sequence of {n_cells} numbers, got {type(effects).__name__}")
        return None, _ValidationResult(False, errors, [])

    if len(effects) != n_cells:
        errors.append(f"effects must contain exactly {n_cells} means (one per cell), got {len(effects)}")
        return None, _ValidationResult(False, errors, [])

    means = []
    for i, value in enumerate(effects):
        result = _validate_numeric_parameter(value, f"effects[{i}]")
        errors.extend(result.errors)
        if result.is_valid:
            means.append(float(value))

    if errors:
        return None, _ValidationResult(False, errors, [])
    return tuple(means), _ValidationResult(True, [], [])


def _validate_sd(sd: Any) -> _ValidationResult:
    """Validate the shared outcome standard deviation (strictly positive)."""
    result = _validate_numeric_parameter(sd, "sd")
    if result.is_valid and sd <= 0:
        result.errors.append(f"sd must be > 0, got {sd}")
        result.is_valid = False
    return result


def _validate_alpha(alpha: Any) -> _ValidationResult:
    """Validate alpha level parameter, open interval (0, 1)."""
    result = _validate_numeric_parameter(alpha, "Alpha")
    if result.is_valid and not 0 < alpha < 1:
        result.errors.append(f"Alpha must be in (0, 1), got {alpha}")
        result.is_valid = False
    return result


def _validate_power(power: Any) -> _ValidationResult:
    """Validate the target power, given in percent."""
    return _validate_numeric_parameter(power, "Power", min_val=0, max_val=100)


def _validate_simulations(n_simulations: Any) -> Tuple[int, _ValidationResult]:
    """Validate the number of Monte Carlo repetitions."""
    result = _validate_positive_count(n_simulations, "Number of simulations")

    if result.is_valid:
        n_sims = int(n_simulations)
        if n_sims < 1000:
            result.warnings.append(f"Low simulation count ({n_sims}). Consider using at least 1000 for reliable results.")
        return n_sims, result

    return 0, result


def _validate_seed(seed: Any) -> _ValidationResult:
    """Validate the first seed of the seed range (non-negative integer)."""
    errors: List[str] = []
    if isinstance(seed, bool) or not isinstance(seed, Integral):
        errors.append(f"seed must be an integer, got {type(seed).__name__}")
    elif seed < 0:
        errors.append(f"seed must be non-negative, got {seed}")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_groupsize_range(from_size: Any, to_size: Any, by: Any) -> _ValidationResult:
    """Validate group size sweep parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    for param, name in [(from_size, "from_size"), (to_size, "to_size"), (by, "by")]:
        if isinstance(param, bool) or not isinstance(param, Integral) or param <= 0:
            errors.append(f"{name} must be a positive integer, got {param}")

    if errors:
        return _ValidationResult(False, errors, warnings)

    if from_size >= to_size:
        errors.append(f"from_size ({from_size}) must be less than to_size ({to_size})")

    n_tests = len(range(from_size, to_size + 1, by))
    if n_tests > 50:
        warnings.append(f"Large number of group sizes to test ({n_tests}). This may take significant time.")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_on_error(on_error: Any) -> _ValidationResult:
    """Validate the per-repetition failure policy."""
    if on_error in ("raise", "skip"):
        return _ValidationResult(True, [], [])
    return _ValidationResult(False, [f"on_error must be 'raise' or 'skip', got {on_error!r}"], [])


def _validate_parallel_settings(enable: Any, n_cores: Optional[int]) -> Tuple[Tuple[bool, int], _ValidationResult]:
    """Validate parallel processing settings.

    Args:
        enable: True or False
        n_cores: Worker processes (positive int, or None for half the CPUs)

    Returns:
        ((enable, n_cores), _ValidationResult)
    """
    import multiprocessing as mp

    errors = []

    if enable not in (True, False):
        errors.append(f"enable must be True or False, got {enable!r}")
        return (False, 1), _ValidationResult(False, errors, [])

    max_cores = mp.cpu_count()
    validated_n_cores = max(1, max_cores // 2)

    if n_cores is not None:
        if isinstance(n_cores, bool) or not isinstance(n_cores, int) or n_cores <= 0:
            errors.append(f"n_cores must be a positive integer, got {n_cores}")
        else:
            validated_n_cores = min(n_cores, max_cores)

    return (bool(enable), validated_n_cores), _ValidationResult(len(errors) == 0, errors, [])
