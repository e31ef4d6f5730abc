"""
Parsing utilities for factorial power analysis.

Turns the user-facing forms of an effect specification into the
``(persistence, identification) -> mean`` mapping used by the outcome
simulator. Accepted forms:

- a sequence of four numbers in cell order
  ``persistent:identifiable, persistent:anonymous, ephemeral:identifiable,
  ephemeral:anonymous``;
- a string of four comma-separated numbers (``"-.4, -.2, -.2, 0"``);
- a ``name=value`` assignment string keyed by cell labels
  (``"persistent:identifiable=-0.4, ephemeral:anonymous=0, ..."``);
- a dict keyed by cell labels or by ``(persistence, identification)`` code
  tuples.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..stats.data_generation import CELL_LABELS, CELL_ORDER, Cell

__all__ = []

_LABEL_TO_CELL: Dict[str, Cell] = {label: cell for cell, label in CELL_LABELS.items()}


class _AssignmentParser:
    """Parses comma-separated ``name=value`` effect assignment strings.

    A module-level singleton ``_parser`` is used throughout the codebase.
    """

    def _parse(self, input_string: str) -> Tuple[Dict[Cell, float], List[str]]:
        """Parse an assignment string into a cell -> mean mapping.

        Returns:
            Tuple of ``(parsed_dict, error_list)``.
        """
        parsed_items: Dict[Cell, float] = {}
        errors: List[str] = []

        for assignment in self._split_assignments(input_string):
            try:
                name, value = self._parse_assignment(assignment)
            except ValueError as e:
                errors.append(str(e))
                continue

            cell = _LABEL_TO_CELL.get(_normalise_label(name))
            if cell is None:
                errors.append(f"'{name}' not found. Available: {', '.join(_LABEL_TO_CELL)}")
                continue
            if cell in parsed_items:
                errors.append(f"'{name}' assigned more than once")
                continue

            parsed_value, error = self._parse_effect_value(value)
            if error:
                errors.append(f"{name}: {error}")
                continue
            parsed_items[cell] = parsed_value

        return parsed_items, errors

    def _split_assignments(self, input_string: str) -> List[str]:
        return [part.strip() for part in input_string.split(",") if part.strip()]

    def _parse_assignment(self, assignment: str) -> Tuple[str, str]:
        """Parse single assignment into name and value parts."""
        if "=" not in assignment:
            raise ValueError(f"Invalid format: '{assignment}'. Expected 'name=value'")
        name, value = assignment.split("=", 1)
        return name.strip(), value.strip()

    def _parse_effect_value(self, value: str) -> Tuple[float, Optional[str]]:
        """Parse effect size value."""
        try:
            return float(value), None
        except ValueError:
            return 0.0, f"Invalid effect size '{value}'. Must be a number"


_parser = _AssignmentParser()


def _normalise_label(label: str) -> str:
    return label.strip().lower().replace(" ", "").replace("*", ":").replace("+", ":")


def _parse_effects(effects: Any) -> Tuple[Optional[Dict[Cell, float]], List[str]]:
    """Parse any accepted effect form into a complete cell -> mean mapping.

    Returns:
        ``(mapping, errors)``; *mapping* is ``None`` whenever *errors* is
        non-empty.
    """
    errors: List[str] = []

    if isinstance(effects, str):
        if "=" in effects:
            parsed, errors = _parser._parse(effects)
        else:
            values = _parser._split_assignments(effects)
            if len(values) != len(CELL_ORDER):
                return None, [f"effects must contain exactly {len(CELL_ORDER)} means (one per cell), got {len(values)}"]
            parsed = {}
            for cell, value in zip(CELL_ORDER, values):
                parsed_value, error = _parser._parse_effect_value(value)
                if error:
                    errors.append(f"{CELL_LABELS[cell]}: {error}")
                parsed[cell] = parsed_value
    elif isinstance(effects, Mapping):
        parsed = {}
        for key, value in effects.items():
            cell = _LABEL_TO_CELL.get(_normalise_label(key)) if isinstance(key, str) else key
            if cell not in CELL_LABELS:
                errors.append(f"'{key}' not found. Available: {', '.join(_LABEL_TO_CELL)}")
                continue
            try:
                parsed[tuple(cell)] = float(value)
            except (TypeError, ValueError):
                errors.append(f"{key}: Invalid effect size '{value}'. Must be a number")
    elif isinstance(effects, Sequence) or hasattr(effects, "__len__"):
        if len(effects) != len(CELL_ORDER):
            return None, [f"effects must contain exactly {len(CELL_ORDER)} means (one per cell), got {len(effects)}"]
        parsed = {}
        for cell, value in zip(CELL_ORDER, effects):
            try:
                parsed[cell] = float(value)
            except (TypeError, ValueError):
                errors.append(f"{CELL_LABELS[cell]}: Invalid effect size '{value}'. Must be a number")
    else:
        return None, [f"Unsupported effects input of type {type(effects).__name__}"]

    missing = [CELL_LABELS[cell] for cell in CELL_ORDER if cell not in parsed]
    if not errors and missing:
        errors.append(f"Missing means for cells: {', '.join(missing)}")

    if errors:
        return None, errors
    return {cell: parsed[cell] for cell in CELL_ORDER}, []
