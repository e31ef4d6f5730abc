"""
Tests for effect specification parsing.
"""

import numpy as np
import pytest

from factorialpower.utils.parsers import _normalise_label, _parse_effects, _parser

EXPECTED = {(1, 1): -0.4, (1, 0): -0.2, (0, 1): -0.2, (0, 0): 0.0}


class TestParseEffects:
    """Test every accepted effect form."""

    def test_sequence(self):
        parsed, errors = _parse_effects([-0.4, -0.2, -0.2, 0])
        assert errors == []
        assert parsed == EXPECTED

    def test_numpy_array(self):
        parsed, errors = _parse_effects(np.array([-0.4, -0.2, -0.2, 0.0]))
        assert errors == []
        assert parsed == EXPECTED

    def test_comma_string(self):
        parsed, errors = _parse_effects("-.4, -.2, -.2, 0")
        assert errors == []
        assert parsed == EXPECTED

    def test_assignment_string_any_order(self):
        parsed, errors = _parse_effects(
            "ephemeral:anonymous=0, persistent:identifiable=-0.4, "
            "ephemeral:identifiable=-0.2, persistent:anonymous=-0.2"
        )
        assert errors == []
        assert parsed == EXPECTED
        assert list(parsed) == [(1, 1), (1, 0), (0, 1), (0, 0)]

    def test_label_dict(self):
        parsed, errors = _parse_effects(
            {
                "Persistent:Identifiable": -0.4,
                "persistent*anonymous": -0.2,
                "ephemeral + identifiable": -0.2,
                "ephemeral:anonymous": 0,
            }
        )
        assert errors == []
        assert parsed == EXPECTED

    def test_tuple_dict(self):
        parsed, errors = _parse_effects({(0, 0): 0.0, (0, 1): -0.2, (1, 0): -0.2, (1, 1): -0.4})
        assert errors == []
        assert parsed == EXPECTED


class TestParseEffectsErrors:
    """Test parser error reporting."""

    def test_wrong_length_sequence(self):
        parsed, errors = _parse_effects([1, 2, 3])
        assert parsed is None
        assert "exactly 4" in errors[0]

    def test_wrong_length_string(self):
        parsed, errors = _parse_effects("1, 2")
        assert parsed is None
        assert "got 2" in errors[0]

    def test_missing_cell(self):
        parsed, errors = _parse_effects("persistent:identifiable=-0.4, ephemeral:anonymous=0")
        assert parsed is None
        assert "Missing means" in errors[0]
        assert "persistent:anonymous" in errors[0]

    def test_unknown_label(self):
        parsed, errors = _parse_effects({"temporary:anonymous": 0.0})
        assert parsed is None
        assert "not found" in errors[0]

    def test_duplicate_assignment(self):
        _, errors = _parse_effects("ephemeral:anonymous=0, ephemeral:anonymous=1")
        assert any("more than once" in e for e in errors)

    def test_non_numeric_value(self):
        parsed, errors = _parse_effects("-.4, -.2, abc, 0")
        assert parsed is None
        assert "abc" in errors[0]

    def test_unsupported_type(self):
        parsed, errors = _parse_effects(0.5)
        assert parsed is None
        assert "Unsupported" in errors[0]


class TestAssignmentParser:
    def test_missing_equals(self):
        _, errors = _parser._parse("persistent:identifiable")
        assert "Expected 'name=value'" in errors[0]

    def test_normalise_label(self):
        assert _normalise_label(" Persistent * Identifiable ") == "persistent:identifiable"
