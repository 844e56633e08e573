"""Tests for roll modifiers."""

import pytest

from polydice.exceptions import ShapeValidationError
from polydice.modifiers import (
    IDENTITY,
    DiceModifier,
    RollModifier,
    is_valid_roll_modifier,
    normalise_roll_modifier,
)


def _plus(bonus):
    return lambda n: n + bonus


class TestRollModifier:
    """Tests for RollModifier construction and application."""

    def test_apply(self):
        """apply() runs the wrapped function."""
        assert RollModifier(lambda n: n + 3).apply(4) == 7

    def test_callable(self):
        """Instances can be called directly."""
        assert RollModifier(lambda n: n * 2)(5) == 10

    def test_rejects_non_callable(self):
        """Non-callables are shape errors."""
        with pytest.raises(ShapeValidationError):
            RollModifier(5)

    def test_rejects_two_parameters(self):
        """Modifiers take exactly one argument."""
        with pytest.raises(ShapeValidationError):
            RollModifier(lambda a, b: a + b)

    def test_rejects_no_parameters(self):
        """Zero-argument functions are rejected."""
        with pytest.raises(ShapeValidationError):
            RollModifier(lambda: 1)

    def test_rejects_non_integer_result(self):
        """Modifiers must return integers."""
        with pytest.raises(ShapeValidationError):
            RollModifier(lambda n: n / 2)

    def test_rejects_bool_result(self):
        """Booleans are not integers for modifier results."""
        with pytest.raises(ShapeValidationError):
            RollModifier(lambda n: n > 3)

    def test_failing_probe_is_shape_error(self):
        """A modifier that raises on a face is rejected."""
        with pytest.raises(ShapeValidationError):
            RollModifier(lambda n: n + "x")

    def test_is_valid_roll_modifier(self):
        """is_valid_roll_modifier reports without raising."""
        assert is_valid_roll_modifier(lambda n: n - 1)
        assert not is_valid_roll_modifier("n + 1")
        assert not is_valid_roll_modifier(lambda n: str(n))


class TestCacheKey:
    """Tests for modifier cache keys."""

    def test_same_function_same_key(self):
        """Wrapping the same function twice gives the same key."""
        fn = _plus(2)
        assert RollModifier(fn).cache_key == RollModifier(fn).cache_key

    def test_closures_with_different_values_differ(self):
        """Captured values are part of the key."""
        assert RollModifier(_plus(2)).cache_key != RollModifier(_plus(3)).cache_key

    def test_closures_with_same_values_match(self):
        """Equivalent closures share a key."""
        assert RollModifier(_plus(4)).cache_key == RollModifier(_plus(4)).cache_key


class TestNormaliseRollModifier:
    """Tests for normalise_roll_modifier."""

    def test_none_is_identity(self):
        """None becomes the identity modifier."""
        assert normalise_roll_modifier(None) is IDENTITY
        assert IDENTITY.apply(9) == 9

    def test_instance_passthrough(self):
        """RollModifier instances are returned unchanged."""
        mod = RollModifier(lambda n: n)
        assert normalise_roll_modifier(mod) is mod

    def test_wraps_callable(self):
        """Plain callables are wrapped."""
        assert isinstance(normalise_roll_modifier(lambda n: n + 1), RollModifier)

    def test_rejects_other_values(self):
        """Other values are shape errors."""
        with pytest.raises(ShapeValidationError):
            normalise_roll_modifier(3)


class TestDiceModifier:
    """Tests for composite pool modifiers."""

    def test_defaults_to_identity(self):
        """Both parts default to identity."""
        mod = DiceModifier.normalise(None)
        assert mod.each is IDENTITY
        assert mod.net is IDENTITY

    def test_bare_callable_is_net_only(self):
        """A bare function modifies the total only."""
        mod = DiceModifier.normalise(lambda n: n + 5)
        assert mod.each is IDENTITY
        assert mod.net.apply(10) == 15

    def test_mapping(self):
        """Mappings may carry each and net."""
        mod = DiceModifier.normalise({"each": lambda n: n + 1})
        assert mod.each.apply(3) == 4
        assert mod.net is IDENTITY

    def test_mapping_unknown_key(self):
        """Unknown mapping keys are shape errors."""
        with pytest.raises(ShapeValidationError):
            DiceModifier.normalise({"every": lambda n: n})

    def test_invalid_shape(self):
        """Unsupported inputs are shape errors."""
        with pytest.raises(ShapeValidationError):
            DiceModifier.normalise(7)
