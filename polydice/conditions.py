"""Validated test conditions.

TestConditions checks its numeric parameters against the raw faces of a die
(1..sides). ModifiedTestConditions checks them against the range a modifier
can reach, so a target of 15 is legal on a d6 with a +10 bonus:

    >>> ModifiedTestConditions(TestType.AT_LEAST, {"target": 15}, DieType.D6,
    ...                        lambda n: n + 10).modified_range
    AchievableRange(min=11, max=16)

All validation happens at construction; an instance that exists is valid.
"""

import json
from collections.abc import Mapping
from types import MappingProxyType

from polydice.exceptions import ShapeValidationError
from polydice.modifiers import ModifierFunction, RollModifier, normalise_roll_modifier
from polydice.registry import get_test_kind
from polydice.types import (
    AchievableRange,
    DieType,
    TestType,
    coerce_die_type,
    coerce_test_type,
)
from polydice.validators import is_integer


def _require_mapping(conditions: object) -> Mapping:
    if not isinstance(conditions, Mapping):
        raise ShapeValidationError(
            f"conditions must be a mapping, got {type(conditions).__name__}",
            field="conditions",
        )
    return conditions


class TestConditions:
    """A test kind, its parameters and the die they are validated against."""

    __test__ = False

    def __init__(
        self,
        test_type: TestType | str,
        conditions: Mapping,
        die_type: DieType | str,
    ) -> None:
        """Create and validate test conditions.

        Args:
            test_type: Kind of test (exact, at_least, at_most, within,
                in_list, skill).
            conditions: Parameters for the test, e.g. ``{"target": 15}``.
            die_type: Die whose range the parameters must fit.

        Raises:
            ShapeValidationError: If the kind is unknown or a field is
                missing or mistyped.
            RangeValidationError: If a value is outside the achievable range
                or skill thresholds are out of order.
        """
        self._test_type = coerce_test_type(test_type)
        self._die_type = coerce_die_type(die_type)
        kind = get_test_kind(self._test_type)
        self._conditions = MappingProxyType(kind.normalise(_require_mapping(conditions)))
        self.validate()

    @property
    def test_type(self) -> TestType:
        return self._test_type

    @property
    def die_type(self) -> DieType:
        return self._die_type

    @property
    def conditions(self) -> Mapping:
        """Read-only normalised parameters (lists frozen as tuples)."""
        return self._conditions

    @property
    def achievable_range(self) -> AchievableRange:
        """Range the parameters are validated against."""
        return AchievableRange(1, self._die_type.sides)

    def _range_context(self) -> str:
        return self._die_type.value

    def validate(self) -> None:
        """Re-check the parameters against the achievable range.

        Raises:
            RangeValidationError: If the conditions no longer fit.
        """
        achievable = self.achievable_range
        get_test_kind(self._test_type).validate_range(
            self._conditions, achievable.min, achievable.max, self._range_context()
        )

    def to_dict(self) -> dict:
        """Plain-dict form including the test type."""
        data = {"test_type": self._test_type.value}
        for key, value in self._conditions.items():
            data[key] = list(value) if isinstance(value, tuple) else value
        return data

    def cache_token(self) -> str:
        """Deterministic serialisation used in outcome map cache keys."""
        return json.dumps(self.to_dict(), sort_keys=True)

    def _identity(self) -> tuple:
        return (type(self).__name__, self._die_type, self.cache_token())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TestConditions):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self._test_type.value!r}, "
            f"{dict(self._conditions)!r}, {self._die_type.value!r})"
        )


def compute_modified_range(
    die_type: DieType | str,
    modifier: RollModifier | ModifierFunction,
) -> AchievableRange:
    """Range reachable by a die once a modifier is applied.

    Only the two extremes (face 1 and the top face) are sampled, so a
    non-monotonic modifier can produce values outside the reported range.

    Examples:
        >>> compute_modified_range(DieType.D6, lambda n: n + 10)
        AchievableRange(min=11, max=16)
        >>> compute_modified_range(DieType.D6, lambda n: -n)
        AchievableRange(min=-6, max=-1)
    """
    sides = coerce_die_type(die_type).sides
    mod = normalise_roll_modifier(modifier)
    low_end = mod.apply(1)
    high_end = mod.apply(sides)
    for value in (low_end, high_end):
        if not is_integer(value):
            raise ShapeValidationError(
                f"Roll modifier must return an integer, got {value!r}",
                field="modifier",
            )
    return AchievableRange(min(low_end, high_end), max(low_end, high_end))


class ModifiedTestConditions(TestConditions):
    """Test conditions validated against a modifier-extended range.

    Attributes:
        modifier: The normalised modifier.
        modified_range: Range reachable by the modifier at the die extremes.
    """

    def __init__(
        self,
        test_type: TestType | str,
        conditions: Mapping,
        die_type: DieType | str,
        modifier: RollModifier | ModifierFunction,
    ) -> None:
        if modifier is None:
            raise ShapeValidationError("modifier is required", field="modifier")
        self.modifier = normalise_roll_modifier(modifier)
        self.modified_range = compute_modified_range(die_type, self.modifier)
        super().__init__(test_type, conditions, die_type)

    @property
    def achievable_range(self) -> AchievableRange:
        return self.modified_range

    def _range_context(self) -> str:
        return f"{self._die_type.value} with modifier"

    def _identity(self) -> tuple:
        return super()._identity() + (self.modifier.cache_key,)


def _split_mapping(
    data: Mapping, die_type: DieType | str | None
) -> tuple[object, dict, object]:
    if "test_type" not in data:
        raise ShapeValidationError(
            "test conditions mapping requires 'test_type'", field="test_type"
        )
    rest = dict(data)
    test_type = rest.pop("test_type")
    entry_die = rest.pop("die_type", None) or die_type
    if entry_die is None:
        raise ShapeValidationError(
            "die_type is required to validate test conditions", field="die_type"
        )
    return test_type, rest, entry_die


def normalise_test_conditions(
    test_conditions: TestConditions | Mapping,
    die_type: DieType | str | None = None,
) -> TestConditions:
    """Coerce an instance or a plain mapping into TestConditions.

    A mapping must carry ``test_type``; its ``die_type`` entry wins over the
    die_type argument.

    Examples:
        >>> normalise_test_conditions({"test_type": "at_least", "target": 4}, "d6")
        TestConditions('at_least', {'target': 4}, 'd6')
    """
    if isinstance(test_conditions, TestConditions):
        return test_conditions
    if isinstance(test_conditions, Mapping):
        test_type, rest, entry_die = _split_mapping(test_conditions, die_type)
        return TestConditions(test_type, rest, entry_die)
    raise ShapeValidationError(
        "test conditions must be a TestConditions instance or a mapping",
        field="test_conditions",
    )


def normalise_modified_test_conditions(
    test_conditions: TestConditions | Mapping,
    die_type: DieType | str,
    modifier: RollModifier | ModifierFunction,
) -> ModifiedTestConditions:
    """Coerce input into ModifiedTestConditions for the given modifier.

    Plain TestConditions are re-validated against the modified range.
    """
    if isinstance(test_conditions, ModifiedTestConditions):
        return test_conditions
    if isinstance(test_conditions, TestConditions):
        return ModifiedTestConditions(
            test_conditions.test_type,
            test_conditions.conditions,
            test_conditions.die_type,
            modifier,
        )
    if isinstance(test_conditions, Mapping):
        test_type, rest, entry_die = _split_mapping(test_conditions, die_type)
        return ModifiedTestConditions(test_type, rest, entry_die, modifier)
    raise ShapeValidationError(
        "test conditions must be a TestConditions instance or a mapping",
        field="test_conditions",
    )
