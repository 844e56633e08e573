"""Evaluator registry for the closed set of test kinds.

Each TestType maps to a TestKind entry that knows how to:
1. Validate the shape of its condition mapping
2. Validate condition values against an achievable range
3. Evaluate a (possibly modified) value to an Outcome
4. Apply natural-crit overrides for the raw die extremes

Natural crits are on by default for skill tests only. When enabled:
- skill: natural max -> CRITICAL_SUCCESS, natural 1 -> CRITICAL_FAILURE
- at_least: natural max -> SUCCESS, natural 1 -> FAILURE
- at_most: natural max -> FAILURE, natural 1 -> SUCCESS
- exact, within, in_list: never overridden
"""

from collections.abc import Mapping

from polydice.exceptions import RangeValidationError, ShapeValidationError
from polydice.types import Outcome, TestType, coerce_test_type
from polydice.validators import (
    check_in_range,
    check_threshold_order,
    is_integer,
    optional_integer,
    reject_unknown_keys,
    require_integer,
    require_values,
)


class TestKind:
    """Validation and evaluation behaviour for one test kind."""

    __test__ = False

    test_type: TestType
    fields: tuple[str, ...] = ()
    default_natural_crits: bool = False

    def normalise(self, conditions: Mapping) -> dict:
        """Validate the condition shape and return a normalised copy.

        Raises:
            ShapeValidationError: If a field is missing, mistyped or unknown.
        """
        raise NotImplementedError

    def validate_range(self, conditions: Mapping, low: int, high: int, context: str) -> None:
        """Check normalised conditions against the achievable range [low, high].

        Raises:
            RangeValidationError: If any value cannot be produced.
        """
        raise NotImplementedError

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        """Map a value to an outcome, without natural-crit overrides."""
        raise NotImplementedError

    def apply_natural_crit(
        self, outcome: Outcome, is_natural_max: bool, is_natural_min: bool
    ) -> Outcome:
        """Override an outcome when the raw face is a die extreme."""
        return outcome


class _TargetKind(TestKind):
    fields = ("target",)

    def normalise(self, conditions: Mapping) -> dict:
        reject_unknown_keys(conditions, self.fields, self.test_type.value)
        return {"target": require_integer(conditions, "target", self.test_type.value)}

    def validate_range(self, conditions: Mapping, low: int, high: int, context: str) -> None:
        check_in_range(conditions["target"], low, high, "target", context)


class ExactKind(_TargetKind):
    test_type = TestType.EXACT

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        return Outcome.SUCCESS if value == conditions["target"] else Outcome.FAILURE


class AtLeastKind(_TargetKind):
    test_type = TestType.AT_LEAST

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        return Outcome.SUCCESS if value >= conditions["target"] else Outcome.FAILURE

    def apply_natural_crit(self, outcome, is_natural_max, is_natural_min):
        if is_natural_max:
            return Outcome.SUCCESS
        if is_natural_min:
            return Outcome.FAILURE
        return outcome


class AtMostKind(_TargetKind):
    test_type = TestType.AT_MOST

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        return Outcome.SUCCESS if value <= conditions["target"] else Outcome.FAILURE

    def apply_natural_crit(self, outcome, is_natural_max, is_natural_min):
        # Rolling high is bad for an at-most test
        if is_natural_max:
            return Outcome.FAILURE
        if is_natural_min:
            return Outcome.SUCCESS
        return outcome


class WithinKind(TestKind):
    test_type = TestType.WITHIN
    fields = ("min", "max")

    def normalise(self, conditions: Mapping) -> dict:
        reject_unknown_keys(conditions, self.fields, self.test_type.value)
        return {
            "min": require_integer(conditions, "min", self.test_type.value),
            "max": require_integer(conditions, "max", self.test_type.value),
        }

    def validate_range(self, conditions: Mapping, low: int, high: int, context: str) -> None:
        if conditions["min"] > conditions["max"]:
            raise RangeValidationError(
                f"min {conditions['min']} must not exceed max {conditions['max']}",
                field="min",
            )
        check_in_range(conditions["min"], low, high, "min", context)
        check_in_range(conditions["max"], low, high, "max", context)

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        if conditions["min"] <= value <= conditions["max"]:
            return Outcome.SUCCESS
        return Outcome.FAILURE


class InListKind(TestKind):
    test_type = TestType.IN_LIST
    fields = ("values",)

    def normalise(self, conditions: Mapping) -> dict:
        reject_unknown_keys(conditions, self.fields, self.test_type.value)
        return {"values": require_values(conditions, "values", self.test_type.value)}

    def validate_range(self, conditions: Mapping, low: int, high: int, context: str) -> None:
        values = conditions["values"]
        if not values:
            raise RangeValidationError("'values' must not be empty", field="values")
        for v in values:
            check_in_range(v, low, high, "value", context)

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        return Outcome.SUCCESS if value in conditions["values"] else Outcome.FAILURE


class SkillKind(TestKind):
    test_type = TestType.SKILL
    fields = ("target", "critical_success", "critical_failure")
    default_natural_crits = True

    def normalise(self, conditions: Mapping) -> dict:
        reject_unknown_keys(conditions, self.fields, self.test_type.value)
        normalised = {"target": require_integer(conditions, "target", "skill")}
        for key in ("critical_success", "critical_failure"):
            value = optional_integer(conditions, key)
            if value is not None:
                normalised[key] = value
        return normalised

    def validate_range(self, conditions: Mapping, low: int, high: int, context: str) -> None:
        for key in self.fields:
            if key in conditions:
                check_in_range(conditions[key], low, high, key, context)
        check_threshold_order(
            conditions["target"],
            conditions.get("critical_success"),
            conditions.get("critical_failure"),
        )

    def evaluate(self, value: int, conditions: Mapping) -> Outcome:
        critical_failure = conditions.get("critical_failure")
        critical_success = conditions.get("critical_success")

        if critical_failure is not None and value <= critical_failure:
            return Outcome.CRITICAL_FAILURE
        if critical_success is not None and value >= critical_success:
            return Outcome.CRITICAL_SUCCESS
        return Outcome.SUCCESS if value >= conditions["target"] else Outcome.FAILURE

    def apply_natural_crit(self, outcome, is_natural_max, is_natural_min):
        if is_natural_max:
            return Outcome.CRITICAL_SUCCESS
        if is_natural_min:
            return Outcome.CRITICAL_FAILURE
        return outcome


REGISTRY: dict[TestType, TestKind] = {
    kind.test_type: kind
    for kind in (
        ExactKind(),
        AtLeastKind(),
        AtMostKind(),
        WithinKind(),
        InListKind(),
        SkillKind(),
    )
}


def get_test_kind(test_type: "TestType | str") -> TestKind:
    """Look up the registry entry for a test kind.

    Raises:
        ShapeValidationError: If the test kind is unknown.
    """
    return REGISTRY[coerce_test_type(test_type)]


def determine_outcome(value: int, test_conditions) -> Outcome:
    """Evaluate a single value against test conditions, without natural crits.

    Args:
        value: The rolled (possibly modified) value.
        test_conditions: A TestConditions or ModifiedTestConditions instance.

    Returns:
        The resulting Outcome.

    Examples:
        >>> tc = TestConditions(TestType.AT_LEAST, {"target": 12}, DieType.D20)
        >>> determine_outcome(14, tc)
        <Outcome.SUCCESS: 'success'>
    """
    if not is_integer(value):
        raise ShapeValidationError(
            f"value must be an integer, got {type(value).__name__}", field="value"
        )
    kind = get_test_kind(test_conditions.test_type)
    return kind.evaluate(value, test_conditions.conditions)
