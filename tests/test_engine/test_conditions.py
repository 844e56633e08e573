"""Tests for test condition validation."""

import pytest

from polydice.conditions import TestConditions, normalise_test_conditions
from polydice.exceptions import RangeValidationError, ShapeValidationError
from polydice.types import AchievableRange, DieType, TestType


class TestShapeValidation:
    """Tests for structural validation of conditions."""

    def test_valid_at_least(self):
        """A target on the die is accepted."""
        tc = TestConditions(TestType.AT_LEAST, {"target": 15}, DieType.D20)
        assert tc.conditions["target"] == 15
        assert tc.test_type is TestType.AT_LEAST
        assert tc.die_type is DieType.D20

    def test_accepts_strings(self):
        """Test kind and die may be given as strings."""
        tc = TestConditions("exact", {"target": 3}, "d4")
        assert tc.test_type is TestType.EXACT
        assert tc.die_type is DieType.D4

    def test_missing_target(self):
        """Missing target is a shape error."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.AT_LEAST, {}, DieType.D20)

    def test_non_integer_target(self):
        """A string target is a shape error."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.AT_MOST, {"target": "5"}, DieType.D6)

    def test_bool_target(self):
        """Booleans are not accepted as integers."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.EXACT, {"target": True}, DieType.D6)

    def test_float_target(self):
        """Floats are shape errors."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.EXACT, {"target": 3.0}, DieType.D6)

    def test_unknown_key(self):
        """Keys a test kind does not use are rejected."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.AT_LEAST, {"target": 3, "dc": 3}, DieType.D6)

    def test_conditions_must_be_mapping(self):
        """Non-mapping conditions are shape errors."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.AT_LEAST, [15], DieType.D20)

    def test_unknown_die(self):
        """Unknown dice are shape errors."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.AT_LEAST, {"target": 3}, "d3")

    def test_within_requires_both_bounds(self):
        """within needs min and max."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.WITHIN, {"min": 2}, DieType.D6)

    def test_in_list_requires_list(self):
        """values must be a list."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.IN_LIST, {"values": 3}, DieType.D6)

    def test_in_list_rejects_non_integers(self):
        """values must contain integers only."""
        with pytest.raises(ShapeValidationError):
            TestConditions(TestType.IN_LIST, {"values": [1, "2"]}, DieType.D6)

    def test_skill_optional_thresholds_type(self):
        """Critical thresholds must be integers when given."""
        with pytest.raises(ShapeValidationError):
            TestConditions(
                TestType.SKILL, {"target": 10, "critical_success": "20"}, DieType.D20
            )


class TestRangeValidation:
    """Tests for range validation against the die."""

    @pytest.mark.parametrize("target", [0, 21, -1])
    def test_target_off_the_die(self, target):
        """Targets outside 1..sides are range errors."""
        with pytest.raises(RangeValidationError):
            TestConditions(TestType.AT_LEAST, {"target": target}, DieType.D20)

    def test_range_error_carries_bounds(self):
        """The error reports the achievable range."""
        with pytest.raises(RangeValidationError) as exc_info:
            TestConditions(TestType.EXACT, {"target": 7}, DieType.D6)
        assert exc_info.value.low == 1
        assert exc_info.value.high == 6
        assert exc_info.value.field == "target"

    def test_within_min_above_max(self):
        """min greater than max is a range error."""
        with pytest.raises(RangeValidationError):
            TestConditions(TestType.WITHIN, {"min": 5, "max": 2}, DieType.D6)

    def test_within_bounds_on_die(self):
        """within bounds must be faces."""
        with pytest.raises(RangeValidationError):
            TestConditions(TestType.WITHIN, {"min": 2, "max": 7}, DieType.D6)

    def test_in_list_empty(self):
        """An empty list can never succeed and is rejected."""
        with pytest.raises(RangeValidationError):
            TestConditions(TestType.IN_LIST, {"values": []}, DieType.D6)

    def test_in_list_value_off_die(self):
        """Every listed value must be a face."""
        with pytest.raises(RangeValidationError):
            TestConditions(TestType.IN_LIST, {"values": [1, 9]}, DieType.D8)

    def test_skill_full_thresholds(self, d20_skill):
        """A well-ordered skill test is accepted."""
        assert d20_skill.conditions["critical_failure"] == 3

    def test_skill_critical_failure_not_below_target(self):
        """critical_failure must be strictly below target."""
        with pytest.raises(RangeValidationError):
            TestConditions(
                TestType.SKILL, {"target": 10, "critical_failure": 10}, DieType.D20
            )

    def test_skill_critical_success_below_target(self):
        """critical_success must be at least the target."""
        with pytest.raises(RangeValidationError):
            TestConditions(
                TestType.SKILL, {"target": 10, "critical_success": 9}, DieType.D20
            )

    def test_skill_critical_success_equal_target(self):
        """critical_success may equal the target."""
        tc = TestConditions(
            TestType.SKILL, {"target": 10, "critical_success": 10}, DieType.D20
        )
        assert tc.conditions["critical_success"] == 10

    def test_achievable_range(self):
        """Plain conditions validate against 1..sides."""
        tc = TestConditions(TestType.AT_MOST, {"target": 2}, DieType.D8)
        assert tc.achievable_range == AchievableRange(1, 8)


class TestConditionsValue:
    """Tests for immutability, equality and conversion."""

    def test_conditions_read_only(self, d20_at_least_15):
        """The conditions mapping cannot be mutated."""
        with pytest.raises(TypeError):
            d20_at_least_15.conditions["target"] = 2

    def test_input_copy(self):
        """Mutating the input mapping does not affect the instance."""
        raw = {"values": [1, 2]}
        tc = TestConditions(TestType.IN_LIST, raw, DieType.D6)
        raw["values"].append(9)
        assert tc.conditions["values"] == (1, 2)

    def test_equality(self):
        """Instances with the same contents are equal and hash alike."""
        a = TestConditions(TestType.AT_LEAST, {"target": 4}, DieType.D6)
        b = TestConditions("at_least", {"target": 4}, "d6")
        assert a == b
        assert hash(a) == hash(b)

    def test_inequality_by_die(self):
        """The die is part of the identity."""
        a = TestConditions(TestType.AT_LEAST, {"target": 4}, DieType.D6)
        b = TestConditions(TestType.AT_LEAST, {"target": 4}, DieType.D8)
        assert a != b

    def test_to_dict(self):
        """to_dict includes the test type and plain lists."""
        tc = TestConditions(TestType.IN_LIST, {"values": [2, 4]}, DieType.D6)
        assert tc.to_dict() == {"test_type": "in_list", "values": [2, 4]}

    def test_validate_again(self, d20_skill):
        """validate() can be called on a valid instance."""
        d20_skill.validate()


class TestNormaliseTestConditions:
    """Tests for normalise_test_conditions."""

    def test_instance_passthrough(self, d20_at_least_15):
        """Instances are returned unchanged."""
        assert normalise_test_conditions(d20_at_least_15) is d20_at_least_15

    def test_mapping_with_die_argument(self):
        """Mappings use the die argument when they have none."""
        tc = normalise_test_conditions({"test_type": "at_least", "target": 4}, "d6")
        assert tc == TestConditions(TestType.AT_LEAST, {"target": 4}, DieType.D6)

    def test_mapping_die_wins(self):
        """A die in the mapping wins over the argument."""
        tc = normalise_test_conditions(
            {"test_type": "exact", "target": 8, "die_type": "d8"}, "d6"
        )
        assert tc.die_type is DieType.D8

    def test_mapping_requires_test_type(self):
        """test_type is required."""
        with pytest.raises(ShapeValidationError):
            normalise_test_conditions({"target": 4}, "d6")

    def test_mapping_requires_die(self):
        """A die is required from somewhere."""
        with pytest.raises(ShapeValidationError):
            normalise_test_conditions({"test_type": "exact", "target": 1})

    def test_rejects_other_input(self):
        """Other inputs are shape errors."""
        with pytest.raises(ShapeValidationError):
            normalise_test_conditions("at_least 4", "d6")
