"""Tests for pool-wide aggregate conditions."""

import pytest

from polydice.aggregate import (
    AggregateConditions,
    AggregateRule,
    TestConditionsArray,
)
from polydice.conditions import TestConditions
from polydice.exceptions import ShapeValidationError
from polydice.registry import determine_outcome
from polydice.types import DieType, Outcome, TestType


class TestTestConditionsArray:
    """Tests for TestConditionsArray."""

    def test_normalises_mappings(self):
        """Mapping entries become TestConditions on the default die."""
        array = TestConditionsArray(
            [{"test_type": "at_least", "target": 5}], default_die_type="d6"
        )
        assert len(array) == 1
        assert array[0] == TestConditions(TestType.AT_LEAST, {"target": 5}, DieType.D6)

    def test_keeps_instances(self, d20_at_least_15):
        """Instances are kept as they are."""
        array = TestConditionsArray([d20_at_least_15])
        assert array.to_list() == [d20_at_least_15]

    def test_mapping_needs_a_die(self):
        """Mappings without any die are rejected."""
        with pytest.raises(ShapeValidationError):
            TestConditionsArray([{"test_type": "exact", "target": 1}])

    def test_rejects_other_entries(self):
        """Entries must be TestConditions or mappings."""
        with pytest.raises(ShapeValidationError):
            TestConditionsArray(["at_least"], default_die_type="d6")

    def test_rejects_non_sequence(self):
        """A single mapping is not an array."""
        with pytest.raises(ShapeValidationError):
            TestConditionsArray({"test_type": "exact", "target": 1}, "d6")

    def test_evaluate_each(self):
        """evaluate_each applies an evaluator to every entry."""
        array = TestConditionsArray(
            [
                {"test_type": "at_least", "target": 4},
                {"test_type": "at_most", "target": 2},
            ],
            default_die_type="d6",
        )
        assert array.evaluate_each(5, determine_outcome) == (
            Outcome.SUCCESS,
            Outcome.FAILURE,
        )

    def test_evaluate_each_rejects_non_integer(self):
        """Values must be integers."""
        array = TestConditionsArray([{"test_type": "exact", "target": 1}], "d6")
        with pytest.raises(ShapeValidationError):
            array.evaluate_each("1", determine_outcome)


class TestAggregateRule:
    """Tests for AggregateRule models."""

    def test_value_count_requires_value(self):
        """value_count rules need a value."""
        with pytest.raises(ValueError):
            AggregateRule(kind="value_count")

    def test_condition_count_requires_index(self):
        """condition_count rules need a condition index."""
        with pytest.raises(ValueError):
            AggregateRule(kind="condition_count")

    def test_unknown_field(self):
        """Extra fields are rejected."""
        with pytest.raises(ValueError):
            AggregateRule(kind="value_count", value=6, atleast=2)

    def test_bool_threshold_rejected(self):
        """Booleans are not accepted as counts."""
        with pytest.raises(ValueError):
            AggregateRule(kind="value_count", value=6, at_least=True)

    def test_negative_threshold_rejected(self):
        """Thresholds cannot be negative."""
        with pytest.raises(ValueError):
            AggregateRule(kind="value_count", value=6, exact=-1)

    def test_threshold_precedence(self):
        """exact wins over at_least, which wins over at_most."""
        rule = AggregateRule(kind="value_count", value=6, exact=2, at_least=5, at_most=0)
        assert rule.check(2) is True
        assert rule.check(5) is False

        rule = AggregateRule(kind="value_count", value=6, at_least=2, at_most=0)
        assert rule.check(3) is True

        rule = AggregateRule(kind="value_count", value=6, at_most=1)
        assert rule.check(1) is True
        assert rule.check(2) is False

    def test_default_threshold_is_at_least_one(self):
        """Without a threshold, a rule needs at least one match."""
        rule = AggregateRule(kind="condition_count", condition_index=0)
        assert rule.check(0) is False
        assert rule.check(1) is True


class TestAggregateConditions:
    """Tests for AggregateConditions evaluation."""

    def test_value_count_rule(self):
        """Two sixes satisfy an at-least-two-sixes rule."""
        pool = AggregateConditions(
            3,
            [{"test_type": "at_least", "target": 5}],
            rules=[{"kind": "value_count", "value": 6, "at_least": 2}],
        )
        result = pool.evaluate([6, 6, 1])
        assert result.rule_results[0].count == 2
        assert result.rule_results[0].passed is True
        assert result.passed is True

    def test_value_frequency_counts_raw_faces(self):
        """value_frequency counts faces, not modified values."""
        pool = AggregateConditions(3, [{"test_type": "at_least", "target": 5}])
        result = pool.evaluate([6, 6, 1])
        assert result.value_frequency == {6: 2, 1: 1}

    def test_matrix_and_success_counts(self):
        """Every die is evaluated against every condition."""
        pool = AggregateConditions(
            3,
            [
                {"test_type": "at_least", "target": 5},
                {"test_type": "exact", "target": 1},
            ],
        )
        result = pool.evaluate([6, 2, 1])
        assert result.matrix == (
            (Outcome.SUCCESS, Outcome.FAILURE),
            (Outcome.FAILURE, Outcome.FAILURE),
            (Outcome.FAILURE, Outcome.SUCCESS),
        )
        assert result.condition_success_count == {0: 1, 1: 1}

    def test_condition_count_includes_critical_success(self):
        """Critical successes count as passing a condition."""
        pool = AggregateConditions(
            2,
            [{"test_type": "skill", "target": 3, "critical_success": 6}],
            rules=[{"kind": "condition_count", "condition_index": 0, "exact": 2}],
        )
        result = pool.evaluate([6, 4])
        assert result.matrix[0] == (Outcome.CRITICAL_SUCCESS,)
        assert result.condition_success_count == {0: 2}
        assert result.passed is True

    def test_failing_rule_fails_pool(self):
        """One failed rule fails the whole pool."""
        pool = AggregateConditions(
            2,
            [{"test_type": "at_least", "target": 4}],
            rules=[
                {"kind": "condition_count", "condition_index": 0, "at_least": 1},
                {"kind": "value_count", "value": 6, "at_least": 1},
            ],
        )
        result = pool.evaluate([4, 5])
        assert [r.passed for r in result.rule_results] == [True, False]
        assert result.passed is False

    def test_no_rules_passes(self):
        """A pool without rules passes vacuously."""
        pool = AggregateConditions(1, [{"test_type": "exact", "target": 3}])
        assert pool.evaluate([1]).passed is True

    def test_plain_conditions_default_to_d6(self):
        """Mapping conditions without a die are validated on a d6."""
        pool = AggregateConditions(1, [{"test_type": "exact", "target": 6}])
        assert pool.conditions[0].die_type is DieType.D6
        with pytest.raises(ValueError):
            AggregateConditions(1, [{"test_type": "exact", "target": 7}])

    def test_die_type_argument(self):
        """The die argument sets the default die."""
        pool = AggregateConditions(1, [{"test_type": "exact", "target": 12}], die_type="d12")
        assert pool.conditions[0].die_type is DieType.D12

    def test_modifier_applies_per_condition(self):
        """A per-die modifier is applied before each condition."""
        pool = AggregateConditions(
            2, [{"test_type": "at_least", "target": 5}], die_type="d6"
        )
        result = pool.evaluate([3, 4], modifier=lambda n: n + 1)
        assert result.matrix == ((Outcome.FAILURE,), (Outcome.SUCCESS,))
        assert result.value_frequency == {3: 1, 4: 1}

    def test_to_evaluator_reusable(self):
        """to_evaluator returns a reusable function."""
        pool = AggregateConditions(1, [{"test_type": "at_least", "target": 4}])
        evaluate = pool.to_evaluator()
        assert evaluate([4]).passed is True
        assert evaluate([1]).condition_success_count == {0: 0}

    def test_wrong_roll_count(self):
        """The number of rolls must match the pool size."""
        pool = AggregateConditions(3, [{"test_type": "exact", "target": 1}])
        with pytest.raises(ShapeValidationError):
            pool.evaluate([1, 2])

    def test_rolls_must_be_sequence(self):
        """Rolls must be a sequence."""
        pool = AggregateConditions(1, [{"test_type": "exact", "target": 1}])
        with pytest.raises(ShapeValidationError):
            pool.evaluate(1)

    def test_roll_off_die(self):
        """Faces the die cannot show are range errors."""
        pool = AggregateConditions(1, [{"test_type": "exact", "target": 1}])
        with pytest.raises(ValueError):
            pool.evaluate([7])

    @pytest.mark.parametrize("count", [0, -1, 2.0, True])
    def test_invalid_count(self, count):
        """Pool size must be a positive integer."""
        with pytest.raises(ShapeValidationError):
            AggregateConditions(count, [{"test_type": "exact", "target": 1}])

    def test_condition_index_out_of_range(self):
        """Rules may only reference existing conditions."""
        with pytest.raises(ShapeValidationError):
            AggregateConditions(
                2,
                [{"test_type": "exact", "target": 1}],
                rules=[{"kind": "condition_count", "condition_index": 1}],
            )

    def test_invalid_rule_is_shape_error(self):
        """Rule validation failures surface as shape errors."""
        with pytest.raises(ShapeValidationError):
            AggregateConditions(
                1,
                [{"test_type": "exact", "target": 1}],
                rules=[{"kind": "sum", "value": 6}],
            )

    def test_rule_must_be_mapping(self):
        """Rules must be models or mappings."""
        with pytest.raises(ShapeValidationError):
            AggregateConditions(1, [{"test_type": "exact", "target": 1}], rules=["six"])

    def test_condition_on_smaller_die_rejected(self):
        """A d6 condition cannot judge a d20 pool."""
        d6_condition = TestConditions(TestType.AT_LEAST, {"target": 3}, DieType.D6)
        with pytest.raises(ShapeValidationError):
            AggregateConditions(1, [d6_condition], die_type=DieType.D20)

    def test_condition_on_larger_die_accepted(self):
        """A d20 condition covers every face of a d6 pool."""
        d20_condition = TestConditions(TestType.AT_LEAST, {"target": 3}, DieType.D20)
        pool = AggregateConditions(1, [d20_condition], die_type=DieType.D6)
        assert pool.evaluate([6]).matrix == ((Outcome.SUCCESS,),)

    def test_check_die(self):
        """check_die validates an already built pool against a die."""
        pool = AggregateConditions(1, [{"test_type": "exact", "target": 1}])
        pool.check_die(DieType.D4)
        with pytest.raises(ShapeValidationError):
            pool.check_die(DieType.D8)
