"""Aggregate conditions for pools of dice.

A pool of N dice is evaluated against an ordered list of per-die test
conditions, then against rules such as "at least 2 dice show a 6" or
"exactly one die passes condition #1".
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from polydice.conditions import TestConditions, normalise_test_conditions
from polydice.exceptions import ShapeValidationError
from polydice.modifiers import ModifierFunction, RollModifier
from polydice.outcomes import OutcomeMapCache, get_array_evaluator
from polydice.types import DieType, Outcome, coerce_die_type
from polydice.validators import is_integer

logger = logging.getLogger(__name__)


class TestConditionsArray:
    """Ordered collection of TestConditions evaluated per die."""

    __test__ = False

    def __init__(
        self,
        items: Sequence[TestConditions | Mapping] = (),
        default_die_type: DieType | str | None = None,
    ) -> None:
        """Normalise each entry into TestConditions.

        Args:
            items: TestConditions instances or mappings carrying
                ``test_type`` and optionally ``die_type``.
            default_die_type: Die used for mapping entries without their own.

        Raises:
            ShapeValidationError: If an entry is neither an instance nor a
                mapping, or has no die type to validate against.
        """
        if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
            raise ShapeValidationError(
                "conditions must be a sequence of test conditions", field="conditions"
            )
        self.default_die_type = (
            coerce_die_type(default_die_type) if default_die_type is not None else None
        )
        conditions = []
        for idx, item in enumerate(items):
            if isinstance(item, TestConditions):
                conditions.append(item)
            elif isinstance(item, Mapping):
                if item.get("die_type") is None and self.default_die_type is None:
                    raise ShapeValidationError(
                        f"condition at index {idx} requires a die_type "
                        "(on the entry or as a default)",
                        field="die_type",
                    )
                conditions.append(normalise_test_conditions(item, self.default_die_type))
            else:
                raise ShapeValidationError(
                    f"condition at index {idx} must be TestConditions or a mapping",
                    field="conditions",
                )
        self._conditions = tuple(conditions)

    def __len__(self) -> int:
        return len(self._conditions)

    def __iter__(self) -> Iterator[TestConditions]:
        return iter(self._conditions)

    def __getitem__(self, index: int) -> TestConditions:
        return self._conditions[index]

    def to_list(self) -> list[TestConditions]:
        return list(self._conditions)

    def evaluate_each(
        self, value: int, evaluator: Callable[[int, TestConditions], Outcome]
    ) -> tuple[Outcome, ...]:
        """Apply evaluator(value, conditions) to every entry in order."""
        if not is_integer(value):
            raise ShapeValidationError("value must be an integer", field="value")
        return tuple(evaluator(value, tc) for tc in self._conditions)


class AggregateRule(BaseModel):
    """A threshold check applied across the whole pool.

    ``value_count`` rules count dice whose raw face equals ``value``;
    ``condition_count`` rules count dice that pass the condition at
    ``condition_index``. With no threshold set the rule means "at least 1".
    """

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    kind: Literal["value_count", "condition_count"]
    value: int | None = None
    condition_index: int | None = Field(default=None, ge=0)
    exact: int | None = Field(default=None, ge=0)
    at_least: int | None = Field(default=None, ge=0)
    at_most: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_target(self) -> "AggregateRule":
        if self.kind == "value_count" and self.value is None:
            raise ValueError("value_count rules require 'value'")
        if self.kind == "condition_count" and self.condition_index is None:
            raise ValueError("condition_count rules require 'condition_index'")
        return self

    def check(self, count: int) -> bool:
        """Compare a count to the threshold (exact, then at_least, then at_most)."""
        if self.exact is not None:
            return count == self.exact
        if self.at_least is not None:
            return count >= self.at_least
        if self.at_most is not None:
            return count <= self.at_most
        return count >= 1


@dataclass(frozen=True)
class RuleResult:
    """Outcome of a single aggregate rule.

    Attributes:
        index: Position of the rule in the rule list.
        rule: The rule that was checked.
        count: The computed count the threshold was compared against.
        passed: Whether the threshold held.
    """

    index: int
    rule: AggregateRule
    count: int
    passed: bool


@dataclass(frozen=True)
class AggregateResult:
    """Full evaluation of a pool.

    Attributes:
        matrix: One tuple of outcomes per die, one outcome per condition.
        condition_success_count: Dice passing each condition, by index.
        value_frequency: Dice showing each raw face value.
        rule_results: One result per rule, in order.
        passed: True when every rule passed (vacuously true without rules).
    """

    matrix: tuple[tuple[Outcome, ...], ...]
    condition_success_count: dict[int, int]
    value_frequency: dict[int, int]
    rule_results: tuple[RuleResult, ...]
    passed: bool


def _normalise_rule(rule: AggregateRule | Mapping, idx: int) -> AggregateRule:
    if isinstance(rule, AggregateRule):
        return rule
    if not isinstance(rule, Mapping):
        raise ShapeValidationError(f"rule {idx} must be a mapping", field="rules")
    try:
        return AggregateRule.model_validate(dict(rule))
    except ValidationError as exc:
        raise ShapeValidationError(f"rule {idx} is invalid: {exc}", field="rules") from exc


class AggregateConditions:
    """Per-die conditions plus pool-wide rules for a fixed number of dice."""

    def __init__(
        self,
        count: int,
        conditions: TestConditionsArray | Sequence[TestConditions | Mapping],
        rules: Sequence[AggregateRule | Mapping] = (),
        die_type: DieType | str | None = None,
    ) -> None:
        """Validate the pool definition.

        Args:
            count: Number of dice in the pool.
            conditions: Per-die conditions. Mapping entries without a
                die_type use ``die_type``, or d6 when that is omitted too.
            rules: AggregateRule instances or mappings.
            die_type: Pool die. Mapping entries without their own die use
                it, and every condition must cover its faces.

        Raises:
            ShapeValidationError: For a non-positive count, malformed
                conditions or rules, a rule pointing at a missing condition,
                or a condition on a die smaller than the pool die.
        """
        if not is_integer(count) or count < 1:
            raise ShapeValidationError("count must be a positive integer", field="count")
        self.count = count

        if isinstance(conditions, TestConditionsArray):
            self.conditions = conditions
        else:
            self.conditions = TestConditionsArray(conditions, die_type or DieType.D6)

        if isinstance(rules, (str, bytes)) or not isinstance(rules, Sequence):
            raise ShapeValidationError("rules must be a sequence", field="rules")
        self.rules = tuple(_normalise_rule(rule, idx) for idx, rule in enumerate(rules))

        for idx, rule in enumerate(self.rules):
            if rule.kind == "condition_count" and rule.condition_index >= len(self.conditions):
                raise ShapeValidationError(
                    f"rule {idx} references condition {rule.condition_index}, "
                    f"but only {len(self.conditions)} conditions exist",
                    field="condition_index",
                )

        if die_type is not None:
            self.check_die(die_type)

    def check_die(self, die_type: DieType | str) -> None:
        """Ensure every condition covers each face the pool die can show.

        Raises:
            ShapeValidationError: If a condition is for a die with fewer
                sides than the pool die.
        """
        die = coerce_die_type(die_type)
        for idx, tc in enumerate(self.conditions):
            if tc.die_type.sides < die.sides:
                raise ShapeValidationError(
                    f"condition at index {idx} is for {tc.die_type.value} "
                    f"and cannot evaluate {die.value} rolls",
                    field="die_type",
                )

    def to_evaluator(
        self,
        modifier: RollModifier | ModifierFunction | None = None,
        natural_crits: bool | None = None,
        cache: OutcomeMapCache | None = None,
    ) -> Callable[[Sequence[int]], AggregateResult]:
        """Build a function that evaluates a list of rolled faces.

        Args:
            modifier: Per-die modifier applied before each condition.
            natural_crits: Natural-crit policy override for every condition.
            cache: Outcome map cache to use instead of the default.
        """
        array_evaluator = get_array_evaluator(self.conditions, modifier, natural_crits, cache)
        condition_count = len(self.conditions)

        def evaluate(rolls: Sequence[int]) -> AggregateResult:
            if isinstance(rolls, (str, bytes)) or not isinstance(rolls, Sequence):
                raise ShapeValidationError("rolls must be a sequence of integers", field="rolls")
            if len(rolls) != self.count:
                raise ShapeValidationError(
                    f"rolls length {len(rolls)} does not match expected count {self.count}",
                    field="rolls",
                )

            matrix = tuple(array_evaluator(value) for value in rolls)

            success_count = {idx: 0 for idx in range(condition_count)}
            for outcomes in matrix:
                for idx, outcome in enumerate(outcomes):
                    if outcome.is_success:
                        success_count[idx] += 1

            value_frequency = dict(Counter(rolls))

            rule_results = []
            for idx, rule in enumerate(self.rules):
                if rule.kind == "value_count":
                    count = value_frequency.get(rule.value, 0)
                else:
                    count = success_count[rule.condition_index]
                rule_results.append(
                    RuleResult(index=idx, rule=rule, count=count, passed=rule.check(count))
                )

            passed = all(result.passed for result in rule_results)
            logger.debug("Aggregate evaluation of %s: passed=%s", list(rolls), passed)
            return AggregateResult(
                matrix=matrix,
                condition_success_count=success_count,
                value_frequency=value_frequency,
                rule_results=tuple(rule_results),
                passed=passed,
            )

        return evaluate

    def evaluate(
        self,
        rolls: Sequence[int],
        modifier: RollModifier | ModifierFunction | None = None,
        natural_crits: bool | None = None,
        cache: OutcomeMapCache | None = None,
    ) -> AggregateResult:
        """Evaluate rolled faces immediately.

        Examples:
            >>> pool = AggregateConditions(
            ...     3, [{"test_type": "at_least", "target": 5}],
            ...     rules=[{"kind": "value_count", "value": 6, "at_least": 2}])
            >>> pool.evaluate([6, 6, 1]).rule_results[0].count
            2
        """
        return self.to_evaluator(modifier, natural_crits, cache)(rolls)
