"""Roll orchestration.

Ties the random number source, modifiers and outcome maps together into
single-call roll-and-evaluate operations.

Advantage/disadvantage work differently depending on what is rolled:
- Raw rolls (roll, roll_mod): roll twice, keep the higher/lower face.
- Test rolls (roll_test, roll_mod_test): roll twice, evaluate both faces
  (natural-crit overrides included), then keep the better/worse *outcome*.
  A natural 1 on a skill test is always CRITICAL_FAILURE, so it always loses
  under advantage, however large the modifier.
"""

import logging
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from polydice.aggregate import AggregateConditions, AggregateResult, TestConditionsArray
from polydice.conditions import (
    TestConditions,
    normalise_modified_test_conditions,
    normalise_test_conditions,
)
from polydice.exceptions import ShapeValidationError
from polydice.modifiers import (
    DiceModifier,
    ModifierFunction,
    RollModifier,
    normalise_roll_modifier,
)
from polydice.outcomes import OutcomeMapCache, create_outcome_map
from polydice.types import (
    DicePool,
    DieType,
    ModifiedDicePool,
    ModifiedRoll,
    ModifiedTestRoll,
    RollType,
    TestRoll,
    coerce_die_type,
    coerce_roll_type,
)
from polydice.validators import is_integer

logger = logging.getLogger(__name__)


def generate_result(die_type: DieType | str) -> int:
    """Draw one uniformly random face from 1..sides."""
    sides = coerce_die_type(die_type).sides
    return random.randint(1, sides)


def select_by_rank(first, second, roll_type: RollType):
    """Pick between two evaluated rolls by outcome rank.

    Advantage keeps the higher rank, disadvantage the lower. Ties keep the
    first roll in both modes.

    Args:
        first: First evaluated roll (anything with an ``outcome``).
        second: Second evaluated roll.
        roll_type: ADVANTAGE or DISADVANTAGE.

    Returns:
        The selected roll.
    """
    rank1 = first.outcome.rank
    rank2 = second.outcome.rank
    if roll_type == RollType.ADVANTAGE:
        return first if rank1 >= rank2 else second
    return first if rank1 <= rank2 else second


def roll(die_type: DieType | str, roll_type: RollType | str | None = None) -> int:
    """Roll a single die, optionally with advantage or disadvantage.

    Args:
        die_type: Die to roll.
        roll_type: None for a normal roll; ADVANTAGE keeps the higher of two
            faces, DISADVANTAGE the lower.

    Returns:
        The kept face.

    Examples:
        >>> 1 <= roll(DieType.D20, RollType.ADVANTAGE) <= 20
        True
    """
    die = coerce_die_type(die_type)
    mode = coerce_roll_type(roll_type)

    first = generate_result(die)
    if mode is None:
        logger.debug("Rolled %s: %d", die.value, first)
        return first

    second = generate_result(die)
    kept = max(first, second) if mode == RollType.ADVANTAGE else min(first, second)
    logger.debug("Rolled %s with %s: %d, %d -> %d", die.value, mode.value, first, second, kept)
    return kept


def roll_adv(die_type: DieType | str) -> int:
    """Roll with advantage."""
    return roll(die_type, RollType.ADVANTAGE)


def roll_dis(die_type: DieType | str) -> int:
    """Roll with disadvantage."""
    return roll(die_type, RollType.DISADVANTAGE)


def roll_d4(roll_type: RollType | str | None = None) -> int:
    return roll(DieType.D4, roll_type)


def roll_d6(roll_type: RollType | str | None = None) -> int:
    return roll(DieType.D6, roll_type)


def roll_d8(roll_type: RollType | str | None = None) -> int:
    return roll(DieType.D8, roll_type)


def roll_d10(roll_type: RollType | str | None = None) -> int:
    return roll(DieType.D10, roll_type)


def roll_d12(roll_type: RollType | str | None = None) -> int:
    return roll(DieType.D12, roll_type)


def roll_d20(roll_type: RollType | str | None = None) -> int:
    return roll(DieType.D20, roll_type)


def roll_mod(
    die_type: DieType | str,
    modifier: RollModifier | ModifierFunction,
    roll_type: RollType | str | None = None,
) -> ModifiedRoll:
    """Roll a die and apply a modifier to the kept face.

    Examples:
        >>> result = roll_mod(DieType.D6, lambda n: n + 10)
        >>> result.modified == result.base + 10
        True
    """
    mod = normalise_roll_modifier(modifier)
    base = roll(die_type, roll_type)
    return ModifiedRoll(base=base, modified=mod.apply(base))


def roll_test(
    die_type: DieType | str,
    test_conditions: TestConditions | Mapping,
    roll_type: RollType | str | None = None,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> TestRoll:
    """Roll a die and evaluate the face against test conditions.

    Args:
        die_type: Die to roll.
        test_conditions: TestConditions or a mapping with ``test_type``.
        roll_type: None, ADVANTAGE or DISADVANTAGE (outcome-ranked).
        natural_crits: Natural-crit policy override.
        cache: Outcome map cache to use instead of the default.

    Returns:
        TestRoll with the kept base face and its outcome.
    """
    die = coerce_die_type(die_type)
    mode = coerce_roll_type(roll_type)
    conditions = normalise_test_conditions(test_conditions, die)
    outcome_map = create_outcome_map(die, conditions, None, natural_crits, cache)

    first_base = generate_result(die)
    first = TestRoll(base=first_base, outcome=outcome_map[first_base])
    if mode is None:
        logger.debug("Test roll %s: %d -> %s", die.value, first.base, first.outcome.value)
        return first

    second_base = generate_result(die)
    second = TestRoll(base=second_base, outcome=outcome_map[second_base])
    kept = select_by_rank(first, second, mode)
    logger.debug(
        "Test roll %s with %s: %d (%s), %d (%s) -> %d",
        die.value,
        mode.value,
        first.base,
        first.outcome.value,
        second.base,
        second.outcome.value,
        kept.base,
    )
    return kept


def roll_mod_test(
    die_type: DieType | str,
    modifier: RollModifier | ModifierFunction,
    test_conditions: TestConditions | Mapping,
    roll_type: RollType | str | None = None,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> ModifiedTestRoll:
    """Roll a die, apply a modifier and evaluate against modified conditions.

    Conditions are validated against the modifier-extended range, so a
    target of 25 is legal on a d20 with a +5 bonus. Under advantage or
    disadvantage both faces are fully evaluated before ranking.

    Args:
        die_type: Die to roll.
        modifier: Transform applied to the base face.
        test_conditions: ModifiedTestConditions, TestConditions or a mapping
            with ``test_type``.
        roll_type: None, ADVANTAGE or DISADVANTAGE.
        natural_crits: Natural-crit policy override.
        cache: Outcome map cache to use instead of the default.

    Returns:
        ModifiedTestRoll with base, modified value and outcome.

    Raises:
        ShapeValidationError: If the modifier is missing or malformed.
        RangeValidationError: If the conditions cannot be met by the
            modified die.
    """
    if modifier is None:
        raise ShapeValidationError("modifier is required", field="modifier")
    die = coerce_die_type(die_type)
    mode = coerce_roll_type(roll_type)
    mod = normalise_roll_modifier(modifier)
    conditions = normalise_modified_test_conditions(test_conditions, die, mod)
    outcome_map = create_outcome_map(die, conditions, mod, natural_crits, cache)

    def evaluated(base: int) -> ModifiedTestRoll:
        return ModifiedTestRoll(base=base, modified=mod.apply(base), outcome=outcome_map[base])

    first = evaluated(generate_result(die))
    if mode is None:
        logger.debug(
            "Modified test roll %s: %d -> %d (%s)",
            die.value,
            first.base,
            first.modified,
            first.outcome.value,
        )
        return first

    second = evaluated(generate_result(die))
    kept = select_by_rank(first, second, mode)
    logger.debug(
        "Modified test roll %s with %s: %d (%s), %d (%s) -> %d",
        die.value,
        mode.value,
        first.base,
        first.outcome.value,
        second.base,
        second.outcome.value,
        kept.base,
    )
    return kept


def _check_count(count: object) -> int:
    if not is_integer(count) or count < 1:
        raise ShapeValidationError(
            f"Invalid count: {count!r}. Count must be a positive integer.", field="count"
        )
    return count


def roll_dice(die_type: DieType | str, count: int = 1) -> DicePool:
    """Roll several dice of the same kind.

    Examples:
        >>> pool = roll_dice(DieType.D6, count=3)
        >>> len(pool.values)
        3
    """
    die = coerce_die_type(die_type)
    count = _check_count(count)
    values = tuple(roll(die) for _ in range(count))
    return DicePool(values=values, total=sum(values))


def roll_dice_mod(
    die_type: DieType | str,
    modifier: DiceModifier | RollModifier | ModifierFunction | Mapping | None = None,
    count: int = 1,
) -> ModifiedDicePool:
    """Roll a pool and apply per-die and net modifiers.

    A bare function or RollModifier is applied to the total only; pass a
    DiceModifier (or ``{"each": ..., "net": ...}``) for per-die changes.

    Examples:
        >>> result = roll_dice_mod(DieType.D6, {"each": lambda n: n + 1}, count=2)
        >>> result.each.total == result.base.total + 2
        True
    """
    _check_count(count)
    dice_modifier = DiceModifier.normalise(modifier)
    base = roll_dice(die_type, count)
    each_values = tuple(dice_modifier.each.apply(v) for v in base.values)
    each_total = sum(each_values)
    return ModifiedDicePool(
        base=base,
        each=DicePool(values=each_values, total=each_total),
        net=dice_modifier.net.apply(each_total),
    )


def _aggregate_for(
    die: DieType,
    conditions: AggregateConditions | TestConditionsArray | Sequence,
    count: int,
    rules: Sequence,
) -> AggregateConditions:
    if isinstance(conditions, AggregateConditions):
        if conditions.count != count:
            raise ShapeValidationError(
                "AggregateConditions count does not match requested count", field="count"
            )
        conditions.check_die(die)
        return conditions
    if isinstance(conditions, (TestConditionsArray, list, tuple)):
        return AggregateConditions(count, conditions, rules, die)
    raise ShapeValidationError(
        "conditions must be AggregateConditions, TestConditionsArray or a list "
        "of test conditions",
        field="conditions",
    )


@dataclass(frozen=True)
class PoolTestRoll:
    """Pool roll plus its aggregate evaluation.

    Attributes:
        base: The rolled pool.
        result: Aggregate evaluation of the raw faces.
        modified: The modified pool, when a modifier was given.
    """

    base: DicePool
    result: AggregateResult
    modified: ModifiedDicePool | None = None


def roll_dice_test(
    die_type: DieType | str,
    conditions: AggregateConditions | TestConditionsArray | Sequence,
    count: int = 1,
    rules: Sequence = (),
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> PoolTestRoll:
    """Roll a pool and evaluate it against aggregate conditions.

    Args:
        die_type: Die kind for every die in the pool.
        conditions: AggregateConditions, or per-die conditions to combine
            with ``rules``.
        count: Pool size.
        rules: Aggregate rules when conditions is not AggregateConditions.
        natural_crits: Natural-crit policy override.
        cache: Outcome map cache to use instead of the default.

    Examples:
        >>> result = roll_dice_test(
        ...     DieType.D6, [{"test_type": "at_least", "target": 5}], count=4,
        ...     rules=[{"kind": "condition_count", "condition_index": 0, "at_least": 2}])
        >>> isinstance(result.result.passed, bool)
        True
    """
    die = coerce_die_type(die_type)
    _check_count(count)
    aggregate = _aggregate_for(die, conditions, count, rules)
    base = roll_dice(die, count)
    result = aggregate.evaluate(base.values, None, natural_crits, cache)
    return PoolTestRoll(base=base, result=result)


def roll_dice_mod_test(
    die_type: DieType | str,
    modifier: DiceModifier | RollModifier | ModifierFunction | Mapping,
    conditions: AggregateConditions | TestConditionsArray | Sequence,
    count: int = 1,
    rules: Sequence = (),
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> PoolTestRoll:
    """Roll a modified pool and evaluate it against aggregate conditions.

    The per-die (``each``) modifier is applied before each condition is
    evaluated; the net modifier only affects ``modified.net``. Value-count
    rules always count raw faces.
    """
    if modifier is None:
        raise ShapeValidationError("modifier is required", field="modifier")
    die = coerce_die_type(die_type)
    _check_count(count)
    aggregate = _aggregate_for(die, conditions, count, rules)
    dice_modifier = DiceModifier.normalise(modifier)

    modified = roll_dice_mod(die, dice_modifier, count)
    result = aggregate.evaluate(modified.base.values, dice_modifier.each, natural_crits, cache)
    return PoolTestRoll(base=modified.base, result=result, modified=modified)
