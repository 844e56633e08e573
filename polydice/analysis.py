"""Exact outcome distributions for a single die.

Instead of rolling, every face 1..sides is enumerated through the same
outcome map used for real rolls, so the reported probabilities are exact.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from polydice.conditions import (
    TestConditions,
    normalise_modified_test_conditions,
    normalise_test_conditions,
)
from polydice.exceptions import ShapeValidationError
from polydice.modifiers import ModifierFunction, RollModifier, normalise_roll_modifier
from polydice.outcomes import OutcomeMap, OutcomeMapCache, create_outcome_map
from polydice.types import AchievableRange, DieType, Outcome, coerce_die_type


@dataclass(frozen=True)
class DistributionReport:
    """Outcome distribution of one die against one test.

    Attributes:
        total_possibilities: Number of faces enumerated.
        outcome_counts: Faces producing each outcome (absent outcomes omitted).
        outcome_probabilities: count / total_possibilities per outcome.
        outcomes_by_roll: Base face -> outcome.
        rolls: Every face, ascending.
        rolls_by_outcome: Faces grouped by outcome.
    """

    total_possibilities: int
    outcome_counts: dict[Outcome, int]
    outcome_probabilities: dict[Outcome, float]
    outcomes_by_roll: OutcomeMap
    rolls: tuple[int, ...]
    rolls_by_outcome: dict[Outcome, tuple[int, ...]]

    def count(self, *outcomes: Outcome) -> int:
        """Number of faces producing any of the given outcomes."""
        return sum(self.outcome_counts.get(o, 0) for o in outcomes)

    def probability(self, *outcomes: Outcome) -> float:
        """Probability of rolling any of the given outcomes.

        Examples:
            >>> report.probability(Outcome.SUCCESS, Outcome.CRITICAL_SUCCESS)
            0.3
        """
        return self.count(*outcomes) / self.total_possibilities


@dataclass(frozen=True)
class ModifiedDistributionReport(DistributionReport):
    """Distribution of a modified die.

    Attributes:
        modified_values_by_roll: Base face -> modified value.
        modified_range: Lowest and highest modified value over every face.
    """

    modified_values_by_roll: dict[int, int] | None = None
    modified_range: AchievableRange | None = None


def _summarise(outcome_map: OutcomeMap, sides: int) -> dict:
    counts: dict[Outcome, int] = {}
    grouped: dict[Outcome, list[int]] = {}
    for face in range(1, sides + 1):
        outcome = outcome_map[face]
        counts[outcome] = counts.get(outcome, 0) + 1
        grouped.setdefault(outcome, []).append(face)

    return {
        "total_possibilities": sides,
        "outcome_counts": counts,
        "outcome_probabilities": {o: c / sides for o, c in counts.items()},
        "outcomes_by_roll": outcome_map,
        "rolls": tuple(range(1, sides + 1)),
        "rolls_by_outcome": {o: tuple(faces) for o, faces in grouped.items()},
    }


def analyze_test(
    die_type: DieType | str,
    test_conditions: TestConditions | Mapping,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> DistributionReport:
    """Enumerate every face of a die against test conditions.

    Args:
        die_type: Die to analyse.
        test_conditions: TestConditions or a mapping with ``test_type``.
        natural_crits: Natural-crit policy override.
        cache: Outcome map cache to use instead of the default.

    Returns:
        DistributionReport with counts, probabilities and groupings.

    Examples:
        >>> report = analyze_test(DieType.D20, {"test_type": "at_least", "target": 15})
        >>> report.outcome_counts[Outcome.SUCCESS]
        6
    """
    die = coerce_die_type(die_type)
    conditions = normalise_test_conditions(test_conditions, die)
    outcome_map = create_outcome_map(die, conditions, None, natural_crits, cache)
    return DistributionReport(**_summarise(outcome_map, die.sides))


def analyze_mod_test(
    die_type: DieType | str,
    modifier: RollModifier | ModifierFunction,
    test_conditions: TestConditions | Mapping,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> ModifiedDistributionReport:
    """Enumerate every face of a modified die against modified conditions.

    Unlike condition validation, ``modified_range`` here is computed from
    every face, not just the extremes.

    Raises:
        ShapeValidationError: If the modifier is missing or malformed.
        RangeValidationError: If the conditions cannot be met by the
            modified die.
    """
    if modifier is None:
        raise ShapeValidationError("modifier is required", field="modifier")
    die = coerce_die_type(die_type)
    mod = normalise_roll_modifier(modifier)
    conditions = normalise_modified_test_conditions(test_conditions, die, mod)
    outcome_map = create_outcome_map(die, conditions, mod, natural_crits, cache)

    modified_values = {face: mod.apply(face) for face in range(1, die.sides + 1)}
    return ModifiedDistributionReport(
        **_summarise(outcome_map, die.sides),
        modified_values_by_roll=modified_values,
        modified_range=AchievableRange(
            min(modified_values.values()), max(modified_values.values())
        ),
    )
