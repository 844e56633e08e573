"""Dice engine type definitions.

Closed enumerations for die kinds, outcomes, test kinds and roll modes, plus
immutable dataclasses for roll results.
"""

from dataclasses import dataclass
from enum import Enum

from polydice.exceptions import ShapeValidationError


class DieType(str, Enum):
    """Supported polyhedral dice."""

    D4 = "d4"
    D6 = "d6"
    D8 = "d8"
    D10 = "d10"
    D12 = "d12"
    D20 = "d20"

    @property
    def sides(self) -> int:
        """Number of faces on this die."""
        return int(self.value[1:])


class Outcome(str, Enum):
    """Categorical result of evaluating a roll against a test."""

    SUCCESS = "success"
    FAILURE = "failure"
    CRITICAL_SUCCESS = "critical_success"
    CRITICAL_FAILURE = "critical_failure"

    @property
    def rank(self) -> int:
        """Position in the total order used for advantage/disadvantage."""
        return OUTCOME_RANKS[self]

    @property
    def is_success(self) -> bool:
        """True for Success and CriticalSuccess."""
        return self in (Outcome.SUCCESS, Outcome.CRITICAL_SUCCESS)


# CriticalFailure < Failure < Success < CriticalSuccess
OUTCOME_RANKS: dict[Outcome, int] = {
    Outcome.CRITICAL_FAILURE: 0,
    Outcome.FAILURE: 1,
    Outcome.SUCCESS: 2,
    Outcome.CRITICAL_SUCCESS: 3,
}


class TestType(str, Enum):
    """Kind of test a roll is evaluated against.

    - EXACT: value == target
    - AT_LEAST: value >= target
    - AT_MOST: value <= target
    - WITHIN: min <= value <= max
    - IN_LIST: value is one of the listed values
    - SKILL: threshold test with optional critical thresholds
    """

    __test__ = False

    EXACT = "exact"
    AT_LEAST = "at_least"
    AT_MOST = "at_most"
    WITHIN = "within"
    IN_LIST = "in_list"
    SKILL = "skill"


class RollType(str, Enum):
    """Roll-twice modes. A normal roll is expressed as ``None``."""

    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"


def _coerce(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise ShapeValidationError(f"Invalid {label}: {value!r}", field=label) from None


def coerce_die_type(value: "DieType | str") -> DieType:
    """Convert a die kind or its string value to a DieType.

    Raises:
        ShapeValidationError: If the value is not a known die kind.

    Examples:
        >>> coerce_die_type("d20")
        <DieType.D20: 'd20'>
    """
    return _coerce(DieType, value, "die_type")


def coerce_test_type(value: "TestType | str") -> TestType:
    """Convert a test kind or its string value to a TestType."""
    return _coerce(TestType, value, "test_type")


def coerce_roll_type(value: "RollType | str | None") -> RollType | None:
    """Convert a roll mode to a RollType; ``None`` stays ``None`` (normal roll)."""
    if value is None:
        return None
    return _coerce(RollType, value, "roll_type")


def num_sides(die_type: "DieType | str") -> int:
    """Return the face count of a die.

    Examples:
        >>> num_sides("d6")
        6
    """
    return coerce_die_type(die_type).sides


def is_valid_outcome(value: object) -> bool:
    """Check whether a value is one of the four outcomes."""
    try:
        Outcome(value)
    except (ValueError, TypeError):
        return False
    return True


@dataclass(frozen=True)
class AchievableRange:
    """Closed interval of values a die can produce (optionally modified)."""

    min: int
    max: int

    def __contains__(self, value: object) -> bool:
        return (
            isinstance(value, int)
            and not isinstance(value, bool)
            and self.min <= value <= self.max
        )

    def __str__(self) -> str:
        return f"{self.min}-{self.max}"


@dataclass(frozen=True)
class ModifiedRoll:
    """A base roll and its value after a modifier.

    Attributes:
        base: The raw face rolled.
        modified: The face after the modifier was applied.
    """

    base: int
    modified: int


@dataclass(frozen=True)
class TestRoll:
    """A raw roll evaluated against test conditions."""

    __test__ = False

    base: int
    outcome: Outcome


@dataclass(frozen=True)
class ModifiedTestRoll:
    """A modified roll evaluated against modified test conditions.

    Attributes:
        base: The raw face rolled (the kept face under advantage/disadvantage).
        modified: The face after the modifier.
        outcome: Outcome with natural-crit overrides already applied.
    """

    base: int
    modified: int
    outcome: Outcome


@dataclass(frozen=True)
class DicePool:
    """Result of rolling several dice of the same kind.

    Attributes:
        values: Each die's face, in roll order.
        total: Sum of all faces.
    """

    values: tuple[int, ...]
    total: int


@dataclass(frozen=True)
class ModifiedDicePool:
    """Pool roll with per-die and net modifiers applied.

    Attributes:
        base: The unmodified pool.
        each: The pool after the per-die modifier.
        net: The per-die total after the net modifier.
    """

    base: DicePool
    each: DicePool
    net: int
