"""Polyhedral dice engine.

Validates test conditions against what a die (optionally modified) can
produce, evaluates rolls into ranked outcomes, and reports exact outcome
distributions.

Usage:
    >>> from polydice import DieType, roll_test
    >>> result = roll_test(DieType.D20, {"test_type": "at_least", "target": 15})
    >>> result.outcome in (Outcome.SUCCESS, Outcome.FAILURE)
    True
"""

# Types
from polydice.types import (
    OUTCOME_RANKS,
    AchievableRange,
    DicePool,
    DieType,
    ModifiedDicePool,
    ModifiedRoll,
    ModifiedTestRoll,
    Outcome,
    RollType,
    TestRoll,
    TestType,
    coerce_die_type,
    coerce_roll_type,
    coerce_test_type,
    is_valid_outcome,
    num_sides,
)

# Errors
from polydice.exceptions import (
    PolydiceError,
    RangeValidationError,
    ShapeValidationError,
)

# Modifiers
from polydice.modifiers import (
    IDENTITY,
    DiceModifier,
    RollModifier,
    is_valid_roll_modifier,
    normalise_roll_modifier,
)

# Conditions
from polydice.conditions import (
    ModifiedTestConditions,
    TestConditions,
    compute_modified_range,
    normalise_modified_test_conditions,
    normalise_test_conditions,
)
from polydice.registry import REGISTRY, TestKind, determine_outcome, get_test_kind

# Outcome maps
from polydice.outcomes import (
    OutcomeMapCache,
    clear_outcome_map_cache,
    create_outcome_map,
    get_array_evaluator,
    get_evaluator,
    get_outcome_cache,
    get_outcome_map_cache_size,
)

# Pools
from polydice.aggregate import (
    AggregateConditions,
    AggregateResult,
    AggregateRule,
    RuleResult,
    TestConditionsArray,
)

# Rolling
from polydice.roller import (
    PoolTestRoll,
    roll,
    roll_adv,
    roll_d4,
    roll_d6,
    roll_d8,
    roll_d10,
    roll_d12,
    roll_d20,
    roll_dice,
    roll_dice_mod,
    roll_dice_mod_test,
    roll_dice_test,
    roll_dis,
    roll_mod,
    roll_mod_test,
    roll_test,
    select_by_rank,
)

# Analysis
from polydice.analysis import (
    DistributionReport,
    ModifiedDistributionReport,
    analyze_mod_test,
    analyze_test,
)

__all__ = [
    # Types
    "OUTCOME_RANKS",
    "AchievableRange",
    "DicePool",
    "DieType",
    "ModifiedDicePool",
    "ModifiedRoll",
    "ModifiedTestRoll",
    "Outcome",
    "RollType",
    "TestRoll",
    "TestType",
    "coerce_die_type",
    "coerce_roll_type",
    "coerce_test_type",
    "is_valid_outcome",
    "num_sides",
    # Errors
    "PolydiceError",
    "RangeValidationError",
    "ShapeValidationError",
    # Modifiers
    "IDENTITY",
    "DiceModifier",
    "RollModifier",
    "is_valid_roll_modifier",
    "normalise_roll_modifier",
    # Conditions
    "ModifiedTestConditions",
    "TestConditions",
    "compute_modified_range",
    "normalise_modified_test_conditions",
    "normalise_test_conditions",
    "REGISTRY",
    "TestKind",
    "determine_outcome",
    "get_test_kind",
    # Outcome maps
    "OutcomeMapCache",
    "clear_outcome_map_cache",
    "create_outcome_map",
    "get_array_evaluator",
    "get_evaluator",
    "get_outcome_cache",
    "get_outcome_map_cache_size",
    # Pools
    "AggregateConditions",
    "AggregateResult",
    "AggregateRule",
    "RuleResult",
    "TestConditionsArray",
    # Rolling
    "PoolTestRoll",
    "roll",
    "roll_adv",
    "roll_d4",
    "roll_d6",
    "roll_d8",
    "roll_d10",
    "roll_d12",
    "roll_d20",
    "roll_dice",
    "roll_dice_mod",
    "roll_dice_mod_test",
    "roll_dice_test",
    "roll_dis",
    "roll_mod",
    "roll_mod_test",
    "roll_test",
    "select_by_rank",
    # Analysis
    "DistributionReport",
    "ModifiedDistributionReport",
    "analyze_mod_test",
    "analyze_test",
]
