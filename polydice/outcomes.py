"""Outcome maps: every base face of a die mapped to its Outcome.

An outcome map is built once per (die, test kind, conditions, modifier,
natural-crit policy) combination and memoised in an OutcomeMapCache. Maps
are read-only; a different combination produces a different map.

The cache is an explicit object. Callers may pass their own via ``cache=``;
otherwise the process default from get_outcome_cache() is used.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from functools import lru_cache
from types import MappingProxyType

from polydice.conditions import (
    ModifiedTestConditions,
    TestConditions,
    normalise_test_conditions,
)
from polydice.exceptions import RangeValidationError, ShapeValidationError
from polydice.modifiers import ModifierFunction, RollModifier, normalise_roll_modifier
from polydice.registry import get_test_kind
from polydice.types import DieType, Outcome, TestType, coerce_die_type
from polydice.validators import is_integer

logger = logging.getLogger(__name__)

OutcomeMap = Mapping[int, Outcome]
Evaluator = Callable[[int], Outcome]
CacheKey = tuple[str, str, str, str, bool]


class OutcomeMapCache:
    """Keyed store of completed outcome maps.

    There is no eviction; entries live until clear() is called. Access is
    guarded by a lock so a single cache can be shared between threads.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, OutcomeMap] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> OutcomeMap | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: CacheKey, outcome_map: OutcomeMap) -> OutcomeMap:
        """Store a map unless one already exists; return the stored map."""
        with self._lock:
            return self._entries.setdefault(key, outcome_map)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


@lru_cache
def get_outcome_cache() -> OutcomeMapCache:
    """Get the process-wide default outcome map cache."""
    return OutcomeMapCache()


def clear_outcome_map_cache() -> None:
    """Clear the default cache."""
    get_outcome_cache().clear()


def get_outcome_map_cache_size() -> int:
    """Number of maps stored in the default cache."""
    return get_outcome_cache().size()


def resolve_natural_crits(test_type: TestType | str, natural_crits: bool | None) -> bool:
    """Resolve the natural-crit policy.

    An explicit True/False from the caller wins; otherwise the test kind's
    default applies (on for skill tests, off for everything else).
    """
    if natural_crits is not None:
        return bool(natural_crits)
    return get_test_kind(test_type).default_natural_crits


def _cache_key(
    die_type: DieType,
    test_conditions: TestConditions,
    modifier: RollModifier | None,
    natural_crits: bool,
) -> CacheKey:
    return (
        die_type.value,
        test_conditions.test_type.value,
        test_conditions.cache_token(),
        modifier.cache_key if modifier is not None else "none",
        natural_crits,
    )


def create_outcome_map(
    die_type: DieType | str,
    test_conditions: TestConditions | Mapping,
    modifier: RollModifier | ModifierFunction | None = None,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> OutcomeMap:
    """Build (or fetch) the outcome of every base face.

    For each face 1..sides the modifier is applied, the value is evaluated
    against the conditions, then natural-crit overrides are applied to the
    raw extremes when the policy is enabled.

    Args:
        die_type: Die being rolled.
        test_conditions: TestConditions, ModifiedTestConditions or a mapping
            with ``test_type``.
        modifier: Optional transform applied to each face before evaluation.
            Defaults to the modifier carried by ModifiedTestConditions.
        natural_crits: Force natural crits on/off; None uses the kind default.
        cache: Cache to use instead of the process default.

    Returns:
        Read-only mapping of base face -> Outcome. Identical calls return
        the same instance.
    """
    die = coerce_die_type(die_type)
    conditions = normalise_test_conditions(test_conditions, die)
    if modifier is None and isinstance(conditions, ModifiedTestConditions):
        modifier = conditions.modifier
    mod = normalise_roll_modifier(modifier) if modifier is not None else None
    use_crits = resolve_natural_crits(conditions.test_type, natural_crits)
    store = cache if cache is not None else get_outcome_cache()

    key = _cache_key(die, conditions, mod, use_crits)
    cached = store.get(key)
    if cached is not None:
        logger.debug("Outcome map cache hit for %s %s", die.value, conditions.test_type.value)
        return cached

    kind = get_test_kind(conditions.test_type)
    sides = die.sides
    outcome_map: dict[int, Outcome] = {}
    for base in range(1, sides + 1):
        value = mod.apply(base) if mod is not None else base
        outcome = kind.evaluate(value, conditions.conditions)
        if use_crits:
            outcome = kind.apply_natural_crit(outcome, base == sides, base == 1)
        outcome_map[base] = outcome

    logger.debug(
        "Built outcome map for %s %s (natural crits: %s)",
        die.value,
        conditions.test_type.value,
        use_crits,
    )
    return store.set(key, MappingProxyType(outcome_map))


def get_evaluator(
    die_type: DieType | str,
    test_conditions: TestConditions | Mapping,
    modifier: RollModifier | ModifierFunction | None = None,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> Evaluator:
    """Return a function mapping a base face to its Outcome.

    The returned evaluator raises RangeValidationError for a face the die
    cannot show.
    """
    die = coerce_die_type(die_type)
    outcome_map = create_outcome_map(die, test_conditions, modifier, natural_crits, cache)

    def evaluate(base: int) -> Outcome:
        if not is_integer(base):
            raise ShapeValidationError(
                f"base roll must be an integer, got {type(base).__name__}", field="base"
            )
        if base not in outcome_map:
            raise RangeValidationError(
                f"base roll {base} is not a face of {die.value}",
                field="base",
                low=1,
                high=die.sides,
            )
        return outcome_map[base]

    return evaluate


def get_array_evaluator(
    conditions_array,
    modifier: RollModifier | ModifierFunction | None = None,
    natural_crits: bool | None = None,
    cache: OutcomeMapCache | None = None,
) -> Callable[[int], tuple[Outcome, ...]]:
    """Return a function mapping a base face to one Outcome per condition.

    Args:
        conditions_array: A TestConditionsArray; each entry is evaluated on
            its own die type.
    """
    evaluators = [
        get_evaluator(tc.die_type, tc, modifier, natural_crits, cache)
        for tc in conditions_array
    ]

    def evaluate(base: int) -> tuple[Outcome, ...]:
        return tuple(fn(base) for fn in evaluators)

    return evaluate
