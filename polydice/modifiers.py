"""Roll modifiers.

A RollModifier wraps a pure one-argument function that transforms a base
roll (or a pool total) into a modified value:

    >>> bonus = RollModifier(lambda n: n + 2)
    >>> bonus.apply(10)
    12

Modifiers are validated once at construction by inspecting the signature
and probing the function with a face value of 1.
"""

import hashlib
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import cached_property

from polydice.exceptions import ShapeValidationError


ModifierFunction = Callable[[int], int]

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def _check_roll_modifier(fn: object) -> None:
    """Raise ShapeValidationError unless fn is a usable modifier function."""
    if not callable(fn):
        raise ShapeValidationError(
            f"Roll modifier must be callable, got {type(fn).__name__}",
            field="modifier",
        )

    try:
        params = list(inspect.signature(fn).parameters.values())
    except (TypeError, ValueError):
        raise ShapeValidationError(
            "Roll modifier signature cannot be inspected", field="modifier"
        ) from None

    if len(params) != 1 or params[0].kind not in _POSITIONAL_KINDS:
        raise ShapeValidationError(
            "Roll modifier must declare exactly one positional parameter",
            field="modifier",
        )

    try:
        probe = fn(1)
    except Exception as exc:
        raise ShapeValidationError(
            f"Roll modifier failed when applied to 1: {exc}", field="modifier"
        ) from exc

    if not isinstance(probe, int) or isinstance(probe, bool):
        raise ShapeValidationError(
            f"Roll modifier must return an integer, got {type(probe).__name__}",
            field="modifier",
        )


def is_valid_roll_modifier(fn: object) -> bool:
    """Check whether fn can be wrapped in a RollModifier.

    Examples:
        >>> is_valid_roll_modifier(lambda n: n + 1)
        True
        >>> is_valid_roll_modifier(lambda a, b: a)
        False
    """
    try:
        _check_roll_modifier(fn)
    except ShapeValidationError:
        return False
    return True


def _describe_callable(fn: Callable) -> str:
    """Build a stable text key for a callable.

    Two closures built from the same lambda with different captured values
    get different keys.
    """
    code = getattr(fn, "__code__", None)
    if code is None or inspect.ismethod(fn):
        return repr(fn)

    cells = []
    for cell in fn.__closure__ or ():
        try:
            cells.append(repr(cell.cell_contents))
        except ValueError:
            cells.append("<empty>")

    digest = hashlib.sha1()
    digest.update(code.co_code)
    digest.update(repr(code.co_consts).encode())
    digest.update(repr(code.co_names).encode())
    digest.update(repr(fn.__defaults__).encode())
    digest.update("|".join(cells).encode())
    return f"{fn.__module__}.{fn.__qualname__}:{digest.hexdigest()}"


class RollModifier:
    """A validated numeric transform applied to dice rolls."""

    def __init__(self, fn: ModifierFunction) -> None:
        """Wrap and validate a modifier function.

        Args:
            fn: Callable taking one integer and returning an integer.

        Raises:
            ShapeValidationError: If fn is not callable, does not declare
                exactly one parameter, or does not return an integer.
        """
        _check_roll_modifier(fn)
        self.fn = fn

    def apply(self, value: int) -> int:
        """Apply the modifier to a roll value."""
        return self.fn(value)

    def __call__(self, value: int) -> int:
        return self.fn(value)

    def validate(self) -> None:
        """Re-check the wrapped function (e.g. after loading it dynamically).

        Raises:
            ShapeValidationError: If the function no longer conforms.
        """
        _check_roll_modifier(self.fn)

    @cached_property
    def cache_key(self) -> str:
        """Stable text representation used in outcome map cache keys."""
        return _describe_callable(self.fn)

    def __repr__(self) -> str:
        return f"RollModifier({self.fn!r})"


def _identity(n: int) -> int:
    return n


IDENTITY = RollModifier(_identity)


def normalise_roll_modifier(
    modifier: "RollModifier | ModifierFunction | None",
) -> RollModifier:
    """Coerce supported modifier inputs into a RollModifier.

    - None becomes the identity modifier.
    - A RollModifier is returned unchanged.
    - A callable is validated and wrapped.

    Raises:
        ShapeValidationError: For any other input or an invalid callable.
    """
    if modifier is None:
        return IDENTITY
    if isinstance(modifier, RollModifier):
        return modifier
    if callable(modifier):
        return RollModifier(modifier)
    raise ShapeValidationError(
        f"Invalid roll modifier: {modifier!r}", field="modifier"
    )


@dataclass(frozen=True)
class DiceModifier:
    """Composite modifier for dice pools.

    Attributes:
        each: Applied to every die in the pool.
        net: Applied to the sum of the per-die results.
    """

    each: RollModifier = field(default=IDENTITY)
    net: RollModifier = field(default=IDENTITY)

    @classmethod
    def normalise(cls, modifier: object) -> "DiceModifier":
        """Coerce pool modifier inputs into a DiceModifier.

        A bare callable or RollModifier is treated as a net-only modifier.
        A mapping may carry ``each`` and/or ``net`` entries.

        Raises:
            ShapeValidationError: If the input has an unsupported shape.
        """
        if modifier is None:
            return cls()
        if isinstance(modifier, DiceModifier):
            return modifier
        if isinstance(modifier, RollModifier) or callable(modifier):
            return cls(net=normalise_roll_modifier(modifier))
        if isinstance(modifier, Mapping):
            unknown = set(modifier) - {"each", "net"}
            if unknown:
                raise ShapeValidationError(
                    f"Unknown dice modifier keys: {sorted(unknown)}",
                    field="modifier",
                )
            return cls(
                each=normalise_roll_modifier(modifier.get("each")),
                net=normalise_roll_modifier(modifier.get("net")),
            )
        raise ShapeValidationError(
            f"Invalid dice modifier: {modifier!r}. Must be a function, "
            "RollModifier, DiceModifier or mapping.",
            field="modifier",
        )
