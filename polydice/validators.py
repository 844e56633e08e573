"""Shared validation helpers for test conditions.

Shape helpers raise ShapeValidationError for missing or mistyped fields;
range helpers raise RangeValidationError for well-formed values that fall
outside what a die (optionally modified) can produce.
"""

from collections.abc import Iterable, Mapping

from polydice.exceptions import RangeValidationError, ShapeValidationError


def is_integer(value: object) -> bool:
    """True for ints, excluding bools."""
    return isinstance(value, int) and not isinstance(value, bool)


def require_integer(conditions: Mapping, key: str, test_label: str) -> int:
    """Fetch a required integer field.

    Raises:
        ShapeValidationError: If the key is missing or not an integer.
    """
    if key not in conditions or conditions[key] is None:
        raise ShapeValidationError(
            f"'{test_label}' conditions require '{key}'", field=key
        )
    value = conditions[key]
    if not is_integer(value):
        raise ShapeValidationError(
            f"'{key}' must be an integer, got {type(value).__name__}", field=key
        )
    return value


def optional_integer(conditions: Mapping, key: str) -> int | None:
    """Fetch an optional integer field; None when absent."""
    value = conditions.get(key)
    if value is None:
        return None
    if not is_integer(value):
        raise ShapeValidationError(
            f"'{key}' must be an integer, got {type(value).__name__}", field=key
        )
    return value


def require_values(conditions: Mapping, key: str, test_label: str) -> tuple[int, ...]:
    """Fetch a required list of integers and freeze it as a tuple."""
    if key not in conditions or conditions[key] is None:
        raise ShapeValidationError(
            f"'{test_label}' conditions require '{key}'", field=key
        )
    values = conditions[key]
    if not isinstance(values, (list, tuple)):
        raise ShapeValidationError(
            f"'{key}' must be a list of integers, got {type(values).__name__}",
            field=key,
        )
    for v in values:
        if not is_integer(v):
            raise ShapeValidationError(
                f"'{key}' must contain only integers, got {v!r}", field=key
            )
    return tuple(values)


def reject_unknown_keys(conditions: Mapping, allowed: Iterable[str], test_label: str) -> None:
    """Raise ShapeValidationError if conditions carry keys the test does not use."""
    unknown = set(conditions) - set(allowed)
    if unknown:
        raise ShapeValidationError(
            f"Unknown '{test_label}' condition keys: {sorted(unknown)}"
        )


def check_in_range(value: int, low: int, high: int, key: str, context: str) -> None:
    """Raise RangeValidationError unless low <= value <= high."""
    if not low <= value <= high:
        raise RangeValidationError(
            f"{key} {value} is not achievable for {context} "
            f"(achievable range {low}-{high})",
            field=key,
            low=low,
            high=high,
        )


def check_threshold_order(
    target: int,
    critical_success: int | None,
    critical_failure: int | None,
) -> None:
    """Enforce critical_failure < target <= critical_success.

    Raises:
        RangeValidationError: If a present threshold breaks the ordering.
    """
    if critical_failure is not None and critical_failure >= target:
        raise RangeValidationError(
            f"critical_failure {critical_failure} must be below target {target}",
            field="critical_failure",
        )
    if critical_success is not None and critical_success < target:
        raise RangeValidationError(
            f"critical_success {critical_success} must be at least target {target}",
            field="critical_success",
        )
