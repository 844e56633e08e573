"""Dice engine exception definitions.

Two failure kinds cover every validation path:
- ShapeValidationError: input is structurally wrong (missing field, wrong
  type, unknown die or test kind, non-callable modifier).
- RangeValidationError: input is well formed but numerically impossible
  (target outside the achievable range, bad threshold ordering).
"""


class PolydiceError(Exception):
    """Base exception for dice engine operations."""

    pass


class ShapeValidationError(PolydiceError, TypeError):
    """Input has the wrong structure or runtime type.

    Attributes:
        field: Name of the offending field, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class RangeValidationError(PolydiceError, ValueError):
    """Input is well formed but outside the permitted numeric range.

    Attributes:
        field: Name of the offending field, if known.
        low: Lowest permitted value, if a range applies.
        high: Highest permitted value, if a range applies.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        low: int | None = None,
        high: int | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.low = low
        self.high = high
