"""Fixed-precision money backed by integer cents.

All ledger arithmetic (cost = price x shares, average price recompute,
balance deltas) goes through Money so that binary floating point never
touches a stored amount. Multiplication and division round once per
operation, half-up, to whole cents.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

DECIMALS = 2
CENT = Decimal("0.01")
_CENTS_PER_UNIT = 100


def _to_decimal(value: "Money | Decimal | int | float | str") -> Decimal:
    if isinstance(value, Money):
        return value.to_decimal()
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, float):
        # str() gives the shortest repr, so 0.1 stays 0.1 rather than 0.1000000000000000055...
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc


@dataclass(frozen=True, order=True)
class Money:
    """A monetary quantity with exactly two decimal places."""

    cents: int

    def __post_init__(self) -> None:
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise TypeError(f"Money cents must be int, got {type(self.cents).__name__}")

    @classmethod
    def of(cls, value: "Money | Decimal | int | float | str") -> "Money":
        """Build Money from a decimal-like value, rounding half-up to cents.

        Raises:
            ValueError: If the value is not numeric, not finite, or has more
                digits than the decimal context can quantize to cents.
        """
        if isinstance(value, Money):
            return value
        amount = _to_decimal(value)
        if not amount.is_finite():
            raise ValueError(f"Monetary amount must be finite, got {value!r}")
        try:
            quantized = amount.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation as exc:
            raise ValueError(f"Monetary amount out of range: {value!r}") from exc
        return cls(int(quantized.scaleb(DECIMALS)))

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    def to_decimal(self) -> Decimal:
        return Decimal(self.cents).scaleb(-DECIMALS).quantize(CENT)

    def is_negative(self) -> bool:
        return self.cents < 0

    def is_positive(self) -> bool:
        return self.cents > 0

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __neg__(self) -> "Money":
        return Money(-self.cents)

    def __mul__(self, count: int) -> "Money":
        """Multiply by a whole share count. Exact in cents."""
        if isinstance(count, bool) or not isinstance(count, int):
            return NotImplemented
        return Money(self.cents * count)

    __rmul__ = __mul__

    def __truediv__(self, count: int) -> "Money":
        """Divide by a whole share count, rounding half-up once."""
        if isinstance(count, bool) or not isinstance(count, int):
            return NotImplemented
        if count == 0:
            raise ZeroDivisionError("Money divided by zero shares")
        quotient = Decimal(self.cents) / Decimal(count)
        return Money(int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP)))

    def __str__(self) -> str:
        return str(self.to_decimal())

    def format(self, symbol: str = "$") -> str:
        """Human-readable amount, e.g. ``-$1,234.50``."""
        sign = "-" if self.cents < 0 else ""
        units, cents = divmod(abs(self.cents), _CENTS_PER_UNIT)
        return f"{sign}{symbol}{units:,}.{cents:02d}"
