"""Money value object.

Amounts are held as a signed 64-bit count of minor units (cents, fils, yen)
together with an ISO-4217 currency code. The minor-unit exponent of each
currency comes from the CLDR currency table shipped with babel.
"""

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache, total_ordering

from babel.numbers import get_currency_precision, list_currencies

from tally.errors import ErrorCode, SystemFailure, ValidationError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Codes reserved for testing and "no currency" in ISO-4217
_NON_CURRENCIES = frozenset({"XXX", "XTS"})


@lru_cache(maxsize=1)
def _currency_codes() -> frozenset[str]:
    return frozenset(list_currencies()) - _NON_CURRENCIES


def is_valid_currency(code: str) -> bool:
    """Check that a code names a real ISO-4217 currency."""
    return len(code) == 3 and code in _currency_codes()


def currency_exponent(code: str) -> int:
    """Number of minor-unit digits for a currency (2 for AED, 0 for JPY, 3 for KWD)."""
    return get_currency_precision(code)


def fits_int64(value: int) -> bool:
    return INT64_MIN <= value <= INT64_MAX


@total_ordering
@dataclass(frozen=True)
class Money:
    """Immutable (currency, minor units) amount.

    Raises:
        ValidationError: CURRENCY_INVALID_CODE if the currency is unknown.
        SystemFailure: AMOUNT_OVERFLOW if the minor units don't fit int64.
        TypeError: if the minor units aren't an int.
    """

    currency: str
    minor_units: int

    def __post_init__(self) -> None:
        if not is_valid_currency(self.currency):
            raise ValidationError(ErrorCode.CURRENCY_INVALID_CODE, f"No such currency '{self.currency}'")
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise TypeError(f"minor_units must be an int, got {type(self.minor_units).__name__}")
        if not fits_int64(self.minor_units):
            raise SystemFailure(ErrorCode.AMOUNT_OVERFLOW, f"Amount {self.minor_units} overflows 64-bit minor units")

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(currency, 0)

    @property
    def is_zero(self) -> bool:
        return self.minor_units == 0

    @property
    def is_positive(self) -> bool:
        return self.minor_units > 0

    @property
    def is_negative(self) -> bool:
        return self.minor_units < 0

    def add(self, other: "Money") -> "Money":
        """Add two amounts of the same currency.

        Raises:
            ValidationError: AMOUNT_MISMATCHING_CURRENCIES if currencies differ.
            SystemFailure: AMOUNT_OVERFLOW if the sum leaves the int64 range.
        """
        self._check_same_currency(other)
        total = self.minor_units + other.minor_units
        if not fits_int64(total):
            raise SystemFailure(
                ErrorCode.AMOUNT_OVERFLOW,
                f"Adding {other} to {self} overflows 64-bit minor units",
            )
        return Money(self.currency, total)

    def __add__(self, other: object) -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def abs(self) -> "Money":
        # abs(INT64_MIN) has no int64 representation
        return Money(self.currency, abs(self.minor_units))

    def negate(self) -> "Money":
        return Money(self.currency, -self.minor_units)

    def __neg__(self) -> "Money":
        return self.negate()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_same_currency(other)
        return self.minor_units < other.minor_units

    def _check_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValidationError(
                ErrorCode.AMOUNT_MISMATCHING_CURRENCIES,
                f"Cannot combine {self.currency} with {other.currency}",
            )

    def __str__(self) -> str:
        exponent = currency_exponent(self.currency)
        value = Decimal(self.minor_units).scaleb(-exponent)
        return f"{self.currency} {value:.{exponent}f}"
