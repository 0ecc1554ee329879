"""Tests for tally.domain.money."""

import pytest

from tally.domain.money import INT64_MAX, INT64_MIN, Money, currency_exponent, is_valid_currency
from tally.errors import ErrorCode, SystemFailure, ValidationError


class TestCurrencyTable:
    """Tests for is_valid_currency and currency_exponent."""

    def test_known_currencies(self) -> None:
        """Should accept real ISO-4217 codes."""
        assert is_valid_currency("AED")
        assert is_valid_currency("USD")
        assert is_valid_currency("JPY")

    def test_unknown_currencies(self) -> None:
        """Should reject made-up, lowercase and reserved codes."""
        assert not is_valid_currency("ABC")
        assert not is_valid_currency("aed")
        assert not is_valid_currency("XXX")
        assert not is_valid_currency("")

    def test_exponents(self) -> None:
        """Should know how many minor-unit digits each currency has."""
        assert currency_exponent("AED") == 2
        assert currency_exponent("JPY") == 0
        assert currency_exponent("KWD") == 3


class TestMoney:
    """Tests for Money."""

    def test_invalid_currency(self) -> None:
        """Should reject an unknown currency code."""
        with pytest.raises(ValidationError) as exc_info:
            Money("ABC", 100)

        assert exc_info.value.code is ErrorCode.CURRENCY_INVALID_CODE
        assert "No such currency 'ABC'" in str(exc_info.value)

    def test_out_of_range(self) -> None:
        """Should reject minor units outside int64."""
        with pytest.raises(SystemFailure) as exc_info:
            Money("AED", INT64_MAX + 1)

        assert exc_info.value.code is ErrorCode.AMOUNT_OVERFLOW

    def test_non_integer_minor_units(self) -> None:
        """Should raise TypeError for minor units that aren't an int."""
        with pytest.raises(TypeError):
            Money("AED", 1.5)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            Money("AED", True)

    def test_add_is_commutative(self) -> None:
        """Should give the same sum in either order."""
        pairs = [(0, 0), (1_000, -250), (-7, -3), (INT64_MAX, INT64_MIN)]

        for a, b in pairs:
            assert Money("AED", a).add(Money("AED", b)) == Money("AED", b).add(Money("AED", a))

    def test_double_negate(self) -> None:
        """Should give back the original amount after negating twice."""
        for value in (0, 1, -1, 1_050, INT64_MAX, INT64_MIN + 1):
            assert Money("AED", value).negate().negate() == Money("AED", value)

    def test_add_same_currency(self) -> None:
        """Should add minor units of the same currency."""
        assert Money("AED", 1_000) + Money("AED", -250) == Money("AED", 750)

    def test_add_mismatching_currencies(self) -> None:
        """Should refuse to add different currencies."""
        with pytest.raises(ValidationError) as exc_info:
            Money("AED", 1).add(Money("USD", 1))

        assert exc_info.value.code is ErrorCode.AMOUNT_MISMATCHING_CURRENCIES

    def test_add_overflow(self) -> None:
        """Should detect overflow past int64 in both directions."""
        with pytest.raises(SystemFailure) as exc_info:
            Money("AED", INT64_MAX).add(Money("AED", 1))
        assert exc_info.value.code is ErrorCode.AMOUNT_OVERFLOW

        with pytest.raises(SystemFailure):
            Money("AED", INT64_MIN).add(Money("AED", -1))

    def test_sign_helpers(self) -> None:
        """Should classify zero, positive and negative amounts."""
        assert Money.zero("AED").is_zero
        assert Money("AED", 5).is_positive
        assert Money("AED", -5).is_negative
        assert not Money("AED", -5).is_positive

    def test_abs_and_negate(self) -> None:
        """Should flip and drop the sign."""
        assert Money("AED", -5).abs() == Money("AED", 5)
        assert -Money("AED", 5) == Money("AED", -5)
        assert Money("AED", 5).negate().abs() == Money("AED", 5)

    def test_abs_of_minimum_overflows(self) -> None:
        """Should refuse the absolute value of the smallest int64."""
        with pytest.raises(SystemFailure):
            Money("AED", INT64_MIN).abs()

    def test_ordering(self) -> None:
        """Should compare amounts of one currency."""
        assert Money("AED", 1) < Money("AED", 2)
        assert Money("AED", 2) >= Money("AED", 2)

    def test_ordering_mismatching_currencies(self) -> None:
        """Should refuse to compare different currencies."""
        with pytest.raises(ValidationError):
            _ = Money("AED", 1) < Money("USD", 2)

    def test_str_uses_currency_exponent(self) -> None:
        """Should render major units with the currency's decimals."""
        assert str(Money("AED", 10_000)) == "AED 100.00"
        assert str(Money("AED", -1_050)) == "AED -10.50"
        assert str(Money("JPY", 500)) == "JPY 500"
        assert str(Money("KWD", 1_234)) == "KWD 1.234"
