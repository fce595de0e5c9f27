"""
Tests for currency validation and precision.

- Currency codes are validated at the domain boundary.
- Rounding and truncation derive their quantum from the currency.
"""

from decimal import Decimal

import pytest

from revenue_kernel.domain.currency import CurrencyRegistry
from revenue_kernel.domain.values import Currency, Money


class TestISO4217Enforcement:
    """Only known ISO 4217 codes are accepted."""

    def test_valid_currency_codes_accepted(self):
        for code in ["EUR", "USD", "GBP", "JPY", "CHF", "SEK"]:
            assert CurrencyRegistry.is_valid(code)
            assert CurrencyRegistry.validate(code) == code

    def test_lowercase_and_whitespace_normalized(self):
        assert CurrencyRegistry.validate(" eur ") == "EUR"
        assert Currency("usd").code == "USD"

    @pytest.mark.parametrize("code", ["", "XXX", "EURO", "12"])
    def test_invalid_codes_rejected(self, code):
        with pytest.raises(ValueError):
            CurrencyRegistry.validate(code)
        with pytest.raises(ValueError):
            Currency(code)

    def test_money_rejects_invalid_currency(self):
        with pytest.raises(ValueError):
            Money.of("10", "ABC")

    def test_all_codes_contains_default(self):
        assert "EUR" in CurrencyRegistry.all_codes()


class TestCurrencyPrecision:
    """Decimal places come from the registry."""

    @pytest.mark.parametrize(
        "code,places,quantum",
        [("EUR", 2, Decimal("0.01")), ("JPY", 0, Decimal("1")), ("KWD", 3, Decimal("0.001"))],
    )
    def test_decimal_places_and_quantum(self, code, places, quantum):
        currency = Currency(code)
        assert currency.decimal_places == places
        assert currency.quantum == quantum
        assert CurrencyRegistry.get_info(code).quantum == quantum

    def test_unknown_code_falls_back_to_default_places(self):
        assert CurrencyRegistry.get_decimal_places("XYZ") == CurrencyRegistry.DEFAULT_DECIMAL_PLACES

    def test_truncate_respects_currency(self):
        assert Money.of("10.999", "JPY").truncate() == Money.of("10", "JPY")
        assert Money.of("1.23456", "KWD").truncate() == Money.of("1.234", "KWD")
