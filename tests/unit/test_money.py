"""Tests for tm_common.money and tm_common.datetime_utils."""

from datetime import datetime
from decimal import Decimal

import pytest

from src.tm_common.datetime_utils import to_iso
from src.tm_common.money import money_to_display, to_money, validate_unit_price


class TestToMoney:
    def test_quantizes_to_cents(self) -> None:
        assert to_money("10") == Decimal("10.00")
        assert str(to_money(3)) == "3.00"

    def test_bankers_rounding(self) -> None:
        assert to_money("0.125") == Decimal("0.12")
        assert to_money("0.135") == Decimal("0.14")


class TestValidateUnitPrice:
    def test_positive_ok(self) -> None:
        validate_unit_price(Decimal("0.01"))

    @pytest.mark.parametrize("price", ["0", "-5"])
    def test_non_positive_rejected(self, price: str) -> None:
        with pytest.raises(ValueError):
            validate_unit_price(Decimal(price))


class TestMoneyToDisplay:
    def test_thousands_separator(self) -> None:
        assert money_to_display(Decimal("1234.5")) == "$1,234.50"

    def test_negative(self) -> None:
        assert money_to_display(Decimal("-12")) == "-$12.00"

    def test_zero(self) -> None:
        assert money_to_display(Decimal("0")) == "$0.00"


class TestToIso:
    def test_none_is_empty(self) -> None:
        assert to_iso(None) == ""

    def test_naive_is_treated_as_utc(self) -> None:
        assert to_iso(datetime(2026, 1, 2, 3, 4, 5)) == "2026-01-02T03:04:05+00:00"
