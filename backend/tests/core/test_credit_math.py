"""Tests for credit math — money/credit conversion, no IO."""

from decimal import Decimal

import pytest

from credit_ledger.core.credit_math import (
    build_rates_table, cents_to_display, credits_for_cents, money_to_cents,
    validate_topup_cents,
)
from credit_ledger.core.errors import InvalidAmountError


def test_money_to_cents_exact():
    assert money_to_cents(Decimal("12.50")) == 1250
    assert money_to_cents(Decimal("1")) == 100


def test_money_to_cents_rejects_sub_cent_amounts():
    with pytest.raises(InvalidAmountError):
        money_to_cents(Decimal("1.005"))


def test_credits_drop_partial_credits():
    assert credits_for_cents(1250, credits_per_unit=10) == 125
    assert credits_for_cents(105, credits_per_unit=10) == 10


def test_cents_display_has_two_places():
    assert cents_to_display(1250) == "12.50"
    assert cents_to_display(100) == "1.00"


def test_topup_below_minimum_rejected():
    with pytest.raises(InvalidAmountError):
        validate_topup_cents(99, minimum_units=1)
    validate_topup_cents(100, minimum_units=1)


def test_rates_table():
    table = build_rates_table(10, 1, "PHP")
    assert table["rates"] == {
        "credits_per_unit": 10, "minimum_amount": 1, "currency": "PHP",
    }
    assert [e["credits"] for e in table["examples"]] == [10, 100, 500, 1000]
