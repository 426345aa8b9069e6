"""Tests for the VAT, platform fee and rating arithmetic."""

from decimal import Decimal

import pytest

from core.budget import (
    compute_budget, compute_assignment_budget, compute_platform_fee, to_money, running_average,
)


class TestComputeBudget:

    def test_standard_rate(self):
        budget = compute_budget(Decimal("10000"))

        assert budget.base == Decimal("10000.00")
        assert budget.vat == Decimal("1500.00")
        assert budget.total == Decimal("11500.00")
        assert budget.net_payable == budget.total

    def test_vat_rounds_half_up(self):
        # 0.30 * 0.15 = 0.045, half-even would give 0.04
        budget = compute_budget("0.30")

        assert budget.vat == Decimal("0.05")
        assert budget.total == Decimal("0.35")

    def test_base_is_rounded_before_vat(self):
        budget = compute_budget("100.005")

        assert budget.base == Decimal("100.01")
        assert budget.vat == Decimal("15.00")
        assert budget.total == Decimal("115.01")

    @pytest.mark.parametrize("base", ["1", "33.33", "999.99", "12345.67", "0"])
    def test_total_is_base_plus_rounded_vat(self, base):
        budget = compute_budget(base)

        assert budget.total == budget.base + budget.vat

    def test_float_input_does_not_leak_binary_error(self):
        assert compute_budget(0.1).base == Decimal("0.10")

    def test_custom_rate(self):
        budget = compute_budget("200", vat_rate=Decimal("0.16"))

        assert budget.vat == Decimal("32.00")
        assert budget.total == Decimal("232.00")

    def test_as_dict(self):
        assert compute_budget("100").as_dict() == {
            "base": Decimal("100.00"),
            "vat": Decimal("15.00"),
            "total": Decimal("115.00"),
            "net_payable": Decimal("115.00"),
        }


class TestAssignmentBudget:

    def test_same_formula_as_campaign(self):
        assert compute_assignment_budget("4000") == compute_budget("4000")


class TestPlatformFee:

    def test_default_percent(self):
        fee, available = compute_platform_fee("10000")

        assert fee == Decimal("1000.00")
        assert available == Decimal("9000.00")

    def test_fee_rounds_to_cents(self):
        fee, available = compute_platform_fee("33.35", fee_percent=10)

        assert fee == Decimal("3.34")
        assert available == Decimal("30.01")


def test_to_money_half_up():
    assert to_money("2.675") == Decimal("2.68")
    assert to_money(Decimal("-1.005")) == Decimal("-1.01")


@pytest.mark.parametrize("average, count, rating, expected", [
    ("0", 0, 5, "5.0"),
    ("4.0", 2, 5, "4.3"),
    ("4.5", 1, 4, "4.3"),   # 4.25 rounds half up
    ("3.0", 3, 1, "2.5"),
])
def test_running_average(average, count, rating, expected):
    assert running_average(Decimal(average), count, rating) == Decimal(expected)
