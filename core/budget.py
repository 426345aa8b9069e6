# Budget Calculator
# Pure money arithmetic for campaign and assignment budgets, plus the rating average.

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from config.app_config import VAT_RATE, PLATFORM_FEE_PERCENT

CENT = Decimal("0.01")
TENTH = Decimal("0.1")

Money = Union[Decimal, int, float, str]


def to_money(value: Money) -> Decimal:
    """Coerce to Decimal and round to cents, half away from zero."""
    if not isinstance(value, Decimal):
        # via str so a float 0.1 stays 0.1
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BudgetBreakdown:
    base: Decimal
    vat: Decimal
    total: Decimal
    net_payable: Decimal

    def as_dict(self) -> dict:
        return {
            "base": self.base,
            "vat": self.vat,
            "total": self.total,
            "net_payable": self.net_payable,
        }


def compute_budget(base: Money, vat_rate: Money = VAT_RATE) -> BudgetBreakdown:
    """
    Compute VAT, total and net payable for a base amount.

    VAT is rounded on its own first, then the total is rounded from
    base + rounded VAT. The total is never derived by subtraction.
    """
    base_amount = to_money(base)
    vat = to_money(base_amount * Decimal(str(vat_rate)))
    total = to_money(base_amount + vat)
    return BudgetBreakdown(base=base_amount, vat=vat, total=total, net_payable=total)


def compute_assignment_budget(offer: Money, vat_rate: Money = VAT_RATE) -> BudgetBreakdown:
    """Same VAT formula applied to a single assignment offer."""
    return compute_budget(offer, vat_rate)


def compute_platform_fee(base: Money, fee_percent: Money = PLATFORM_FEE_PERCENT) -> tuple:
    """Return (platform fee, amount available for execution) for an accepted base budget."""
    base_amount = to_money(base)
    fee = to_money(base_amount * Decimal(str(fee_percent)) / Decimal(100))
    return fee, base_amount - fee


def running_average(average: Money, count: int, rating: int) -> Decimal:
    """Fold one more rating into an average of `count` ratings, kept to one decimal."""
    total = Decimal(str(average)) * count + rating
    return (total / (count + 1)).quantize(TENTH, rounding=ROUND_HALF_UP)
