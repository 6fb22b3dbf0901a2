"""
COMMISSION CALCULATOR
Exact money arithmetic for settlements

RESPONSIBILITIES:
- Commission, tax, net and payout amounts
- Null-safe sums
- Normalization to 2 decimals

RULES (LOCKED):
❌ No floats
❌ No exceptions on missing values (None → 0.00)
✅ Decimal only
✅ ROUND_HALF_UP to exactly 2 fractional digits on every result
✅ Tax = 10% of commission
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

Amount = Optional[Union[Decimal, int, str]]

DECIMAL_PLACES = Decimal("0.01")
TAX_RATE = Decimal("0.10")
ZERO = Decimal("0")


def _to_decimal(value: Amount) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class CommissionCalculator:
    """
    Commission Calculator
    Pure, deterministic and side-effect free
    """

    def __init__(self, tax_rate: Decimal = TAX_RATE):
        self.tax_rate = tax_rate

    @staticmethod
    def normalize(amount: Amount) -> Decimal:
        """
        Round to 2 decimals HALF_UP

        Args:
            amount: Amount or None

        Returns:
            Normalized amount (None → 0.00)
        """
        return _to_decimal(amount).quantize(DECIMAL_PLACES, rounding=ROUND_HALF_UP)

    def commission(self, amount: Amount, rate: Amount) -> Decimal:
        """
        Commission = amount x rate

        Returns 0.00 when either side is missing.
        """
        if amount is None or rate is None:
            return self.normalize(ZERO)
        return self.normalize(_to_decimal(amount) * _to_decimal(rate))

    def tax(self, commission_amount: Amount) -> Decimal:
        """Tax on commission (10%)"""
        return self.normalize(_to_decimal(commission_amount) * self.tax_rate)

    def net_amount(self, gross: Amount, deduction: Amount) -> Decimal:
        """Gross - deduction"""
        return self.normalize(_to_decimal(gross) - _to_decimal(deduction))

    def payout(
        self,
        net_sales: Amount,
        commission: Amount,
        tax: Amount,
        adjustment: Amount,
    ) -> Decimal:
        """
        Payout = net sales - commission - tax + adjustment

        Args:
            net_sales: Gross sales minus refunds
            commission: Commission amount
            tax: Tax on commission
            adjustment: Manual adjustment (0 in the daily batch)

        Returns:
            Final payout amount (may be negative)
        """
        return self.normalize(
            _to_decimal(net_sales)
            - _to_decimal(commission)
            - _to_decimal(tax)
            + _to_decimal(adjustment)
        )

    def sum(self, *amounts: Amount) -> Decimal:
        """Null-safe sum"""
        total = ZERO
        for amount in amounts:
            total += _to_decimal(amount)
        return self.normalize(total)
