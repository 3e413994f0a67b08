# marketplace/domain/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple

from marketplace.utils.settings import TAX_RATE, SHIPPING_FEE

CENT = Decimal("0.01")


def round2(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    shipping_fee: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_fee": self.shipping_fee,
            "total": self.total,
        }


def compute_totals(
    lines: Iterable[Tuple[Decimal, int]],
    tax_rate=TAX_RATE,
    shipping_fee=SHIPPING_FEE,
) -> Totals:
    """Price a list of (unit price, qty) lines.

    tax = round2(subtotal * tax_rate), total = round2(subtotal + tax + shipping).
    """
    subtotal = round2(sum((Decimal(str(price)) * qty for price, qty in lines), Decimal("0")))
    tax = round2(subtotal * Decimal(str(tax_rate)))
    fee = round2(shipping_fee)
    return Totals(
        subtotal=subtotal,
        tax=tax,
        shipping_fee=fee,
        total=round2(subtotal + tax + fee),
    )
