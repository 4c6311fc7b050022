# app/core/pricing.py
"""
Money math for orders, invoices and coupons.

All amounts are Decimal and rounded to cents with ROUND_HALF_EVEN
(same result as Python's round() on the documented examples, e.g.
25.00 * 0.0825 = 2.0625 -> 2.06).
"""
import random
import string
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable

TAX_RATE = Decimal("0.0825")
FREE_SHIPPING_THRESHOLD = Decimal("75")
FLAT_SHIPPING_RATE = Decimal("9.99")
LOW_STOCK_THRESHOLD = 10

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

_BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class Pricing:
    subtotal: Decimal
    shipping: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    tax: Decimal
    total: Decimal


def to_money(value) -> Decimal:
    """Coerce int/float/str/Decimal to a cent-rounded Decimal."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def compute_tax(taxable, rate: Decimal = TAX_RATE) -> Decimal:
    return to_money(Decimal(str(taxable)) * rate)


def compute_pricing(
    lines: Iterable[tuple],
    shipping=ZERO,
    discount=ZERO,
    rate: Decimal = TAX_RATE,
) -> Pricing:
    """
    Price a list of (unit_price, quantity) lines.

        subtotal = sum(price * qty)
        tax      = round((subtotal - discount) * rate, 2)
        total    = subtotal - discount + shipping + tax
    """
    subtotal = ZERO
    for price, quantity in lines:
        if quantity < 0 or Decimal(str(price)) < 0:
            raise ValueError("price and quantity must be non-negative")
        subtotal += Decimal(str(price)) * quantity
    subtotal = to_money(subtotal)

    shipping = to_money(shipping)
    discount = min(to_money(discount), subtotal)
    tax = compute_tax(subtotal - discount, rate)
    total = to_money(subtotal - discount + shipping + tax)

    return Pricing(
        subtotal=subtotal,
        shipping=shipping,
        discount=discount,
        tax=tax,
        total=total,
    )


def shipping_for_subtotal(
    subtotal,
    threshold: Decimal = FREE_SHIPPING_THRESHOLD,
    flat_rate: Decimal = FLAT_SHIPPING_RATE,
) -> Decimal:
    """Free shipping strictly above the threshold, flat rate otherwise."""
    if to_money(subtotal) > threshold:
        return ZERO
    return to_money(flat_rate)


def compute_invoice_totals(
    subtotal,
    shipping,
    convenience_fee=ZERO,
    delivery_charge=ZERO,
    discount=ZERO,
    tax_fees: bool = True,
    rate: Decimal = TAX_RATE,
) -> InvoiceTotals:
    """
    Recompute tax and total once the admin attaches fees to an order.

    With tax_fees=True (admin invoice screen) the fees are part of the
    taxable base; otherwise only the discounted subtotal is taxed.
    """
    subtotal = to_money(subtotal)
    fees = to_money(convenience_fee) + to_money(delivery_charge)
    taxable = subtotal - to_money(discount)
    if tax_fees:
        taxable += fees
    tax = compute_tax(taxable, rate)
    total = to_money(subtotal - to_money(discount) + to_money(shipping) + fees + tax)
    return InvoiceTotals(tax=tax, total=total)


def coupon_discount(subtotal, discount_type: str, discount_value) -> Decimal:
    """
    Discount granted by a coupon on the given subtotal.

    - percentage: round(subtotal * value / 100, 2)
    - fixed:      min(value, subtotal)
    """
    subtotal = to_money(subtotal)
    value = Decimal(str(discount_value))
    if discount_type == "percentage":
        return min(to_money(subtotal * value / 100), subtotal)
    if discount_type == "fixed":
        return min(to_money(value), subtotal)
    raise ValueError(f"Unknown discount type: {discount_type}")


def stock_status(quantity: int, threshold: int = LOW_STOCK_THRESHOLD) -> str:
    if quantity <= 0:
        return "out-of-stock"
    if quantity <= threshold:
        return "low-stock"
    return "in-stock"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _random_suffix(length: int = 5, rng: random.Random | None = None) -> str:
    rng = rng or random
    return "".join(rng.choice(_BASE36) for _ in range(length))


def generate_order_number(
    now_ms: int | None = None,
    rng: random.Random | None = None,
) -> str:
    """
    ORD-<base36 ms timestamp>-<5 random base36 chars>, upper case.

    Collisions within the same millisecond are unlikely but possible;
    orders.order_number carries a unique constraint.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"ORD-{_to_base36(now_ms)}-{_random_suffix(rng=rng)}"


def generate_ticket_number(now_ms: int | None = None) -> str:
    """TKT-<ms timestamp>-<5 random base36 chars>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"TKT-{now_ms}-{_random_suffix()}"
