import random
import re
from decimal import Decimal

import pytest

from app.core.pricing import (
    compute_invoice_totals,
    compute_pricing,
    coupon_discount,
    generate_order_number,
    shipping_for_subtotal,
    stock_status,
    to_money,
)


def test_compute_pricing_single_line():
    pricing = compute_pricing([(Decimal("25.00"), 2)])

    assert pricing.subtotal == Decimal("50.00")
    assert pricing.tax == Decimal("4.12")
    assert pricing.total == Decimal("54.12")


def test_compute_pricing_rounds_half_even():
    # 25.00 * 0.0825 = 2.0625
    pricing = compute_pricing([(Decimal("25.00"), 1)])
    assert pricing.tax == Decimal("2.06")


def test_compute_pricing_with_shipping_and_discount():
    pricing = compute_pricing(
        [(Decimal("10.00"), 3), (Decimal("5.50"), 2)],
        shipping=Decimal("9.99"),
        discount=Decimal("5.00"),
    )

    assert pricing.subtotal == Decimal("41.00")
    assert pricing.discount == Decimal("5.00")
    assert pricing.tax == Decimal("2.97")
    assert pricing.total == Decimal("48.96")


def test_discount_is_capped_at_subtotal():
    pricing = compute_pricing([(Decimal("10.00"), 1)], discount=Decimal("50"))
    assert pricing.discount == Decimal("10.00")
    assert pricing.total == Decimal("0.00")


def test_negative_quantity_is_rejected():
    with pytest.raises(ValueError):
        compute_pricing([(Decimal("10.00"), -1)])


@pytest.mark.parametrize(
    "subtotal, expected",
    [
        ("74.99", "9.99"),
        ("75.00", "9.99"),
        ("75.01", "0.00"),
    ],
)
def test_shipping_threshold(subtotal, expected):
    assert shipping_for_subtotal(Decimal(subtotal)) == Decimal(expected)


def test_invoice_totals_tax_fees():
    totals = compute_invoice_totals(
        subtotal=Decimal("150.00"),
        shipping=Decimal("0"),
        convenience_fee=Decimal("5.00"),
        delivery_charge=Decimal("10.00"),
    )
    assert totals.tax == Decimal("13.61")
    assert totals.total == Decimal("178.61")


def test_invoice_totals_subtotal_only():
    totals = compute_invoice_totals(
        subtotal=Decimal("150.00"),
        shipping=Decimal("0"),
        convenience_fee=Decimal("5.00"),
        delivery_charge=Decimal("10.00"),
        tax_fees=False,
    )
    assert totals.tax == Decimal("12.38")
    assert totals.total == Decimal("177.38")


def test_coupon_discount_types():
    assert coupon_discount(Decimal("80"), "percentage", Decimal("10")) == Decimal("8.00")
    assert coupon_discount(Decimal("80"), "fixed", Decimal("15")) == Decimal("15.00")
    assert coupon_discount(Decimal("10"), "fixed", Decimal("15")) == Decimal("10.00")
    with pytest.raises(ValueError):
        coupon_discount(Decimal("10"), "bogus", Decimal("1"))


def test_stock_status_badges():
    assert stock_status(0) == "out-of-stock"
    assert stock_status(10) == "low-stock"
    assert stock_status(11) == "in-stock"


def test_order_number_format():
    number = generate_order_number(now_ms=1_700_000_000_000, rng=random.Random(3))
    assert re.fullmatch(r"ORD-[0-9A-Z]+-[0-9A-Z]{5}", number)


def test_to_money_quantizes_to_cents():
    assert to_money("3") == Decimal("3.00")
    assert to_money(Decimal("2.345")) == Decimal("2.34")


def test_cart_example_totals():
    pricing = compute_pricing([(Decimal("10"), 2), (Decimal("5"), 1)])
    assert (pricing.subtotal, pricing.tax, pricing.total) == (
        Decimal("25.00"),
        Decimal("2.06"),
        Decimal("27.06"),
    )


def test_empty_order_has_no_tax():
    pricing = compute_pricing([])
    assert pricing.tax == Decimal("0.00")
    assert pricing.total == Decimal("0.00")


def test_invoice_example_with_shipping():
    args = dict(
        subtotal=Decimal("150"),
        shipping=Decimal("9.99"),
        convenience_fee=Decimal("5"),
        delivery_charge=Decimal("10"),
    )
    assert compute_invoice_totals(**args) == compute_invoice_totals(**args, tax_fees=True)
    assert compute_invoice_totals(**args).total == Decimal("188.60")
    assert compute_invoice_totals(**args, tax_fees=False).total == Decimal("187.37")


def test_order_numbers_rarely_collide():
    # Same millisecond for every call: only the random suffix differs.
    numbers = {generate_order_number(now_ms=1_700_000_000_000) for _ in range(1000)}
    assert len(numbers) >= 990
