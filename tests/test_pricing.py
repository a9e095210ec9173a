from __future__ import annotations
from decimal import Decimal

from models import Fee, ServiceArea
from blueprints.checkout.pricing import (
    OrderFees, calculate_order_fees, compute_totals, delivery_fee_for, fee_value,
)

def fee(name, fee_type, value, min_order="0", cap=None, active=True):
    return Fee(name=name, fee_type=fee_type, fee_value=Decimal(value), min_order_value=Decimal(min_order),
               max_fee_value=Decimal(cap) if cap is not None else None, is_active=active)

def test_fixed_and_percentage_fees():
    assert fee_value(fee("Platform Fee", "fixed", "5"), Decimal("100")) == Decimal("5.00")
    # 2% от 1500 = 30, потолок 20
    assert fee_value(fee("Handling Fee", "percentage", "2", cap="20"), Decimal("1500")) == Decimal("20.00")
    assert fee_value(fee("Handling Fee", "percentage", "2", cap="20"), Decimal("500")) == Decimal("10.00")
    # ниже порога сбор не берётся
    assert fee_value(fee("Packaging Fee", "fixed", "10", min_order="200"), Decimal("199.99")) == 0

def test_calculate_order_fees_maps_by_name():
    fees = [
        fee("Platform Fee", "fixed", "5"),
        fee("handling fee", "percentage", "1", cap="20"),
        fee("Packaging Fee", "fixed", "10", active=False),
        fee("Gift Wrap", "fixed", "99"),
    ]
    out = calculate_order_fees(Decimal("1000"), fees)
    assert out.platform_fee == Decimal("5.00")
    assert out.handling_fee == Decimal("10.00")
    assert out.packaging_fee == 0
    assert out.total == Decimal("15.00")

def test_fees_from_db(catalog):
    assert calculate_order_fees(Decimal("50")).platform_fee == Decimal("5.00")

def test_delivery_fee_waiver():
    area = ServiceArea(name="Surat", delivery_fee=Decimal("40"), min_order_free_delivery=Decimal("500"))
    assert delivery_fee_for(area, Decimal("499.99")) == Decimal("40.00")
    assert delivery_fee_for(area, Decimal("500")) == 0
    no_waiver = ServiceArea(name="Vadodara", delivery_fee=Decimal("30"), min_order_free_delivery=Decimal("0"))
    assert delivery_fee_for(no_waiver, Decimal("5000")) == Decimal("30.00")

def test_totals_formula():
    t = compute_totals(
        subtotal=Decimal("1000"), discount=Decimal("50"),
        fees=OrderFees(Decimal("5.00"), Decimal("10.00"), Decimal("10.00")),
        delivery_fee=Decimal("0"), tax_rate=Decimal("0.05"),
    )
    assert t.tax == Decimal("47.50")  # 5% от (1000 - 50)
    assert t.total == Decimal("1022.50")
    assert t.to_dict()["total"] == "1022.50"

def test_discount_clamped_to_subtotal():
    t = compute_totals(subtotal=Decimal("30"), discount=Decimal("50"), fees=OrderFees(),
                       delivery_fee=Decimal("40"), tax_rate=Decimal("0"))
    assert t.discount == Decimal("30.00")
    assert t.total == Decimal("40.00")
