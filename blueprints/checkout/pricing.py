# blueprints/checkout/pricing.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Iterable, Optional

from models import Fee, ServiceArea, DiscountType
from blueprints.coupons.services import money, ZERO

# имя сбора в админке -> поле заказа
FEE_FIELDS = {
    "platform fee": "platform_fee",
    "handling fee": "handling_fee",
    "packaging fee": "packaging_fee",
}

@dataclass
class OrderFees:
    platform_fee: Decimal = ZERO
    handling_fee: Decimal = ZERO
    packaging_fee: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.platform_fee + self.handling_fee + self.packaging_fee

@dataclass
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    platform_fee: Decimal
    handling_fee: Decimal
    packaging_fee: Decimal
    delivery_fee: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {k: str(v) for k, v in asdict(self).items()}

def fee_value(fee: Fee, subtotal: Decimal) -> Decimal:
    """Фиксированный или процентный сбор с потолком max_fee_value; 0, если сумма ниже порога."""
    subtotal = money(subtotal)
    if subtotal < money(fee.min_order_value):
        return ZERO
    if fee.fee_type == DiscountType.PERCENTAGE.value:
        value = money(subtotal * Decimal(fee.fee_value) / Decimal(100))
    else:
        value = money(fee.fee_value)
    if fee.max_fee_value is not None and value > money(fee.max_fee_value):
        value = money(fee.max_fee_value)
    return value

def calculate_order_fees(subtotal: Decimal, fees: Optional[Iterable[Fee]] = None) -> OrderFees:
    if fees is None:
        fees = Fee.query.filter_by(is_active=True).all()
    out = OrderFees()
    for fee in fees:
        field = FEE_FIELDS.get((fee.name or "").strip().lower())
        if not field or not fee.is_active:
            continue
        setattr(out, field, fee_value(fee, subtotal))
    return out

def delivery_fee_for(area: ServiceArea, subtotal: Decimal) -> Decimal:
    # порог 0 означает «бесплатной доставки нет»
    threshold = money(area.min_order_free_delivery)
    if threshold > 0 and money(subtotal) >= threshold:
        return ZERO
    return money(area.delivery_fee)

def compute_totals(*, subtotal: Decimal, discount: Decimal, fees: OrderFees,
                   delivery_fee: Decimal, tax_rate: Decimal) -> OrderTotals:
    subtotal = money(subtotal)
    discount = min(money(discount), subtotal)
    tax = money((subtotal - discount) * Decimal(tax_rate))
    total = subtotal - discount + fees.total + money(delivery_fee) + tax
    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        platform_fee=fees.platform_fee,
        handling_fee=fees.handling_fee,
        packaging_fee=fees.packaging_fee,
        delivery_fee=money(delivery_fee),
        tax=tax,
        total=money(total),
    )
