# blueprints/coupons/services.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from models import Offer, DiscountType
from blueprints.core.timeutil import store_now

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# причины отказа
NOT_FOUND = "not_found"
INACTIVE = "inactive"
NOT_STARTED = "not_started"
EXPIRED = "expired"
MIN_ORDER_NOT_MET = "min_order_not_met"

def money(value) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(CENT, rounding=ROUND_HALF_UP)

def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()

@dataclass(frozen=True)
class CouponRule:
    """Снимок купона из БД; валидатор работает только с ним."""
    code: str
    discount_type: str
    discount_value: Decimal
    min_order_value: Decimal
    max_discount_value: Optional[Decimal]
    start_date: datetime
    end_date: datetime
    is_active: bool
    title: str = ""

    @classmethod
    def from_offer(cls, offer: Offer) -> "CouponRule":
        return cls(
            code=normalize_code(offer.code),
            discount_type=offer.discount_type,
            discount_value=money(offer.discount_value),
            min_order_value=money(offer.min_order_value),
            max_discount_value=money(offer.max_discount_value) if offer.max_discount_value is not None else None,
            start_date=offer.start_date,
            end_date=offer.end_date,
            is_active=bool(offer.is_active),
            title=offer.title or "",
        )

@dataclass(frozen=True)
class CouponResult:
    valid: bool
    code: str
    discount: Decimal = ZERO
    reason: Optional[str] = None
    rule: Optional[CouponRule] = None

    def to_dict(self) -> dict:
        out = {"valid": self.valid, "code": self.code, "discount": str(self.discount)}
        if self.reason:
            out["reason"] = self.reason
        if self.rule is not None:
            out["title"] = self.rule.title
            out["discount_type"] = self.rule.discount_type
            out["discount_value"] = str(self.rule.discount_value)
        return out

def compute_discount(rule: CouponRule, subtotal: Decimal) -> Decimal:
    """Процент от суммы с потолком max_discount_value или фиксированная скидка; не больше суммы."""
    subtotal = money(subtotal)
    if rule.discount_type == DiscountType.PERCENTAGE.value:
        discount = money(subtotal * rule.discount_value / Decimal(100))
        if rule.max_discount_value is not None:
            discount = min(discount, rule.max_discount_value)
    else:
        discount = rule.discount_value
    return max(ZERO, min(discount, subtotal))

def evaluate_coupon(rule: CouponRule | None, code: str, subtotal: Decimal, now: datetime) -> CouponResult:
    """Чистая функция: одни и те же (rule, subtotal, now) дают один и тот же результат."""
    code = normalize_code(code)
    if rule is None:
        return CouponResult(False, code, reason=NOT_FOUND)
    if not rule.is_active:
        return CouponResult(False, code, reason=INACTIVE, rule=rule)
    if now < rule.start_date:
        return CouponResult(False, code, reason=NOT_STARTED, rule=rule)
    if now > rule.end_date:
        return CouponResult(False, code, reason=EXPIRED, rule=rule)
    if money(subtotal) < rule.min_order_value:
        return CouponResult(False, code, reason=MIN_ORDER_NOT_MET, rule=rule)
    return CouponResult(True, code, discount=compute_discount(rule, subtotal), rule=rule)

def find_rule(code: str) -> CouponRule | None:
    code = normalize_code(code)
    if not code:
        return None
    offer: Offer | None = Offer.query.filter_by(code=code).first()
    return CouponRule.from_offer(offer) if offer else None

def validate_coupon(code: str, subtotal: Decimal, now: datetime | None = None) -> CouponResult:
    return evaluate_coupon(find_rule(code), code, subtotal, now or store_now())
