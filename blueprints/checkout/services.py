# blueprints/checkout/services.py
"""
Приём заказа.

Порядок: проверки входа (корзина, адрес, слот, дата, купон) и расчёт сумм ->
резерв места в слоте и запись заказа с позициями одной транзакцией. Если
запись упала после успешного резерва, откат возвращает место вместе с заказом,
и наружу уходит InvariantViolation. Блокировки БД повторяются всей единицей.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy.exc import OperationalError

from extensions import db
from models import (
    Address, DeliverySlot, Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus, Product,
)
from blueprints.core.errors import (
    CapacityExceeded, CheckoutError, CheckoutValidationError, InvariantViolation,
    ADDRESS_NOT_FOUND, DELIVERY_DATE_IN_PAST, EMPTY_CART, INVALID_CART_ITEM, INVALID_COUPON,
    INVALID_PAYMENT_METHOD, PRODUCT_NOT_FOUND, PRODUCT_OUT_OF_STOCK, SLOT_INACTIVE,
    SLOT_NOT_FOUND, SLOT_WRONG_AREA, UNSERVICEABLE_ADDRESS,
)
from blueprints.core.timeutil import store_now
from blueprints.coupons.services import CouponResult, money, normalize_code, validate_coupon, ZERO
from blueprints.slots.services import SlotCapacityLedger, service_area_for_pincode
from .pricing import OrderTotals, calculate_order_fees, compute_totals, delivery_fee_for

log = logging.getLogger(__name__)

# ===== DTO =====
@dataclass
class CartLine:
    product_id: int
    quantity: int

@dataclass
class PlaceOrderRequest:
    user_id: int
    address_id: int
    delivery_slot_id: int
    delivery_date: date
    items: list[CartLine] = field(default_factory=list)
    payment_method: str = PaymentMethod.COD.value
    coupon_code: Optional[str] = None

@dataclass
class PricedLine:
    product: Product
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * self.quantity)

# ===== корзина =====
def merge_cart_lines(lines: Iterable[CartLine]) -> list[CartLine]:
    """Склеить повторяющиеся product_id, сохранив порядок первого появления."""
    merged: dict[int, int] = {}
    for line in lines:
        if line.quantity is None or int(line.quantity) < 1:
            raise CheckoutValidationError(INVALID_CART_ITEM, {"product_id": line.product_id,
                                                              "quantity": line.quantity})
        merged[line.product_id] = merged.get(line.product_id, 0) + int(line.quantity)
    return [CartLine(pid, qty) for pid, qty in merged.items()]

def price_cart(lines: Iterable[CartLine]) -> list[PricedLine]:
    lines = merge_cart_lines(lines)
    if not lines:
        raise CheckoutValidationError(EMPTY_CART)
    products = {p.id: p for p in Product.query.filter(Product.id.in_([l.product_id for l in lines])).all()}
    priced: list[PricedLine] = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise CheckoutValidationError(PRODUCT_NOT_FOUND, {"product_id": line.product_id})
        if not product.in_stock:
            raise CheckoutValidationError(PRODUCT_OUT_OF_STOCK, {"product_id": product.id})
        priced.append(PricedLine(product, line.quantity, money(product.unit_price)))
    return priced

# ===== сервис =====
class OrderIntakeService:
    def __init__(self, ledger: SlotCapacityLedger | None = None):
        self.ledger = ledger or SlotCapacityLedger()

    def place_order(self, req: PlaceOrderRequest, *, now: datetime | None = None) -> Order:
        """
        Проверить вход, занять место в слоте и записать заказ.

        CheckoutValidationError: вход плохой, слот не тронут.
        CapacityExceeded: мест нет.
        TransientStoreError: БД не дала записать заказ после повторов.
        InvariantViolation: место было взято, заказ не записался, транзакция откачена.
        """
        now = now or store_now()
        lines = price_cart(req.items)
        address = self._check_address(req.user_id, req.address_id)
        slot = self._check_slot(req.delivery_slot_id, address, req.delivery_date, now.date())
        if req.payment_method not in {m.value for m in PaymentMethod}:
            raise CheckoutValidationError(INVALID_PAYMENT_METHOD, {"payment_method": req.payment_method})

        subtotal = money(sum((l.line_total for l in lines), ZERO))
        coupon = self._check_coupon(req.coupon_code, subtotal, now)
        # всё, что может упасть до записи, считаем до резерва
        totals = compute_totals(
            subtotal=subtotal,
            discount=coupon.discount if coupon else ZERO,
            fees=calculate_order_fees(subtotal),
            delivery_fee=delivery_fee_for(slot.service_area, subtotal),
            tax_rate=current_app.config.get("TAX_RATE", Decimal("0")),
        )

        order = self.ledger.with_retries(
            "place", req.delivery_slot_id, req.delivery_date,
            lambda: self._reserve_and_persist(req, lines, totals, coupon),
        )
        log.info("order placed", extra={"event": "order_placed", "order_id": order.id,
                                        "user_id": req.user_id, "slot_id": req.delivery_slot_id,
                                        "delivery_date": req.delivery_date.isoformat()})
        return order

    def _reserve_and_persist(self, req: PlaceOrderRequest, lines: list[PricedLine], totals: OrderTotals,
                             coupon: CouponResult | None) -> Order:
        """
        Одна транзакция: условный UPDATE счётчика слота + заказ с позициями.
        Другие читатели видят либо и место, и заказ, либо ничего.
        """
        iso = req.delivery_date.isoformat()
        reserved = False
        try:
            reservation = self.ledger.try_reserve(req.delivery_slot_id, req.delivery_date, commit=False)
            if not reservation.reserved:
                raise CapacityExceeded(detail={"delivery_slot_id": req.delivery_slot_id, "delivery_date": iso})
            reserved = True
            order = self._persist(req, lines, totals, coupon)
            db.session.commit()
            return order
        except (OperationalError, CheckoutError):
            # OperationalError повторяет with_retries целиком
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            if not reserved:
                raise
            log.critical("order not persisted, slot reservation rolled back",
                         extra={"event": "order_compensated", "slot_id": req.delivery_slot_id,
                                "delivery_date": iso, "user_id": req.user_id, "error": repr(e)})
            raise InvariantViolation(detail={"delivery_slot_id": req.delivery_slot_id,
                                             "delivery_date": iso}) from e

    # ---- проверки ----
    def _check_address(self, user_id: int, address_id: int) -> Address:
        address: Address | None = db.session.get(Address, address_id)
        if address is None or address.user_id != user_id:
            raise CheckoutValidationError(ADDRESS_NOT_FOUND, {"address_id": address_id})
        return address

    def _check_slot(self, slot_id: int, address: Address, delivery_date: date, today: date) -> DeliverySlot:
        area = service_area_for_pincode(address.pincode)
        if area is None:
            raise CheckoutValidationError(UNSERVICEABLE_ADDRESS, {"pincode": address.pincode})
        slot: DeliverySlot | None = db.session.get(DeliverySlot, slot_id)
        if slot is None:
            raise CheckoutValidationError(SLOT_NOT_FOUND, {"delivery_slot_id": slot_id})
        if not slot.is_active:
            raise CheckoutValidationError(SLOT_INACTIVE, {"delivery_slot_id": slot_id})
        if slot.service_area_id != area.id:
            raise CheckoutValidationError(SLOT_WRONG_AREA, {"delivery_slot_id": slot_id,
                                                            "service_area_id": area.id})
        if delivery_date < today:
            raise CheckoutValidationError(DELIVERY_DATE_IN_PAST, {"delivery_date": delivery_date.isoformat()})
        return slot

    def _check_coupon(self, code: str | None, subtotal: Decimal, now: datetime) -> CouponResult | None:
        if not normalize_code(code):
            return None
        result = validate_coupon(code, subtotal, now)
        if not result.valid:
            raise CheckoutValidationError(INVALID_COUPON, {"code": result.code, "reason": result.reason})
        return result

    # ---- запись ----
    def _persist(self, req: PlaceOrderRequest, lines: list[PricedLine], totals: OrderTotals,
                 coupon: CouponResult | None) -> Order:
        order = Order(
            user_id=req.user_id,
            address_id=req.address_id,
            delivery_slot_id=req.delivery_slot_id,
            delivery_date=req.delivery_date,
            subtotal=totals.subtotal,
            discount_amount=totals.discount,
            coupon_code=coupon.code if coupon else None,
            platform_fee=totals.platform_fee,
            handling_fee=totals.handling_fee,
            packaging_fee=totals.packaging_fee,
            delivery_fee=totals.delivery_fee,
            tax=totals.tax,
            total_amount=totals.total,
            status=OrderStatus.PENDING.value,
            payment_method=req.payment_method,
            payment_status=PaymentStatus.PENDING.value,
        )
        order.items = [
            OrderItem(product_id=l.product.id, product_name=l.product.name,
                      quantity=l.quantity, price=l.unit_price)
            for l in lines
        ]
        db.session.add(order)
        db.session.flush()
        return order
