# blueprints/orders/services.py
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from flask import current_app
from sqlalchemy import update

from extensions import db
from models import Order, OrderStatus
from blueprints.core.errors import InvalidStatusTransition, OrderNotFound
from blueprints.slots.services import SlotCapacityLedger

log = logging.getLogger(__name__)

S = OrderStatus
# статус -> куда можно перейти
TRANSITIONS: dict[str, set[str]] = {
    S.PENDING.value: {S.PROCESSING.value, S.CANCELLED.value},
    S.PROCESSING.value: {S.OUT_FOR_DELIVERY.value, S.CANCELLED.value},
    S.OUT_FOR_DELIVERY.value: {S.DELIVERED.value},
    S.DELIVERED.value: set(),
    S.CANCELLED.value: set(),
}

def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

def order_to_dict(o: Order, *, with_items: bool = True) -> dict[str, Any]:
    out = {
        "id": o.id,
        "user_id": o.user_id,
        "address_id": o.address_id,
        "delivery_slot_id": o.delivery_slot_id,
        "delivery_slot": o.delivery_slot.label() if o.delivery_slot else None,
        "delivery_date": o.delivery_date.isoformat(),
        "status": o.status,
        "payment_method": o.payment_method,
        "payment_status": o.payment_status,
        "coupon_code": o.coupon_code,
        "subtotal": str(o.subtotal),
        "discount_amount": str(o.discount_amount),
        "platform_fee": str(o.platform_fee),
        "handling_fee": str(o.handling_fee),
        "packaging_fee": str(o.packaging_fee),
        "delivery_fee": str(o.delivery_fee),
        "tax": str(o.tax),
        "total_amount": str(o.total_amount),
        "currency": current_app.config.get("CURRENCY", "INR"),
        "created_at": o.created_at.isoformat() if o.created_at else None,
    }
    if with_items:
        out["items"] = [
            {"product_id": i.product_id, "product_name": i.product_name,
             "quantity": i.quantity, "price": str(i.price)}
            for i in o.items
        ]
    return out

def list_user_orders(user_id: int) -> list[Order]:
    return (Order.query.filter_by(user_id=user_id)
            .order_by(Order.created_at.desc(), Order.id.desc()).all())

def get_user_order(user_id: int, order_id: int) -> Order:
    order: Order | None = db.session.get(Order, order_id)
    # чужой заказ не отличаем от несуществующего
    if order is None or order.user_id != user_id:
        raise OrderNotFound(detail={"order_id": order_id})
    return order

def list_all_orders(status: Optional[str] = None) -> list[Order]:
    q = Order.query
    if status:
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()

def update_status(order_id: int, new_status: str, ledger: SlotCapacityLedger | None = None) -> Order:
    """
    Перевести заказ в новый статус. Переход в cancelled возвращает место
    в слоте в той же транзакции, что и смена статуса.
    """
    order: Order | None = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(detail={"order_id": order_id})
    current = order.status
    if new_status not in TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(detail={"from": current, "to": new_status})

    # условный UPDATE: параллельная смена статуса не пройдёт дважды
    res = db.session.execute(
        update(Order.__table__)
        .where(Order.__table__.c.id == order_id, Order.__table__.c.status == current)
        .values(status=new_status, updated_at=_utcnow())
    )
    if res.rowcount != 1:
        db.session.rollback()
        raise InvalidStatusTransition(detail={"from": current, "to": new_status, "reason": "concurrent_update"})

    if new_status == S.CANCELLED.value:
        (ledger or SlotCapacityLedger()).release(order.delivery_slot_id, order.delivery_date, commit=False)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.refresh(order)
    log.info("order status changed", extra={"event": "order_status_changed", "order_id": order_id,
                                            "slot_id": order.delivery_slot_id})
    return order
