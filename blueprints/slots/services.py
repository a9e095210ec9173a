# blueprints/slots/services.py
"""
Учёт вместимости слотов доставки.

Счётчик `slot_bookings.orders_count` на пару (слот, дата) меняется только
условными UPDATE: «+1, если orders_count < max_orders» и «-1, если > 0».
Никаких read-then-write: проверка и изменение происходят в одном операторе,
поэтому параллельные оформления не могут перебронировать слот.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from flask import current_app
from sqlalchemy import and_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError

from extensions import db
from models import DeliverySlot, ServiceArea, SlotBooking
from blueprints.core.errors import TransientStoreError, SLOT_FULL, SLOT_INACTIVE, SLOT_NOT_FOUND

log = logging.getLogger(__name__)

bookings = SlotBooking.__table__
slots = DeliverySlot.__table__

DEFAULT_RETRIES = 3
DEFAULT_BACKOFF = 0.05
MAX_BACKOFF = 1.0  # потолок паузы между попытками, сек

def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

# ===== DTO =====
@dataclass
class ReserveResult:
    reserved: bool
    slot_id: int
    delivery_date: date
    orders_count: Optional[int] = None
    max_orders: Optional[int] = None
    reason: Optional[str] = None   # slot_full | slot_not_found | slot_inactive

    @property
    def remaining(self) -> Optional[int]:
        if self.orders_count is None or self.max_orders is None:
            return None
        return max(self.max_orders - self.orders_count, 0)

@dataclass
class SlotView:
    id: int
    service_area_id: int
    start_time: str
    end_time: str
    max_orders: int
    orders_count: int
    remaining: int
    available: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

# ===== ledger =====
class SlotCapacityLedger:
    """Атомарное резервирование и возврат мест в слоте доставки."""

    def __init__(self, retries: Optional[int] = None, backoff: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        cfg = current_app.config
        self.retries = max(1, int(retries if retries is not None else cfg.get("SLOT_RESERVE_RETRIES", DEFAULT_RETRIES)))
        self.backoff = float(backoff if backoff is not None else cfg.get("SLOT_RESERVE_BACKOFF", DEFAULT_BACKOFF))
        self._sleep = sleep

    # ---- публичный контракт ----
    def try_reserve(self, slot_id: int, delivery_date: date, *, commit: bool = True) -> ReserveResult:
        """
        Занять одно место в (slot_id, delivery_date) и закоммитить.
        Возвращает ReserveResult(reserved=False, reason="slot_full"), если мест нет.
        При блокировках/таймаутах БД повторяет до `retries` раз, затем TransientStoreError.
        commit=False: UPDATE остаётся в транзакции вызывающего (оформление заказа),
        без повторов; коммит, откат и повтор всей единицы работы на стороне вызывающего.
        """
        slot: DeliverySlot | None = db.session.get(DeliverySlot, slot_id)
        if slot is None:
            return ReserveResult(False, slot_id, delivery_date, reason=SLOT_NOT_FOUND)
        if not slot.is_active:
            return ReserveResult(False, slot_id, delivery_date, max_orders=slot.max_orders, reason=SLOT_INACTIVE)

        if not commit:
            result = self._reserve_once(slot_id, delivery_date, commit=False)
        else:
            result = self.with_retries("reserve", slot_id, delivery_date,
                                       lambda: self._reserve_once(slot_id, delivery_date))
        if result.reserved:
            log.info("slot reserved", extra={"event": "slot_reserved", "slot_id": slot_id,
                                             "delivery_date": delivery_date.isoformat()})
        else:
            log.info("slot full", extra={"event": "slot_full", "slot_id": slot_id,
                                         "delivery_date": delivery_date.isoformat()})
        return result

    def release(self, slot_id: int, delivery_date: date, *, commit: bool = True) -> bool:
        """
        Вернуть одно место. Никогда не уводит счётчик ниже нуля.
        commit=False: выполнить в транзакции вызывающего (отмена заказа), без повторов.
        """
        if not commit:
            released = self._release_once(slot_id, delivery_date)
        else:
            released = self.with_retries("release", slot_id, delivery_date,
                                          lambda: self._release_committed(slot_id, delivery_date))
        log.info("slot released" if released else "slot release skipped",
                 extra={"event": "slot_released" if released else "slot_release_noop",
                        "slot_id": slot_id, "delivery_date": delivery_date.isoformat()})
        return released

    def booked_count(self, slot_id: int, delivery_date: date) -> int:
        cnt = db.session.execute(
            select(bookings.c.orders_count)
            .where(bookings.c.delivery_slot_id == slot_id, bookings.c.delivery_date == delivery_date)
        ).scalar_one_or_none()
        return int(cnt or 0)

    # ---- атомарные операции ----
    def _ensure_row_stmt(self, slot_id: int, delivery_date: date):
        # строка (слот, дата) создаётся лениво; гонка на вставке гасится ON CONFLICT
        dialect = db.session.get_bind().dialect.name
        values = {"delivery_slot_id": slot_id, "delivery_date": delivery_date, "orders_count": 0}
        if dialect == "postgresql":
            ins = postgresql.insert(bookings)
        elif dialect == "sqlite":
            ins = sqlite.insert(bookings)
        else:
            raise RuntimeError(f"unsupported dialect for slot ledger: {dialect}")
        return ins.values(**values).on_conflict_do_nothing(
            index_elements=["delivery_slot_id", "delivery_date"])

    def _reserve_once(self, slot_id: int, delivery_date: date, *, commit: bool = True) -> ReserveResult:
        max_orders = (
            select(slots.c.max_orders)
            .where(slots.c.id == slot_id, slots.c.is_active.is_(True))
            .scalar_subquery()
        )
        try:
            db.session.execute(self._ensure_row_stmt(slot_id, delivery_date))
            res = db.session.execute(
                update(bookings)
                .where(
                    bookings.c.delivery_slot_id == slot_id,
                    bookings.c.delivery_date == delivery_date,
                    bookings.c.orders_count < max_orders,
                )
                .values(orders_count=bookings.c.orders_count + 1, updated_at=_utcnow())
            )
            reserved = res.rowcount == 1
            row = db.session.execute(
                select(bookings.c.orders_count, slots.c.max_orders)
                .select_from(bookings.join(slots, slots.c.id == bookings.c.delivery_slot_id))
                .where(bookings.c.delivery_slot_id == slot_id, bookings.c.delivery_date == delivery_date)
            ).one()
            if commit:
                db.session.commit()
        except Exception:
            if commit:
                db.session.rollback()
            raise
        return ReserveResult(
            reserved=reserved,
            slot_id=slot_id,
            delivery_date=delivery_date,
            orders_count=int(row.orders_count),
            max_orders=int(row.max_orders),
            reason=None if reserved else SLOT_FULL,
        )

    def _release_once(self, slot_id: int, delivery_date: date) -> bool:
        res = db.session.execute(
            update(bookings)
            .where(
                bookings.c.delivery_slot_id == slot_id,
                bookings.c.delivery_date == delivery_date,
                bookings.c.orders_count > 0,
            )
            .values(orders_count=bookings.c.orders_count - 1, updated_at=_utcnow())
        )
        return res.rowcount == 1

    def _release_committed(self, slot_id: int, delivery_date: date) -> bool:
        try:
            released = self._release_once(slot_id, delivery_date)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return released

    def with_retries(self, op: str, slot_id: int, delivery_date: date, fn: Callable[[], Any]):
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn()
            except OperationalError as e:
                if attempt >= self.retries:
                    log.error("slot %s failed after %s attempts", op, attempt,
                              extra={"event": f"slot_{op}_failed", "slot_id": slot_id,
                                     "delivery_date": delivery_date.isoformat(), "error": str(e.orig)})
                    raise TransientStoreError(detail={"slot_id": slot_id, "attempts": attempt}) from e
                wait = min(self.backoff * (2 ** (attempt - 1)), MAX_BACKOFF)
                log.warning("slot %s contention, retrying in %.3fs", op, wait,
                            extra={"event": f"slot_{op}_retry", "slot_id": slot_id,
                                   "delivery_date": delivery_date.isoformat(), "error": str(e.orig)})
                if wait > 0:
                    self._sleep(wait)

# ===== чтение: обслуживаемость и доступные слоты =====
def service_area_for_pincode(pincode: str) -> ServiceArea | None:
    """Первая активная зона доставки, в которую входит pincode."""
    code = (pincode or "").strip()
    if not code:
        return None
    areas = ServiceArea.query.filter_by(is_active=True).order_by(ServiceArea.id.asc()).all()
    for area in areas:
        if area.serves(code):
            return area
    return None

def available_slots(service_area_id: int, delivery_date: date, *, include_full: bool = False) -> list[SlotView]:
    """Активные слоты зоны с остатком мест на дату (по умолчанию только где остаток > 0)."""
    rows = (
        db.session.query(DeliverySlot, SlotBooking.orders_count)
        .outerjoin(SlotBooking, and_(SlotBooking.delivery_slot_id == DeliverySlot.id,
                                     SlotBooking.delivery_date == delivery_date))
        .filter(DeliverySlot.service_area_id == service_area_id, DeliverySlot.is_active.is_(True))
        .order_by(DeliverySlot.start_time.asc())
        .all()
    )
    out: list[SlotView] = []
    for slot, count in rows:
        count = int(count or 0)
        remaining = max(slot.max_orders - count, 0)
        if remaining <= 0 and not include_full:
            continue
        out.append(SlotView(
            id=slot.id,
            service_area_id=slot.service_area_id,
            start_time=slot.start_time.strftime("%H:%M"),
            end_time=slot.end_time.strftime("%H:%M"),
            max_orders=slot.max_orders,
            orders_count=count,
            remaining=remaining,
            available=remaining > 0,
        ))
    return out

def slot_availability(slot_id: int, delivery_date: date) -> dict[str, Any]:
    slot: DeliverySlot | None = db.session.get(DeliverySlot, slot_id)
    if slot is None or not slot.is_active:
        return {"available": False, "remaining": 0, "total": slot.max_orders if slot else 0}
    count = SlotCapacityLedger().booked_count(slot_id, delivery_date)
    remaining = max(slot.max_orders - count, 0)
    return {"available": remaining > 0, "remaining": remaining, "total": slot.max_orders}
