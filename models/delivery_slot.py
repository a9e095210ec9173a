from datetime import datetime, timezone
from extensions import db

def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

class DeliverySlot(db.Model):
    """Шаблон окна доставки: ведётся админом, от даты не зависит."""
    __tablename__ = "delivery_slots"

    id = db.Column(db.Integer, primary_key=True)
    service_area_id = db.Column(db.Integer, db.ForeignKey("service_areas.id", ondelete="CASCADE"),
                                nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    max_orders = db.Column(db.Integer, nullable=False, default=10)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    service_area = db.relationship("ServiceArea", back_populates="slots")

    __table_args__ = (
        db.CheckConstraint("max_orders >= 0", name="max_orders_non_negative"),
    )

    def label(self) -> str:
        return f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"

class SlotBooking(db.Model):
    """Счётчик заказов на (слот, дата). Меняется только атомарными UPDATE."""
    __tablename__ = "slot_bookings"

    id = db.Column(db.Integer, primary_key=True)
    delivery_slot_id = db.Column(db.Integer, db.ForeignKey("delivery_slots.id", ondelete="CASCADE"),
                                 nullable=False)
    delivery_date = db.Column(db.Date, nullable=False)
    orders_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    delivery_slot = db.relationship("DeliverySlot")

    __table_args__ = (
        db.UniqueConstraint("delivery_slot_id", "delivery_date", name="uq_slot_bookings_slot_date"),
        db.CheckConstraint("orders_count >= 0", name="orders_count_non_negative"),
    )
