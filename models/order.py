from datetime import datetime, timezone
from enum import Enum
from extensions import db

def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PaymentMethod(str, Enum):
    COD = "cod"
    CARD = "card"

class PaymentStatus(str, Enum):
    PENDING = "pending"

class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    address_id = db.Column(db.Integer, db.ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    delivery_slot_id = db.Column(db.Integer, db.ForeignKey("delivery_slots.id", ondelete="RESTRICT"), nullable=False)
    delivery_date = db.Column(db.Date, nullable=False)

    # суммы фиксируются при создании и дальше не меняются
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    coupon_code = db.Column(db.String(64), nullable=True)
    platform_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    handling_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    packaging_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(24), nullable=False, default=OrderStatus.PENDING.value, index=True)
    payment_method = db.Column(db.String(16), nullable=False, default=PaymentMethod.COD.value)
    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.PENDING.value)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    items = db.relationship("OrderItem", back_populates="order", cascade="all, delete-orphan",
                            order_by="OrderItem.id")
    address = db.relationship("Address")
    delivery_slot = db.relationship("DeliverySlot")
    user = db.relationship("User")

    __table_args__ = (
        db.Index("ix_orders_slot_date", "delivery_slot_id", "delivery_date"),
    )

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)  # цена за единицу на момент заказа

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
    )
