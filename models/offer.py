from enum import Enum
from decimal import Decimal
from sqlalchemy.orm import validates
from extensions import db

class DiscountType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"

class Offer(db.Model):
    """Купон. Окно действия хранится в локальном времени магазина (STORE_TZ)."""
    __tablename__ = "offers"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    code = db.Column(db.String(64), unique=True, index=True, nullable=False)
    discount_type = db.Column(db.String(16), nullable=False, default=DiscountType.FIXED.value)
    discount_value = db.Column(db.Numeric(10, 2), nullable=False)
    min_order_value = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    max_discount_value = db.Column(db.Numeric(10, 2), nullable=True)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # код храним в верхнем регистре: уникальность и поиск без учёта регистра
    @validates("code")
    def _normalize_code(self, key, value):
        return (value or "").strip().upper()

class Fee(db.Model):
    """Сборы заказа: platform / handling / packaging."""
    __tablename__ = "fees"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False, unique=True)
    fee_type = db.Column(db.String(16), nullable=False, default=DiscountType.FIXED.value)
    fee_value = db.Column(db.Numeric(10, 2), nullable=False)
    min_order_value = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    max_fee_value = db.Column(db.Numeric(10, 2), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
