"""
Idempotent seed-скрипт.
Запуск:
  python seed.py --reset         # дропнуть и пересоздать БД + демо-каталог + пользователи
  python seed.py --ensure-admin  # создать только admin@example.com / pass (без сидов)
  python seed.py                 # мягкое наполнение недостающих данных (idempotent)
"""
from datetime import time, timedelta
from decimal import Decimal
import argparse

from app import create_app
from extensions import db
from blueprints.core.timeutil import store_now
from models import (
    Address, DeliverySlot, DiscountType, Fee, Offer, Product, Role, ServiceArea, User,
)

def get_or_create(model, defaults=None, **by):
    """Идемпотентное создание по уникальным ключам."""
    inst = model.query.filter_by(**by).first()
    if inst:
        return inst, False
    data = dict(defaults or {})
    data.update(by)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True

# ---- зона доставки и слоты ----
def seed_service_area():
    area, _ = get_or_create(
        ServiceArea,
        name="Surat Central",
        defaults=dict(
            pincodes=["395001", "395003", "395007", "395009"],
            delivery_fee=Decimal("40.00"),
            min_order_free_delivery=Decimal("500.00"),
            delivery_time_minutes=30,
        ),
    )
    windows = [(time(8, 0), time(10, 0)), (time(10, 0), time(12, 0)),
               (time(16, 0), time(18, 0)), (time(18, 0), time(20, 0))]
    for start, end in windows:
        get_or_create(DeliverySlot, service_area_id=area.id, start_time=start, end_time=end,
                      defaults=dict(max_orders=10))
    db.session.commit()
    return area

# ---- каталог ----
def seed_products():
    rows = [
        ("MILK-1L", "Toned Milk 1L", "68.00", None, "l"),
        ("BREAD-WW", "Whole Wheat Bread", "45.00", "40.00", "pc"),
        ("EGGS-12", "Farm Eggs (12)", "96.00", None, "pack"),
        ("RICE-5KG", "Basmati Rice 5kg", "640.00", "599.00", "bag"),
        ("TOMATO-1KG", "Tomatoes 1kg", "38.00", None, "kg"),
    ]
    for code, name, price, sale, unit in rows:
        get_or_create(Product, product_code=code, defaults=dict(
            name=name, price=Decimal(price), sale_price=Decimal(sale) if sale else None,
            unit=unit, in_stock=True, stock_quantity=100))
    db.session.commit()

def seed_offers_and_fees():
    now = store_now().replace(microsecond=0)
    get_or_create(Offer, code="SAVE10", defaults=dict(
        title="10% off", description="10% off on orders above 100, up to 50",
        discount_type=DiscountType.PERCENTAGE.value, discount_value=Decimal("10"),
        min_order_value=Decimal("100"), max_discount_value=Decimal("50"),
        start_date=now - timedelta(days=1), end_date=now + timedelta(days=365)))
    get_or_create(Offer, code="FLAT50", defaults=dict(
        title="Flat 50", discount_type=DiscountType.FIXED.value, discount_value=Decimal("50"),
        min_order_value=Decimal("300"), start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=90)))

    get_or_create(Fee, name="Platform Fee", defaults=dict(
        fee_type=DiscountType.FIXED.value, fee_value=Decimal("5")))
    get_or_create(Fee, name="Handling Fee", defaults=dict(
        fee_type=DiscountType.PERCENTAGE.value, fee_value=Decimal("1"), max_fee_value=Decimal("20")))
    get_or_create(Fee, name="Packaging Fee", defaults=dict(
        fee_type=DiscountType.FIXED.value, fee_value=Decimal("10"), min_order_value=Decimal("200")))
    db.session.commit()

# ---- пользователи ----
def ensure_user(email, password, role, full_name=None):
    if User.query.filter_by(email=email).first():
        return False
    u = User(email=email, role=role, full_name=full_name)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return True

def ensure_admin():
    return ensure_user("admin@example.com", "pass", Role.ADMIN.value, "Store Admin")

def seed_customer():
    ensure_user("customer@example.com", "pass", Role.CUSTOMER.value, "Demo Customer")
    user = User.query.filter_by(email="customer@example.com").first()
    get_or_create(Address, user_id=user.id, address_line1="12 Ring Road", defaults=dict(
        city="Surat", state="Gujarat", pincode="395007", is_default=True))
    db.session.commit()

def seed_all():
    seed_service_area()
    seed_products()
    seed_offers_and_fees()
    ensure_admin()
    seed_customer()

# ---- main ----
def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + full seed (demo)")
    parser.add_argument("--ensure-admin", action="store_true", help="create only admin@example.com")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if args.reset:
            db.drop_all()
            db.create_all()
            seed_all()
            print("[seed] reset+seed complete")
            return

        if args.ensure_admin:
            created = ensure_admin()
            print("Admin created." if created else "Admin already exists.")
            return

        # режим по умолчанию: мягкое наполнение недостающих данных
        db.create_all()
        seed_all()
        print("[seed] soft seed complete")

if __name__ == "__main__":
    main()
