from __future__ import annotations
from datetime import time, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import create_app
from extensions import db
from models import Address, DeliverySlot, Fee, Offer, Product, ServiceArea, User
from blueprints.auth.routes import reset_rate_limits
from blueprints.core.timeutil import store_now, store_today

@pytest.fixture()
def app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        reset_rate_limits()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

def build_catalog() -> SimpleNamespace:
    """Одна зона (Surat), слот на 2 заказа, товары, купоны, покупатели."""
    area = ServiceArea(name="Surat", pincodes=["395007", "395009"],
                       delivery_fee=Decimal("40.00"), min_order_free_delivery=Decimal("500.00"))
    other_area = ServiceArea(name="Vadodara", pincodes=["390001"],
                             delivery_fee=Decimal("30.00"), min_order_free_delivery=Decimal("0"))
    db.session.add_all([area, other_area]); db.session.flush()

    slot = DeliverySlot(service_area_id=area.id, start_time=time(8, 0), end_time=time(10, 0), max_orders=2)
    late = DeliverySlot(service_area_id=area.id, start_time=time(18, 0), end_time=time(20, 0), max_orders=5)
    inactive = DeliverySlot(service_area_id=area.id, start_time=time(12, 0), end_time=time(14, 0),
                            max_orders=5, is_active=False)
    foreign = DeliverySlot(service_area_id=other_area.id, start_time=time(8, 0), end_time=time(10, 0),
                           max_orders=5)

    customer = User(email="customer@example.com", role="CUSTOMER")
    customer.set_password("pass")
    other = User(email="other@example.com", role="CUSTOMER")
    other.set_password("pass")
    admin = User(email="admin@example.com", role="ADMIN")
    admin.set_password("adminpass")
    db.session.add_all([slot, late, inactive, foreign, customer, other, admin]); db.session.flush()

    home = Address(user_id=customer.id, address_line1="12 Ring Road", city="Surat",
                   state="Gujarat", pincode="395007")
    far = Address(user_id=customer.id, address_line1="1 Connaught Place", city="Delhi",
                  state="Delhi", pincode="110001")
    others_home = Address(user_id=other.id, address_line1="5 Station Road", city="Surat",
                          state="Gujarat", pincode="395009")

    milk = Product(name="Milk 1L", price=Decimal("60.00"), in_stock=True, stock_quantity=50)
    rice = Product(name="Basmati 5kg", price=Decimal("700.00"), sale_price=Decimal("650.00"),
                   in_stock=True, stock_quantity=10)
    mango = Product(name="Alphonso Mango", price=Decimal("120.00"), in_stock=False)

    now = store_now()
    save10 = Offer(title="10% off", code="SAVE10", discount_type="percentage",
                   discount_value=Decimal("10"), min_order_value=Decimal("100"),
                   max_discount_value=Decimal("50"),
                   start_date=now - timedelta(days=1), end_date=now + timedelta(days=30))
    old = Offer(title="Old", code="OLD", discount_type="fixed", discount_value=Decimal("20"),
                start_date=now - timedelta(days=30), end_date=now - timedelta(days=1))
    platform = Fee(name="Platform Fee", fee_type="fixed", fee_value=Decimal("5"))

    db.session.add_all([home, far, others_home, milk, rice, mango, save10, old, platform])
    db.session.commit()

    return SimpleNamespace(
        area_id=area.id, other_area_id=other_area.id,
        slot_id=slot.id, late_slot_id=late.id, inactive_slot_id=inactive.id, foreign_slot_id=foreign.id,
        customer_id=customer.id, other_id=other.id, admin_id=admin.id,
        home_id=home.id, far_id=far.id, others_home_id=others_home.id,
        milk_id=milk.id, rice_id=rice.id, mango_id=mango.id,
        tomorrow=store_today() + timedelta(days=1),
    )


@pytest.fixture()
def catalog(app):
    return build_catalog()

@pytest.fixture()
def file_shop(tmp_path):
    """Тот же каталог, но в файле SQLite: у каждого потока своё соединение."""
    app = create_app("test", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'shop.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
    })
    with app.app_context():
        db.create_all()
        reset_rate_limits()
        yield app, build_catalog()
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
