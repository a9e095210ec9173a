from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Offer
from blueprints.coupons.services import (
    CouponRule, compute_discount, evaluate_coupon, validate_coupon,
)

NOW = datetime(2026, 3, 27, 12, 0)

def csrf(client):
    r = client.get("/api/v1/auth/csrf")
    assert r.status_code == 200
    return r.get_json()["csrf_token"]

def rule(**kw) -> CouponRule:
    data = dict(
        code="SAVE10", discount_type="percentage", discount_value=Decimal("10"),
        min_order_value=Decimal("100"), max_discount_value=Decimal("50"),
        start_date=NOW - timedelta(days=1), end_date=NOW + timedelta(days=1), is_active=True,
    )
    data.update(kw)
    return CouponRule(**data)

@pytest.mark.parametrize("subtotal, expected", [
    ("1000", "50.00"),   # 10% = 100, потолок 50
    ("300", "30.00"),
    ("100", "10.00"),
    ("333.33", "33.33"),
])
def test_percentage_with_cap(subtotal, expected):
    r = evaluate_coupon(rule(), "SAVE10", Decimal(subtotal), NOW)
    assert r.valid and r.discount == Decimal(expected)

def test_below_min_order():
    r = evaluate_coupon(rule(), "SAVE10", Decimal("99.99"), NOW)
    assert not r.valid and r.reason == "min_order_not_met" and r.discount == 0

def test_fixed_discount_never_exceeds_subtotal():
    fixed = rule(discount_type="fixed", discount_value=Decimal("500"), min_order_value=Decimal("0"),
                 max_discount_value=None)
    assert compute_discount(fixed, Decimal("120")) == Decimal("120.00")
    assert compute_discount(fixed, Decimal("800")) == Decimal("500.00")

def test_window_and_active_flag():
    assert evaluate_coupon(rule(start_date=NOW + timedelta(minutes=1)), "SAVE10", Decimal("500"), NOW).reason == "not_started"
    assert evaluate_coupon(rule(end_date=NOW - timedelta(seconds=1)), "SAVE10", Decimal("500"), NOW).reason == "expired"
    assert evaluate_coupon(rule(is_active=False), "SAVE10", Decimal("500"), NOW).reason == "inactive"
    # границы окна включительно
    assert evaluate_coupon(rule(end_date=NOW), "SAVE10", Decimal("500"), NOW).valid
    assert evaluate_coupon(rule(start_date=NOW), "SAVE10", Decimal("500"), NOW).valid

def test_unknown_code():
    r = evaluate_coupon(None, " nope ", Decimal("500"), NOW)
    assert not r.valid and r.reason == "not_found" and r.code == "NOPE"

def test_same_input_same_result():
    a = evaluate_coupon(rule(), "save10", Decimal("640"), NOW)
    b = evaluate_coupon(rule(), "SAVE10", Decimal("640"), NOW)
    assert a == b
    assert a.discount == Decimal("50.00")

def test_validate_from_db_is_case_insensitive(catalog):
    r = validate_coupon("save10", Decimal("1000"))
    assert r.valid and r.discount == Decimal("50.00")
    assert validate_coupon("OLD", Decimal("1000")).reason == "expired"
    assert validate_coupon("MISSING", Decimal("1000")).reason == "not_found"

def test_codes_stored_uppercase_and_unique_ignoring_case(catalog):
    five = Offer(title="5 off", code=" save5 ", discount_type="fixed", discount_value=Decimal("5"),
                 start_date=NOW - timedelta(days=1), end_date=NOW + timedelta(days=1))
    assert five.code == "SAVE5"

    db.session.add(Offer(title="dup", code="save10", discount_type="fixed", discount_value=Decimal("5"),
                         start_date=NOW, end_date=NOW + timedelta(days=1)))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()
    assert Offer.query.filter_by(code="SAVE10").count() == 1

def test_coupon_endpoint(client, catalog):
    token = csrf(client)
    r = client.post("/api/v1/coupons/validate", json={"code": "SAVE10", "subtotal": "1000"},
                    headers={"X-CSRF-Token": token})
    assert r.status_code == 200
    js = r.get_json()
    assert js["valid"] is True and js["discount"] == "50.00"

    r = client.post("/api/v1/coupons/validate", json={"code": "OLD", "subtotal": "1000"},
                    headers={"X-CSRF-Token": token})
    assert r.get_json()["reason"] == "expired"

    r = client.post("/api/v1/coupons/validate", json={"code": "", "subtotal": "-1"},
                    headers={"X-CSRF-Token": token})
    assert r.status_code == 422
    assert r.get_json()["error"] == "validation_error"
