from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from datetime import date, time, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app import create_app
from extensions import db
from models import DeliverySlot, ServiceArea
from blueprints.core.errors import TransientStoreError
from blueprints.slots.services import (
    SlotCapacityLedger, available_slots, service_area_for_pincode, slot_availability,
)

def _locked():
    return OperationalError("UPDATE slot_bookings", {}, Exception("database is locked"))

def test_sequential_reserve_stops_at_capacity(catalog):
    ledger = SlotCapacityLedger()
    results = [ledger.try_reserve(catalog.slot_id, catalog.tomorrow) for _ in range(5)]
    assert [r.reserved for r in results] == [True, True, False, False, False]
    assert all(r.reason == "slot_full" for r in results[2:])
    assert results[1].remaining == 0
    assert ledger.booked_count(catalog.slot_id, catalog.tomorrow) == 2

def test_dates_are_counted_separately(catalog):
    ledger = SlotCapacityLedger()
    day2 = catalog.tomorrow + timedelta(days=1)
    for _ in range(2):
        assert ledger.try_reserve(catalog.slot_id, catalog.tomorrow).reserved
    assert ledger.try_reserve(catalog.slot_id, day2).reserved
    assert ledger.booked_count(catalog.slot_id, day2) == 1

def test_release_frees_place(catalog):
    ledger = SlotCapacityLedger()
    ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    assert not ledger.try_reserve(catalog.slot_id, catalog.tomorrow).reserved

    assert ledger.release(catalog.slot_id, catalog.tomorrow) is True
    assert ledger.try_reserve(catalog.slot_id, catalog.tomorrow).reserved

def test_release_never_goes_negative(catalog):
    ledger = SlotCapacityLedger()
    # строки ещё нет
    assert ledger.release(catalog.slot_id, catalog.tomorrow) is False
    ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    assert ledger.release(catalog.slot_id, catalog.tomorrow) is True
    assert ledger.release(catalog.slot_id, catalog.tomorrow) is False
    assert ledger.booked_count(catalog.slot_id, catalog.tomorrow) == 0

def test_uncommitted_reserve_is_undone_by_rollback(catalog):
    ledger = SlotCapacityLedger()
    r = ledger.try_reserve(catalog.slot_id, catalog.tomorrow, commit=False)
    assert r.reserved and r.orders_count == 1
    db.session.rollback()
    assert ledger.booked_count(catalog.slot_id, catalog.tomorrow) == 0
    # место снова свободно для обычного резерва
    assert ledger.try_reserve(catalog.slot_id, catalog.tomorrow).orders_count == 1

def test_missing_and_inactive_slots(catalog):
    ledger = SlotCapacityLedger()
    r = ledger.try_reserve(9999, catalog.tomorrow)
    assert not r.reserved and r.reason == "slot_not_found"
    r = ledger.try_reserve(catalog.inactive_slot_id, catalog.tomorrow)
    assert not r.reserved and r.reason == "slot_inactive"
    assert ledger.booked_count(catalog.inactive_slot_id, catalog.tomorrow) == 0

def test_zero_capacity_slot_is_always_full(catalog):
    slot = db.session.get(DeliverySlot, catalog.late_slot_id)
    slot.max_orders = 0
    db.session.commit()
    r = SlotCapacityLedger().try_reserve(catalog.late_slot_id, catalog.tomorrow)
    assert not r.reserved and r.reason == "slot_full"

def test_lowering_capacity_blocks_new_reservations(catalog):
    ledger = SlotCapacityLedger()
    for _ in range(3):
        assert ledger.try_reserve(catalog.late_slot_id, catalog.tomorrow).reserved
    slot = db.session.get(DeliverySlot, catalog.late_slot_id)
    slot.max_orders = 2
    db.session.commit()
    # уже занятые места не трогаем, новых не даём
    assert not ledger.try_reserve(catalog.late_slot_id, catalog.tomorrow).reserved
    assert ledger.booked_count(catalog.late_slot_id, catalog.tomorrow) == 3

class FlakyLedger(SlotCapacityLedger):
    def __init__(self, failures: int, **kw):
        super().__init__(**kw)
        self.failures = failures
        self.calls = 0

    def _reserve_once(self, slot_id, delivery_date, **kw):
        self.calls += 1
        if self.calls <= self.failures:
            raise _locked()
        return super()._reserve_once(slot_id, delivery_date, **kw)

def test_retry_after_lock_then_success(catalog, caplog):
    sleeps = []
    ledger = FlakyLedger(failures=2, retries=3, backoff=0.01, sleep=sleeps.append)
    with caplog.at_level("WARNING", logger="blueprints"):
        r = ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    assert r.reserved
    assert ledger.calls == 3
    assert sleeps == pytest.approx([0.01, 0.02])
    assert [rec.event for rec in caplog.records if hasattr(rec, "event")].count("slot_reserve_retry") == 2
    assert ledger.booked_count(catalog.slot_id, catalog.tomorrow) == 1

def test_retries_exhausted_raise_transient_error(catalog):
    ledger = FlakyLedger(failures=10, retries=3, backoff=0.0)
    with pytest.raises(TransientStoreError) as ei:
        ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    assert ei.value.http_status == 503
    assert ei.value.detail["attempts"] == 3
    assert ledger.calls == 3
    assert ledger.booked_count(catalog.slot_id, catalog.tomorrow) == 0

def test_backoff_is_capped(catalog):
    sleeps = []
    ledger = FlakyLedger(failures=10, retries=6, backoff=0.5, sleep=sleeps.append)
    with pytest.raises(TransientStoreError):
        ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    assert max(sleeps) <= 1.0

def test_service_area_lookup(catalog):
    assert service_area_for_pincode(" 395007 ").id == catalog.area_id
    assert service_area_for_pincode("110001") is None
    assert service_area_for_pincode("") is None

def test_available_slots_hide_full(catalog):
    ledger = SlotCapacityLedger()
    before = available_slots(catalog.area_id, catalog.tomorrow)
    assert [s.id for s in before] == [catalog.slot_id, catalog.late_slot_id]
    ledger.try_reserve(catalog.slot_id, catalog.tomorrow)
    ledger.try_reserve(catalog.slot_id, catalog.tomorrow)

    after = available_slots(catalog.area_id, catalog.tomorrow)
    assert [s.id for s in after] == [catalog.late_slot_id]
    full = available_slots(catalog.area_id, catalog.tomorrow, include_full=True)
    assert {s.id: s.remaining for s in full}[catalog.slot_id] == 0

    assert slot_availability(catalog.slot_id, catalog.tomorrow) == {"available": False, "remaining": 0, "total": 2}
    assert slot_availability(catalog.late_slot_id, catalog.tomorrow)["remaining"] == 5

def test_slot_endpoints(client, catalog):
    r = client.get("/api/v1/service-areas/lookup?pincode=395009")
    js = r.get_json()
    assert r.status_code == 200 and js["serviceable"] is True
    assert js["service_area"]["delivery_fee"] == "40.00"
    assert client.get("/api/v1/service-areas/lookup?pincode=000000").get_json()["serviceable"] is False

    d = catalog.tomorrow.isoformat()
    r = client.get(f"/api/v1/delivery-slots?service_area_id={catalog.area_id}&date={d}")
    assert [s["id"] for s in r.get_json()["items"]] == [catalog.slot_id, catalog.late_slot_id]
    assert client.get(f"/api/v1/delivery-slots?service_area_id={catalog.area_id}").status_code == 400
    assert client.get(f"/api/v1/delivery-slots?service_area_id={catalog.area_id}&date=tomorrow").get_json()["error"] == "bad_date"

    r = client.get(f"/api/v1/delivery-slots/{catalog.slot_id}/availability?date={d}")
    assert r.get_json()["remaining"] == 2

# ---- конкурентный доступ через файл SQLite ----
@pytest.fixture()
def file_app(tmp_path):
    app = create_app("test", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'ledger.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
    })
    with app.app_context():
        db.create_all()
        area = ServiceArea(name="Surat", pincodes=["395007"])
        db.session.add(area); db.session.flush()
        slot = DeliverySlot(service_area_id=area.id, start_time=time(8, 0), end_time=time(10, 0), max_orders=3)
        db.session.add(slot)
        db.session.commit()
        slot_id = slot.id
    yield app, slot_id
    with app.app_context():
        db.drop_all()
        db.engine.dispose()

def test_parallel_reservations_never_overbook(file_app):
    app, slot_id = file_app
    day = date.today() + timedelta(days=3)

    def worker(_):
        with app.app_context():
            try:
                return SlotCapacityLedger(retries=10, backoff=0.01).try_reserve(slot_id, day).reserved
            finally:
                db.session.remove()

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(worker, range(12)))

    assert outcomes.count(True) == 3
    with app.app_context():
        assert SlotCapacityLedger().booked_count(slot_id, day) == 3
