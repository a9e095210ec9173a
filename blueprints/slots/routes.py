# blueprints/slots/routes.py
from __future__ import annotations
from datetime import date
from flask import Blueprint, jsonify, request

from blueprints.slots import services as svc

api_bp = Blueprint("slots_api", __name__)

def _json_err(code: str, http: int = 400, detail: str | None = None):
    body = {"ok": False, "error": code}
    if detail:
        body["detail"] = detail
    return jsonify(body), http

def _required_date():
    # дата обязательна: без неё нельзя посчитать занятость
    raw = request.args.get("date")
    if not raw:
        return None, _json_err("date_required")
    try:
        return date.fromisoformat(raw), None
    except ValueError:
        return None, _json_err("bad_date", detail=raw)

@api_bp.get("/service-areas/lookup")
def api_service_area_lookup():
    pincode = (request.args.get("pincode") or "").strip()
    if not pincode:
        return _json_err("pincode_required")
    area = svc.service_area_for_pincode(pincode)
    if area is None:
        return jsonify({"ok": True, "serviceable": False, "service_area": None})
    return jsonify({
        "ok": True,
        "serviceable": True,
        "service_area": {
            "id": area.id,
            "name": area.name,
            "delivery_fee": str(area.delivery_fee),
            "min_order_free_delivery": str(area.min_order_free_delivery),
            "delivery_time_minutes": area.delivery_time_minutes,
        },
    })

@api_bp.get("/delivery-slots")
def api_available_slots():
    area_id = request.args.get("service_area_id", type=int)
    if area_id is None:
        return _json_err("service_area_id_required")
    d, err = _required_date()
    if err:
        return err
    include_full = request.args.get("include_full") in ("1", "true", "yes")
    items = svc.available_slots(area_id, d, include_full=include_full)
    return jsonify({"ok": True, "date": d.isoformat(), "items": [s.to_dict() for s in items]})

@api_bp.get("/delivery-slots/<int:slot_id>/availability")
def api_slot_availability(slot_id: int):
    d, err = _required_date()
    if err:
        return err
    return jsonify({"ok": True, "slot_id": slot_id, "date": d.isoformat(), **svc.slot_availability(slot_id, d)})
