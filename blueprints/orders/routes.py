# blueprints/orders/routes.py
from __future__ import annotations
from typing import Literal

from flask import Blueprint, jsonify, request
from flask_login import current_user
from pydantic import BaseModel

from blueprints.auth.routes import admin_required, customer_required
from models import OrderStatus
from . import services as svc

api_bp = Blueprint("orders_api", __name__)

class StatusIn(BaseModel):
    status: Literal["pending", "processing", "out_for_delivery", "delivered", "cancelled"]

@api_bp.get("/orders")
@customer_required
def api_my_orders():
    items = svc.list_user_orders(current_user.id)
    return jsonify({"ok": True, "items": [svc.order_to_dict(o, with_items=False) for o in items]})

@api_bp.get("/orders/<int:order_id>")
@customer_required
def api_my_order(order_id: int):
    order = svc.get_user_order(current_user.id, order_id)
    return jsonify({"ok": True, "order": svc.order_to_dict(order)})

# ---------- admin ----------
@api_bp.get("/admin/orders")
@admin_required
def api_admin_orders():
    status = (request.args.get("status") or "").strip() or None
    if status and status not in {s.value for s in OrderStatus}:
        return jsonify({"ok": False, "error": "bad_status", "detail": status}), 400
    items = svc.list_all_orders(status)
    return jsonify({"ok": True, "items": [svc.order_to_dict(o, with_items=False) for o in items]})

@api_bp.post("/admin/orders/<int:order_id>/status")
@admin_required
def api_admin_order_status(order_id: int):
    data = StatusIn.model_validate(request.get_json(silent=True) or {})
    order = svc.update_status(order_id, data.status)
    return jsonify({"ok": True, "order": svc.order_to_dict(order)})
