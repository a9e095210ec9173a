# blueprints/checkout/routes.py
from __future__ import annotations
from datetime import date
from typing import Literal, Optional

from flask import Blueprint, jsonify, request
from flask_login import current_user
from pydantic import BaseModel, Field

from blueprints.auth.routes import customer_required
from blueprints.orders.services import order_to_dict
from . import services as svc

api_bp = Blueprint("checkout_api", __name__)

class CartItemIn(BaseModel):
    product_id: int = Field(ge=1)
    quantity: int = Field(ge=1, le=999)

class PlaceOrderIn(BaseModel):
    address_id: int
    delivery_slot_id: int
    delivery_date: date
    payment_method: Literal["cod", "card"] = "cod"
    coupon_code: Optional[str] = Field(default=None, max_length=64)
    # пустой список пропускаем: сервис вернёт empty_cart
    items: list[CartItemIn] = Field(default_factory=list)

@api_bp.post("/checkout/orders")
@customer_required
def api_place_order():
    data = PlaceOrderIn.model_validate(request.get_json(silent=True) or {})
    order = svc.OrderIntakeService().place_order(svc.PlaceOrderRequest(
        user_id=current_user.id,
        address_id=data.address_id,
        delivery_slot_id=data.delivery_slot_id,
        delivery_date=data.delivery_date,
        items=[svc.CartLine(i.product_id, i.quantity) for i in data.items],
        payment_method=data.payment_method,
        coupon_code=data.coupon_code,
    ))
    return jsonify({"ok": True, "order": order_to_dict(order)}), 201
