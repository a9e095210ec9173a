# blueprints/coupons/routes.py
from __future__ import annotations
from decimal import Decimal

from flask import Blueprint, jsonify, request
from pydantic import BaseModel, Field, field_validator

from . import services as svc

api_bp = Blueprint("coupons_api", __name__)

class CouponCheckIn(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    subtotal: Decimal = Field(ge=0)

    @field_validator("code")
    @classmethod
    def _strip(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("code_required")
        return v

@api_bp.post("/coupons/validate")
def api_coupon_validate():
    # ValidationError ловит общий обработчик в core → 422
    data = CouponCheckIn.model_validate(request.get_json(silent=True) or {})
    result = svc.validate_coupon(data.code, data.subtotal)
    return jsonify({"ok": True, **result.to_dict()})
