"""
Ошибки оформления заказа.

Каждое исключение несёт машинный `code` (его читает UI) и HTTP-статус;
перевод в JSON делает один общий обработчик в blueprints.core.routes,
поэтому сервисы просто бросают исключения, а маршруты остаются тонкими.
"""
from __future__ import annotations

from typing import Any

# ---- коды отказов, которые видит фронт ----
EMPTY_CART = "empty_cart"
INVALID_CART_ITEM = "invalid_cart_item"
PRODUCT_NOT_FOUND = "product_not_found"
PRODUCT_OUT_OF_STOCK = "product_out_of_stock"
ADDRESS_NOT_FOUND = "address_not_found"
UNSERVICEABLE_ADDRESS = "unserviceable_address"
SLOT_NOT_FOUND = "slot_not_found"
SLOT_INACTIVE = "slot_inactive"
SLOT_WRONG_AREA = "slot_wrong_service_area"
DELIVERY_DATE_IN_PAST = "delivery_date_in_past"
INVALID_COUPON = "invalid_coupon"
INVALID_PAYMENT_METHOD = "invalid_payment_method"
SLOT_FULL = "slot_full"
STORE_UNAVAILABLE = "store_unavailable"
ORDER_NOT_PERSISTED = "order_not_persisted"
ORDER_NOT_FOUND = "order_not_found"
INVALID_STATUS_TRANSITION = "invalid_status_transition"


class CheckoutError(Exception):
    code = "checkout_error"
    http_status = 400

    def __init__(self, code: str | None = None, detail: Any = None):
        self.code = code or type(self).code
        self.detail = detail
        super().__init__(self.code if detail is None else f"{self.code}: {detail}")

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"ok": False, "error": self.code}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class CheckoutValidationError(CheckoutError):
    """Плохие входные данные: пустая корзина, чужой адрес, неактивный слот. Без повторов."""
    code = "validation_error"
    http_status = 422


class CapacityExceeded(CheckoutError):
    """Слот на эту дату заполнен, UI предлагает выбрать другой."""
    code = SLOT_FULL
    http_status = 409


class TransientStoreError(CheckoutError):
    code = STORE_UNAVAILABLE
    http_status = 503


class InvariantViolation(CheckoutError):
    """Слот зарезервирован, а заказ не записался. Резерв уже возвращён."""
    code = ORDER_NOT_PERSISTED
    http_status = 500


class OrderNotFound(CheckoutError):
    code = ORDER_NOT_FOUND
    http_status = 404


class InvalidStatusTransition(CheckoutError):
    code = INVALID_STATUS_TRANSITION
    http_status = 409
