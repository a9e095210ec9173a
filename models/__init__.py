from extensions import db

from models.user import User, Role
from models.address import Address
from models.service_area import ServiceArea
from models.delivery_slot import DeliverySlot, SlotBooking
from models.product import Product
from models.offer import Offer, Fee, DiscountType
from models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus

__all__ = [
    "db",
    "User", "Role",
    "Address",
    "ServiceArea",
    "DeliverySlot", "SlotBooking",
    "Product",
    "Offer", "Fee", "DiscountType",
    "Order", "OrderItem", "OrderStatus", "PaymentMethod", "PaymentStatus",
]
