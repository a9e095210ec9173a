from decimal import Decimal
from extensions import db

class ServiceArea(db.Model):
    __tablename__ = "service_areas"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    # список pincode строками: ["395007", "395009"]
    pincodes = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    min_order_free_delivery = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    delivery_time_minutes = db.Column(db.Integer, nullable=False, default=30)

    slots = db.relationship("DeliverySlot", back_populates="service_area",
                            order_by="DeliverySlot.start_time")

    def serves(self, pincode: str) -> bool:
        code = (pincode or "").strip()
        return bool(code) and code in {str(p).strip() for p in (self.pincodes or [])}

    def __repr__(self):
        return f"<ServiceArea {self.name}>"
