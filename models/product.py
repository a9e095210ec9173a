from decimal import Decimal
from extensions import db

class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    product_code = db.Column(db.String(64), unique=True, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    sale_price = db.Column(db.Numeric(10, 2), nullable=True)
    unit = db.Column(db.String(32), nullable=False, default="pc")
    in_stock = db.Column(db.Boolean, default=True, nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    @property
    def unit_price(self) -> Decimal:
        # цена со скидкой, если она задана
        if self.sale_price is not None:
            return Decimal(self.sale_price)
        return Decimal(self.price)

    def __repr__(self):
        return f"<Product {self.name}>"
