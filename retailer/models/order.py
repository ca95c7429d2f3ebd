from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from retailer.database import Base
from retailer.utils.clock import utcnow


class Order(Base):
    """
    Order model representing an accepted purchase.

    Orders are written once by the order workflow and never modified.

    Attributes:
        id: Identifier in the form ORD12345
        customer_id: Customer who placed the order
        product_id: Purchased product
        quantity: Number of units purchased
        unit_price: Product price at the moment the order was placed
        total_amount: quantity * unit_price
        order_date: When the order was placed
    """
    __tablename__ = "orders"

    id = Column(String(20), primary_key=True, index=True)
    customer_id = Column(String(20), ForeignKey("customers.id"), nullable=False, index=True)
    product_id = Column(String(20), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)
    order_date = Column(DateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", backref="orders")
    product = relationship("Product", backref="orders")

    def calculate_total(self) -> float:
        self.total_amount = self.quantity * self.unit_price
        return self.total_amount

    def __repr__(self):
        return f"<Order(id='{self.id}', customer_id='{self.customer_id}', product_id='{self.product_id}')>"
