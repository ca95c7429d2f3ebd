from sqlalchemy import Column, Integer, String, Float, DateTime, CheckConstraint

from retailer.database import Base
from retailer.utils.clock import utcnow


class Product(Base):
    """
    Product model representing items available for sale.

    Attributes:
        id: Identifier in the form PROD12345
        name: Product name
        price: Product price (must be positive)
        quantity: Units in stock (must be non-negative)
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(String(20), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Database-level constraints to ensure data integrity
    __table_args__ = (
        CheckConstraint('price > 0', name='check_price_positive'),
        CheckConstraint('quantity >= 0', name='check_quantity_non_negative'),
    )

    def __repr__(self):
        return f"<Product(id='{self.id}', name='{self.name}', quantity={self.quantity})>"
