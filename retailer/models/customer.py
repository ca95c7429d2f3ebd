from sqlalchemy import Column, String, DateTime, ForeignKey

from retailer.database import Base
from retailer.utils.clock import utcnow


class Customer(Base):
    """
    Registered customer.

    Attributes:
        id: Identifier in the form CUST12345
        name: Display name
        email: Contact email, unique across customers
        phone: Contact phone number
    """
    __tablename__ = "customers"

    id = Column(String(20), primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(50), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Customer(id='{self.id}', email='{self.email}')>"


class CustomerCooldown(Base):
    """
    Time of a customer's last accepted order.

    One row per customer. A customer without a row has never ordered.
    """
    __tablename__ = "customer_cooldowns"

    customer_id = Column(String(20), ForeignKey("customers.id"), primary_key=True)
    last_order_time = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<CustomerCooldown(customer_id='{self.customer_id}', last_order_time={self.last_order_time})>"
