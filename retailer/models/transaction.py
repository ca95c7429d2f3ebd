from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum

from retailer.database import Base
from retailer.utils.clock import utcnow


class TransactionType(str, enum.Enum):
    """Enum for transaction type."""
    ORDER = "order"
    REFUND = "refund"
    CREDIT = "credit"


class Transaction(Base):
    """
    Append-only business event used for analytics.

    Every accepted order writes exactly one ``order`` transaction.
    """
    __tablename__ = "transactions"

    id = Column(String(20), primary_key=True, index=True)
    order_id = Column(String(20), ForeignKey("orders.id"), nullable=False, index=True)
    customer_id = Column(String(20), ForeignKey("customers.id"), nullable=False, index=True)
    product_id = Column(String(20), ForeignKey("products.id"), nullable=False, index=True)
    type = Column(Enum(TransactionType), nullable=False, default=TransactionType.ORDER, index=True)
    amount = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    description = Column(String(255), nullable=False, default="")
    transaction_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    customer = relationship("Customer")
    product = relationship("Product")

    @classmethod
    def from_order(cls, order, transaction_id: str, at=None) -> "Transaction":
        """Build the audit record for an accepted order."""
        at = at or utcnow()
        return cls(
            id=transaction_id,
            order_id=order.id,
            customer_id=order.customer_id,
            product_id=order.product_id,
            type=TransactionType.ORDER,
            amount=order.total_amount,
            quantity=order.quantity,
            unit_price=order.unit_price,
            description=f"Order for {order.quantity} units",
            transaction_at=at,
            created_at=at,
        )

    def __repr__(self):
        return f"<Transaction(id='{self.id}', order_id='{self.order_id}', type='{self.type}')>"
