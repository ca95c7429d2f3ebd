from datetime import timedelta

from fastapi import Depends
from sqlalchemy.orm import Session

from retailer.config import get_settings
from retailer.database import get_db
from retailer.services.cooldown_service import CooldownTracker
from retailer.services.customer_service import CustomerService
from retailer.services.order_service import OrderService
from retailer.services.product_service import ProductService
from retailer.services.transaction_service import TransactionService


def get_cooldown_period() -> timedelta:
    return timedelta(minutes=get_settings().ORDER_COOLDOWN_MINUTES)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """
    Build the order workflow for one request.

    Every store shares the request's session so the commit phase covers
    order, stock, audit record and cooldown in a single transaction.
    """
    return OrderService(
        db,
        products=ProductService(db),
        customers=CustomerService(db),
        cooldowns=CooldownTracker(db),
        transactions=TransactionService(db),
        cooldown_period=get_cooldown_period(),
    )
