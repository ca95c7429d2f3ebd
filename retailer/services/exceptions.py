from datetime import datetime, timedelta
from typing import Optional


class RetailerError(Exception):
    """Base class for business errors raised by the service layer."""
    pass


class NotFoundError(RetailerError):
    """Raised when a referenced entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} with ID {entity_id} not found")


class CustomerNotFoundError(NotFoundError):
    entity = "Customer"


class ProductNotFoundError(NotFoundError):
    entity = "Product"


class OrderNotFoundError(NotFoundError):
    entity = "Order"


class InsufficientQuantityError(RetailerError):
    """Exception raised when there's not enough stock to fulfill an order."""

    def __init__(self, product_id: str, available: int, requested: int):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient quantity. Available: {available}, Requested: {requested}"
        )


class CooldownActiveError(RetailerError):
    """Raised when a customer orders again before the cooldown period has passed."""

    def __init__(self, customer_id: str, remaining: timedelta, last_order_time: Optional[datetime] = None):
        self.customer_id = customer_id
        self.remaining = remaining
        self.last_order_time = last_order_time
        super().__init__(
            f"Customer {customer_id} is in cooldown period, "
            f"remaining: {self.remaining_seconds}s"
        )

    @property
    def remaining_seconds(self) -> int:
        return int(self.remaining.total_seconds())

    @property
    def remaining_minutes(self) -> float:
        return round(self.remaining.total_seconds() / 60, 1)


class ValidationFailedError(RetailerError):
    """Raised when an entity breaks a business rule before it is stored."""
    pass


class DuplicateEmailError(RetailerError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Customer with email {email} already exists")


class CommitFailedError(RetailerError):
    """
    Raised when the atomic write phase of an order fails.

    Nothing was committed, so the whole request is safe to retry.
    """

    def __init__(self, step: str, cause: Exception):
        self.step = step
        self.cause = cause
        super().__init__(f"Failed to {step}: {cause}")


class DuplicateIdentifierError(CommitFailedError):
    """Raised when a generated identifier collides with an existing row."""
    pass
