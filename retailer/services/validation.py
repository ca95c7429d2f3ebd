"""Business rule checks run before an entity is handed to the database."""
from email_validator import EmailNotValidError, validate_email

from retailer.models.customer import Customer
from retailer.models.order import Order
from retailer.models.product import Product
from retailer.models.transaction import Transaction, TransactionType
from retailer.services.exceptions import ValidationFailedError

# Allowed difference between total_amount and quantity * unit_price
TOTAL_TOLERANCE = 0.01


def validate_product(product: Product) -> None:
    if not (product.name or "").strip():
        raise ValidationFailedError("product name is required")
    if product.price is None or product.price <= 0:
        raise ValidationFailedError(f"price must be greater than zero: {product.price}")
    if product.quantity is None or product.quantity < 0:
        raise ValidationFailedError(f"quantity cannot be negative: {product.quantity}")


def is_valid_email(email: str) -> bool:
    try:
        validate_email((email or "").strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_customer(customer: Customer) -> None:
    if not (customer.name or "").strip():
        raise ValidationFailedError("customer name is required")
    if not is_valid_email(customer.email):
        raise ValidationFailedError(f"invalid email format: {customer.email}")
    if not (customer.phone or "").strip():
        raise ValidationFailedError("phone number is required")


def validate_order(order: Order) -> None:
    if not order.customer_id:
        raise ValidationFailedError("customer ID is required")
    if not order.product_id:
        raise ValidationFailedError("product ID is required")
    if order.quantity is None or order.quantity <= 0:
        raise ValidationFailedError(f"quantity must be greater than zero: {order.quantity}")
    if order.unit_price is None or order.unit_price <= 0:
        raise ValidationFailedError(f"unit price must be greater than zero: {order.unit_price}")

    expected = order.quantity * order.unit_price
    if order.total_amount is None or abs(order.total_amount - expected) > TOTAL_TOLERANCE:
        raise ValidationFailedError(
            f"total amount mismatch: expected {expected:.2f}, got {order.total_amount}"
        )


def validate_transaction(transaction: Transaction) -> None:
    if not transaction.order_id:
        raise ValidationFailedError("order ID is required")
    if not transaction.customer_id:
        raise ValidationFailedError("customer ID is required")
    if not transaction.product_id:
        raise ValidationFailedError("product ID is required")
    if transaction.type not in list(TransactionType):
        raise ValidationFailedError(f"invalid transaction type: {transaction.type}")
    if transaction.amount is None or transaction.amount <= 0:
        raise ValidationFailedError(f"amount must be greater than zero: {transaction.amount}")
    if transaction.quantity is None or transaction.quantity <= 0:
        raise ValidationFailedError(f"quantity must be greater than zero: {transaction.quantity}")
