from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from typing import Callable, List, Optional
import logging

from retailer.database import atomic
from retailer.models.order import Order
from retailer.models.transaction import Transaction
from retailer.schemas.order import OrderResponse
from retailer.services.cooldown_service import (
    CooldownTracker,
    DEFAULT_COOLDOWN_PERIOD,
    can_place_order,
    remaining_cooldown,
)
from retailer.services.customer_service import CustomerService
from retailer.services.exceptions import (
    CommitFailedError,
    CooldownActiveError,
    CustomerNotFoundError,
    DuplicateIdentifierError,
    OrderNotFoundError,
    RetailerError,
)
from retailer.services.product_service import ProductService
from retailer.services.transaction_service import TransactionService
from retailer.services.validation import validate_order
from retailer.utils.clock import utcnow, start_of_day
from retailer.utils.ids import generate_id, ORDER_PREFIX, TRANSACTION_PREFIX

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


class _CooldownClaimLost(Exception):
    """A concurrent order claimed the customer's cooldown window first."""


def _page(limit: int, offset: int):
    return (limit if limit > 0 else DEFAULT_LIMIT), max(offset, 0)


class OrderService:
    """
    Order placement workflow and order read paths.

    PLACEMENT
    =========
    Placing an order runs these steps in order and stops at the first failure:

    1. Cooldown check: the customer's last accepted order must be at least
       ``cooldown_period`` old.
    2. Availability check: the product exists and has enough stock.
    3. Customer resolution: the customer exists.
    4. Order construction: price snapshot, total, business rule validation.
    5. Commit phase, one database transaction:
       a. insert the order
       b. decrement stock with a conditional UPDATE
       c. append the ``order`` transaction to the audit log
       d. move the cooldown window forward, re-checking eligibility

    Steps 1-4 only read, so the common rejections never take write locks.
    Steps 1 and 2 are advisory: two requests can both pass them. The
    conditional statements in 5b and 5d are what actually decide the race, and
    any failure inside step 5 rolls back every write of the attempt. The
    cooldown moves last so a failed commit never starts a new window.

    Nothing is retried here; callers decide whether to try again.
    """

    def __init__(
        self,
        db: Session,
        products: ProductService,
        customers: CustomerService,
        cooldowns: CooldownTracker,
        transactions: TransactionService,
        cooldown_period: timedelta = DEFAULT_COOLDOWN_PERIOD,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.products = products
        self.customers = customers
        self.cooldowns = cooldowns
        self.transactions = transactions
        self.cooldown_period = cooldown_period
        self.clock = clock

    def place_order(self, customer_id: str, product_id: str, quantity: int) -> OrderResponse:
        """
        Place an order for ``quantity`` units of a product.

        Returns:
            Summary of the accepted order with customer and product names

        Raises:
            CooldownActiveError: If the customer ordered too recently
            ProductNotFoundError: If product doesn't exist
            InsufficientQuantityError: If not enough stock available
            CustomerNotFoundError: If customer doesn't exist
            ValidationFailedError: If the constructed order breaks a business rule
            CommitFailedError: If the database rejected the commit phase
        """
        now = self.clock()

        cooldown = self.cooldowns.get_by_customer_id(customer_id)
        if not can_place_order(cooldown, self.cooldown_period, now):
            remaining = remaining_cooldown(cooldown, self.cooldown_period, now)
            logger.warning(f"Order rejected: customer {customer_id} in cooldown for {remaining}")
            raise CooldownActiveError(customer_id, remaining, cooldown.last_order_time)

        product = self.products.check_availability(product_id, quantity)

        customer = self.customers.get_by_id(customer_id)
        if not customer:
            raise CustomerNotFoundError(customer_id)

        # Names are kept before commit expires the loaded instances
        customer_name = customer.name
        product_name = product.name

        order = Order(
            id=generate_id(ORDER_PREFIX),
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=product.price,
            order_date=now,
            created_at=now,
            updated_at=now,
        )
        order.calculate_total()
        validate_order(order)

        self._commit_order(order, now)

        self.products.invalidate_cache(product_id)
        logger.info(
            f"Order {order.id} placed: customer {customer_id} bought "
            f"{quantity} x {product_id} for {order.total_amount:.2f}"
        )

        return OrderResponse(
            id=order.id,
            customer_id=order.customer_id,
            customer_name=customer_name,
            product_id=order.product_id,
            product_name=product_name,
            quantity=order.quantity,
            unit_price=order.unit_price,
            total_amount=order.total_amount,
            order_date=order.order_date,
            message="Order successfully placed",
        )

    def _commit_order(self, order: Order, now: datetime) -> None:
        """Run the write phase of a placement as one transaction."""
        step = "create order"
        try:
            with atomic(self.db):
                self.db.add(order)
                try:
                    self.db.flush()
                except IntegrityError as e:
                    raise DuplicateIdentifierError(step, e) from e

                step = "reduce product quantity"
                self.products.reduce_quantity(order.product_id, order.quantity)

                step = "create transaction"
                try:
                    self.transactions.append(
                        Transaction.from_order(order, generate_id(TRANSACTION_PREFIX), now)
                    )
                except IntegrityError as e:
                    raise DuplicateIdentifierError(step, e) from e

                step = "update customer cooldown"
                if not self.cooldowns.upsert(order.customer_id, now, self.cooldown_period):
                    raise _CooldownClaimLost()
        except _CooldownClaimLost:
            # Rolled back; read the window that the winning order committed
            cooldown = self.cooldowns.get_by_customer_id(order.customer_id)
            if cooldown is None:
                remaining, last_order_time = self.cooldown_period, None
            else:
                remaining = remaining_cooldown(cooldown, self.cooldown_period, self.clock())
                last_order_time = cooldown.last_order_time
            logger.warning(
                f"Order {order.id} rolled back: customer {order.customer_id} "
                f"was claimed by a concurrent order"
            )
            raise CooldownActiveError(order.customer_id, remaining, last_order_time)
        except RetailerError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Order {order.id} rolled back, failed to {step}: {e}")
            raise CommitFailedError(step, e) from e

    def get_order(self, order_id: str) -> Order:
        order = self._with_details().filter(Order.id == order_id).first()
        if not order:
            raise OrderNotFoundError(order_id)
        return order

    def get_order_history(self, customer_id: str, limit: int = DEFAULT_LIMIT, offset: int = 0) -> List[Order]:
        """
        Orders of one customer, newest first.

        Raises:
            CustomerNotFoundError: If customer doesn't exist
        """
        if not self.customers.get_by_id(customer_id):
            raise CustomerNotFoundError(customer_id)

        limit, offset = _page(limit, offset)
        return (
            self._with_details()
            .filter(Order.customer_id == customer_id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_all_orders(self, limit: int = DEFAULT_LIMIT, offset: int = 0) -> List[Order]:
        limit, offset = _page(limit, offset)
        return self._with_details().offset(offset).limit(limit).all()

    def get_todays_orders(self, now: Optional[datetime] = None) -> List[Order]:
        midnight = start_of_day(now or self.clock())
        return self._with_details().filter(Order.order_date >= midnight).all()

    def _with_details(self):
        return (
            self.db.query(Order)
            .options(joinedload(Order.customer), joinedload(Order.product))
            .order_by(Order.order_date.desc(), Order.id.desc())
        )


def to_response(order: Order, message: str = None) -> OrderResponse:
    """Convert a stored order (with relationships loaded) to its API shape."""
    return OrderResponse(
        id=order.id,
        customer_id=order.customer_id,
        customer_name=order.customer.name if order.customer else None,
        product_id=order.product_id,
        product_name=order.product.name if order.product else None,
        quantity=order.quantity,
        unit_price=order.unit_price,
        total_amount=order.total_amount,
        order_date=order.order_date,
        message=message,
    )
