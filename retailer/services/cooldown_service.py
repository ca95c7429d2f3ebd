"""
Per-customer order cooldown.

A customer may place a new order only when at least the cooldown period has
passed since their last accepted order. The policy functions below are pure;
``CooldownTracker`` owns the ``customer_cooldowns`` table.
"""
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retailer.models.customer import CustomerCooldown
from retailer.utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_PERIOD = timedelta(minutes=5)


def can_place_order(
    cooldown: Optional[CustomerCooldown],
    period: timedelta = DEFAULT_COOLDOWN_PERIOD,
    now: datetime = None,
) -> bool:
    """True when the customer never ordered or ``period`` has fully elapsed."""
    if cooldown is None or cooldown.last_order_time is None:
        return True
    now = now or utcnow()
    return now - cooldown.last_order_time >= period


def remaining_cooldown(
    cooldown: Optional[CustomerCooldown],
    period: timedelta = DEFAULT_COOLDOWN_PERIOD,
    now: datetime = None,
) -> timedelta:
    """Time left before the customer may order again, within [0, period]."""
    if cooldown is None or cooldown.last_order_time is None:
        return timedelta(0)
    now = now or utcnow()
    remaining = period - (now - cooldown.last_order_time)
    return max(timedelta(0), min(period, remaining))


def cooldown_status(
    cooldown: Optional[CustomerCooldown],
    period: timedelta = DEFAULT_COOLDOWN_PERIOD,
    now: datetime = None,
) -> dict:
    now = now or utcnow()
    remaining = remaining_cooldown(cooldown, period, now)
    return {
        "can_order": can_place_order(cooldown, period, now),
        "cooldown_remaining_seconds": int(remaining.total_seconds()),
        "cooldown_remaining_minutes": round(remaining.total_seconds() / 60, 1),
        "last_order_time": cooldown.last_order_time if cooldown else None,
    }


class CooldownTracker:
    """
    Store for the time of each customer's last accepted order.

    ``upsert`` is meant to run inside the order commit transaction. Given a
    cooldown period it re-checks eligibility in the same statement that moves
    the window forward, so of two racing orders for one customer only one can
    claim the window:

    - existing row: ``UPDATE ... WHERE last_order_time <= timestamp - period``
      matches only while the old window has expired;
    - no row: the INSERT is guarded by the primary key, and the loser of a
      concurrent insert gets an IntegrityError.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_customer_id(self, customer_id: str) -> Optional[CustomerCooldown]:
        return (
            self.db.query(CustomerCooldown)
            .filter(CustomerCooldown.customer_id == customer_id)
            .first()
        )

    def upsert(
        self,
        customer_id: str,
        timestamp: datetime,
        cooldown_period: Optional[timedelta] = None,
    ) -> bool:
        """
        Set the customer's last order time to ``timestamp``.

        Without ``cooldown_period`` the write is unconditional. With it, the
        write only happens if the customer is eligible at ``timestamp``.
        Does not commit.

        Returns:
            True if the row now holds ``timestamp``, False if an active
            cooldown (possibly set by a concurrent order) blocked the write.
            After a False return from the insert path the session must be
            rolled back.
        """
        query = self.db.query(CustomerCooldown).filter(CustomerCooldown.customer_id == customer_id)
        if cooldown_period is not None:
            query = query.filter(CustomerCooldown.last_order_time <= timestamp - cooldown_period)
        updated = query.update(
            {CustomerCooldown.last_order_time: timestamp, CustomerCooldown.updated_at: timestamp},
            synchronize_session=False,
        )
        if updated == 1:
            return True

        exists = (
            self.db.query(CustomerCooldown.customer_id)
            .filter(CustomerCooldown.customer_id == customer_id)
            .first()
        )
        if exists:
            logger.info(f"Cooldown for customer {customer_id} is held by an earlier order")
            return False

        self.db.add(
            CustomerCooldown(
                customer_id=customer_id,
                last_order_time=timestamp,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )
        try:
            self.db.flush()
        except IntegrityError:
            logger.info(f"Concurrent first order detected for customer {customer_id}")
            return False
        return True
