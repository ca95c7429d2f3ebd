from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy import func, distinct
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List
import enum
import logging

from retailer.models.customer import Customer
from retailer.models.product import Product
from retailer.models.transaction import Transaction, TransactionType
from retailer.schemas.transaction import (
    BusinessStats,
    ComprehensiveStats,
    CustomerTransactionSummary,
    DailyRevenue,
    MonthlyRevenue,
    ProductSales,
    RevenueAnalytics,
    RevenueGrowth,
)
from retailer.services.exceptions import CustomerNotFoundError
from retailer.services.validation import validate_transaction
from retailer.utils.clock import utcnow, start_of_day

logger = logging.getLogger(__name__)


class StatsPeriod(str, enum.Enum):
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    ALL_TIME = "all_time"


@dataclass
class TransactionFilters:
    """
    Filters for transaction history. Only one applies, checked in this order:
    customer, product, type, date range (both ends required).
    """
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    type: Optional[TransactionType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = 50
    offset: int = 0


def period_bounds(period: StatsPeriod, now: datetime = None):
    """Return (start, end) for a reporting period; both None for all time."""
    now = now or utcnow()
    if period == StatsPeriod.TODAY:
        return start_of_day(now), now
    if period == StatsPeriod.THIS_WEEK:
        # Weeks start on Sunday
        days_since_sunday = (now.weekday() + 1) % 7
        return start_of_day(now - timedelta(days=days_since_sunday)), now
    if period == StatsPeriod.THIS_MONTH:
        return start_of_day(now.replace(day=1)), now
    return None, None


def _month_start(moment: datetime, months_back: int = 0) -> datetime:
    months = moment.year * 12 + moment.month - 1 - months_back
    return datetime(months // 12, months % 12 + 1, 1)


class TransactionService:
    """
    Audit sink for business events plus the reporting queries built on it.

    ``append`` is the only write. It joins the caller's transaction and
    never commits on its own, so an order and its audit record are stored
    together or not at all.
    """

    TOP_PRODUCTS_LIMIT = 5

    def __init__(self, db: Session):
        self.db = db

    def append(self, transaction: Transaction) -> Transaction:
        validate_transaction(transaction)
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get_history(self, filters: TransactionFilters) -> List[Transaction]:
        limit = filters.limit if filters.limit > 0 else 50
        offset = max(filters.offset, 0)

        query = self.db.query(Transaction).options(
            joinedload(Transaction.customer), joinedload(Transaction.product)
        )
        if filters.customer_id:
            query = query.filter(Transaction.customer_id == filters.customer_id)
        elif filters.product_id:
            query = query.filter(Transaction.product_id == filters.product_id)
        elif filters.type:
            query = query.filter(Transaction.type == filters.type)
        elif filters.start_date and filters.end_date:
            query = query.filter(
                Transaction.transaction_at.between(filters.start_date, filters.end_date)
            )

        return (
            query.order_by(Transaction.transaction_at.desc(), Transaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def _orders_between(self, query, start: Optional[datetime], end: Optional[datetime]):
        query = query.filter(Transaction.type == TransactionType.ORDER)
        if start is not None and end is not None:
            query = query.filter(Transaction.transaction_at.between(start, end))
        return query

    def get_business_stats(self, period: StatsPeriod, now: datetime = None) -> BusinessStats:
        """Revenue, order count and top sellers for one period."""
        start, end = period_bounds(period, now)

        total_revenue, order_count, quantity_sold, unique_customers = self._orders_between(
            self.db.query(
                func.coalesce(func.sum(Transaction.amount), 0.0),
                func.count(Transaction.id),
                func.coalesce(func.sum(Transaction.quantity), 0),
                func.count(distinct(Transaction.customer_id)),
            ),
            start,
            end,
        ).one()

        stats = BusinessStats(
            total_revenue=round(float(total_revenue), 2),
            order_count=order_count,
            average_order_value=round(float(total_revenue) / order_count, 2) if order_count else 0.0,
            total_quantity_sold=int(quantity_sold),
            unique_customers=unique_customers,
        )
        stats.top_selling_products = self.get_top_selling_products(
            self.TOP_PRODUCTS_LIMIT, start, end
        )
        return stats

    def get_top_selling_products(
        self,
        limit: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ProductSales]:
        quantity_sold = func.sum(Transaction.quantity).label("quantity_sold")
        query = self._orders_between(
            self.db.query(
                Transaction.product_id,
                Product.name,
                quantity_sold,
                func.sum(Transaction.amount).label("total_revenue"),
            ).join(Product, Product.id == Transaction.product_id),
            start,
            end,
        )
        rows = (
            query.group_by(Transaction.product_id, Product.name)
            .order_by(quantity_sold.desc(), Transaction.product_id)
            .limit(limit)
            .all()
        )
        return [
            ProductSales(
                product_id=product_id,
                product_name=name,
                quantity_sold=int(sold),
                total_revenue=round(float(revenue), 2),
            )
            for product_id, name, sold, revenue in rows
        ]

    def get_comprehensive_stats(self, now: datetime = None) -> ComprehensiveStats:
        now = now or utcnow()
        return ComprehensiveStats(
            all_time=self.get_business_stats(StatsPeriod.ALL_TIME, now),
            today=self.get_business_stats(StatsPeriod.TODAY, now),
            this_week=self.get_business_stats(StatsPeriod.THIS_WEEK, now),
            this_month=self.get_business_stats(StatsPeriod.THIS_MONTH, now),
        )

    def get_customer_summary(self, customer_id: str) -> CustomerTransactionSummary:
        """
        Raises:
            CustomerNotFoundError: If the customer doesn't exist
        """
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise CustomerNotFoundError(customer_id)

        total, first, last = (
            self.db.query(
                func.count(Transaction.id),
                func.min(Transaction.transaction_at),
                func.max(Transaction.transaction_at),
            )
            .filter(Transaction.customer_id == customer_id)
            .one()
        )
        spent = (
            self.db.query(func.coalesce(func.sum(Transaction.amount), 0.0))
            .filter(
                Transaction.customer_id == customer_id,
                Transaction.type == TransactionType.ORDER,
            )
            .scalar()
        )

        return CustomerTransactionSummary(
            customer_id=customer.id,
            customer_name=customer.name,
            customer_email=customer.email,
            customer_since=customer.created_at,
            total_transactions=total,
            total_spent=round(float(spent), 2),
            first_transaction=first,
            last_transaction=last,
        )

    def get_revenue_between(self, start: datetime, end: datetime) -> float:
        """Order revenue with start <= transaction_at < end."""
        revenue = (
            self.db.query(func.coalesce(func.sum(Transaction.amount), 0.0))
            .filter(
                Transaction.type == TransactionType.ORDER,
                Transaction.transaction_at >= start,
                Transaction.transaction_at < end,
            )
            .scalar()
        )
        return round(float(revenue), 2)

    def _revenue_by(self, since: datetime, bucket) -> "OrderedDict[str, float]":
        # Grouped in Python so the same code runs on PostgreSQL and SQLite
        rows = (
            self.db.query(Transaction.transaction_at, Transaction.amount)
            .filter(
                Transaction.type == TransactionType.ORDER,
                Transaction.transaction_at >= since,
            )
            .order_by(Transaction.transaction_at.desc())
            .all()
        )
        totals: "OrderedDict[str, float]" = OrderedDict()
        for at, amount in rows:
            key = bucket(at)
            totals[key] = totals.get(key, 0.0) + amount
        return totals

    def get_revenue_analytics(self, days: int = 30, now: datetime = None) -> RevenueAnalytics:
        if days <= 0:
            days = 30
        now = now or utcnow()

        daily = self._revenue_by(
            start_of_day(now - timedelta(days=days)),
            lambda at: at.date().isoformat(),
        )
        monthly = self._revenue_by(
            _month_start(now, months_back=12),
            lambda at: at.strftime("%Y-%m"),
        )

        current_start = _month_start(now)
        next_start = _month_start(now, months_back=-1)
        previous_start = _month_start(now, months_back=1)
        current = self.get_revenue_between(current_start, next_start)
        previous = self.get_revenue_between(previous_start, current_start)
        growth = ((current - previous) / previous) * 100 if previous > 0 else 0.0

        return RevenueAnalytics(
            daily_revenue=[DailyRevenue(date=d, revenue=round(r, 2)) for d, r in daily.items()],
            monthly_revenue=[MonthlyRevenue(month=m, revenue=round(r, 2)) for m, r in monthly.items()],
            growth=RevenueGrowth(
                current_month_revenue=current,
                previous_month_revenue=previous,
                growth_percentage=round(growth, 2),
            ),
        )
