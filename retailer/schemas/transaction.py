from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

from retailer.models.transaction import TransactionType


class TransactionResponse(BaseModel):
    id: str
    order_id: str
    customer_id: str
    customer_name: Optional[str] = None
    product_id: str
    product_name: Optional[str] = None
    type: TransactionType
    amount: float
    quantity: int
    unit_price: float
    description: str
    transaction_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    count: int


class ProductSales(BaseModel):
    product_id: str
    product_name: Optional[str] = None
    quantity_sold: int
    total_revenue: float


class BusinessStats(BaseModel):
    """Aggregated order figures for one reporting period."""
    total_revenue: float = 0.0
    order_count: int = 0
    average_order_value: float = 0.0
    total_quantity_sold: int = 0
    unique_customers: int = 0
    top_selling_products: list[ProductSales] = []


class ComprehensiveStats(BaseModel):
    all_time: BusinessStats
    today: BusinessStats
    this_week: BusinessStats
    this_month: BusinessStats


class CustomerTransactionSummary(BaseModel):
    customer_id: str
    customer_name: str
    customer_email: str
    customer_since: datetime
    total_transactions: int
    total_spent: float
    first_transaction: Optional[datetime] = None
    last_transaction: Optional[datetime] = None


class DailyRevenue(BaseModel):
    date: str
    revenue: float


class MonthlyRevenue(BaseModel):
    month: str
    revenue: float


class RevenueGrowth(BaseModel):
    current_month_revenue: float
    previous_month_revenue: float
    growth_percentage: float


class RevenueAnalytics(BaseModel):
    daily_revenue: list[DailyRevenue]
    monthly_revenue: list[MonthlyRevenue]
    growth: RevenueGrowth
