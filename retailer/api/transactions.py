from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from retailer.database import get_db
from retailer.models.transaction import TransactionType
from retailer.schemas.transaction import (
    BusinessStats,
    ComprehensiveStats,
    CustomerTransactionSummary,
    RevenueAnalytics,
    TransactionListResponse,
    TransactionResponse,
)
from retailer.services.exceptions import CustomerNotFoundError
from retailer.services.transaction_service import (
    StatsPeriod,
    TransactionFilters,
    TransactionService,
)
from retailer.tasks.analytics_tasks import COMPREHENSIVE_STATS_KEY, STATS_CACHE_PREFIX
from retailer.utils.cache import cache_service

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get(
    "",
    response_model=TransactionListResponse,
    summary="Transaction history",
    description="""
    Audit log of business events, newest first.

    Only one filter applies, in this order: customer_id, product_id, type,
    start_date + end_date.
    """
)
def transaction_history(
    customer_id: Optional[str] = Query(None),
    product_id: Optional[str] = Query(None),
    type: Optional[TransactionType] = Query(None, description="order, refund or credit"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    filters = TransactionFilters(
        customer_id=customer_id,
        product_id=product_id,
        type=type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    transactions = TransactionService(db).get_history(filters)

    items = [
        TransactionResponse.model_validate(t).model_copy(
            update={
                "customer_name": t.customer.name if t.customer else None,
                "product_name": t.product.name if t.product else None,
            }
        )
        for t in transactions
    ]
    return TransactionListResponse(transactions=items, count=len(items))


@router.get(
    "/stats",
    response_model=BusinessStats,
    summary="Business statistics for one period"
)
def business_stats(
    period: StatsPeriod = Query(StatsPeriod.ALL_TIME),
    db: Session = Depends(get_db)
):
    return TransactionService(db).get_business_stats(period)


@router.get(
    "/stats/comprehensive",
    response_model=ComprehensiveStats,
    summary="Business statistics for every period",
    description="Served from the cache filled by the background worker when available."
)
def comprehensive_stats(db: Session = Depends(get_db)):
    cached = cache_service.get(STATS_CACHE_PREFIX, COMPREHENSIVE_STATS_KEY)
    if cached:
        return cached
    return TransactionService(db).get_comprehensive_stats()


@router.get(
    "/customer/{customer_id}/summary",
    response_model=CustomerTransactionSummary,
    summary="Customer transaction summary"
)
def customer_summary(
    customer_id: str,
    db: Session = Depends(get_db)
):
    try:
        return TransactionService(db).get_customer_summary(customer_id)
    except CustomerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/revenue/analytics",
    response_model=RevenueAnalytics,
    summary="Revenue analytics"
)
def revenue_analytics(
    days: int = Query(30, ge=1, le=366, description="Days of daily revenue to include"),
    db: Session = Depends(get_db)
):
    return TransactionService(db).get_revenue_analytics(days)
