import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from kombu.exceptions import OperationalError as BrokerError

from retailer.api.deps import get_order_service
from retailer.services.exceptions import (
    CommitFailedError,
    CooldownActiveError,
    CustomerNotFoundError,
    InsufficientQuantityError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationFailedError,
)
from retailer.services.order_service import OrderService, to_response
from retailer.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderListResponse
)
from retailer.tasks.analytics_tasks import refresh_business_stats

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"])


def _error(status_code: int, detail: str, **fields) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder({"detail": detail, **fields}))


@router.post(
    "/order",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="""
    Place an order for a product.

    **Rules:**
    - A customer may place one order per cooldown period (5 minutes by default).
      Early attempts get 429 with the remaining wait time.
    - Stock is checked and decremented atomically, so concurrent orders can
      never oversell a product. Short stock gets 400 with the available quantity.
    - Order, stock change, audit transaction and cooldown are committed
      together or not at all.
    """,
    responses={
        400: {"description": "Unknown customer/product or insufficient quantity"},
        429: {"description": "Customer is in cooldown period"},
        500: {"description": "Order could not be committed"},
    }
)
def place_order(
    order_data: OrderCreate,
    service: OrderService = Depends(get_order_service)
):
    """
    - **customer_id**: ID of the ordering customer (required)
    - **product_id**: ID of the product to purchase (required)
    - **quantity**: Number of units, greater than zero (required)
    """
    try:
        order = service.place_order(
            order_data.customer_id, order_data.product_id, order_data.quantity
        )
    except CooldownActiveError as e:
        return _error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Customer is in cooldown period",
            can_order=False,
            cooldown_remaining_seconds=e.remaining_seconds,
            cooldown_remaining_minutes=e.remaining_minutes,
            last_order_time=e.last_order_time,
        )
    except InsufficientQuantityError as e:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            str(e),
            available_quantity=e.available,
            requested_quantity=e.requested,
        )
    except (CustomerNotFoundError, ProductNotFoundError) as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except (CommitFailedError, ValidationFailedError) as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to place order", error=str(e))

    # Dashboards are refreshed in the background; the order is already committed
    try:
        refresh_business_stats.delay()
    except BrokerError as e:
        logger.warning(f"Could not enqueue stats refresh after order {order.id}: {e}")

    return order


@router.get(
    "/order/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID"
)
def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service)
):
    try:
        return to_response(service.get_order(order_id))
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/orders",
    response_model=OrderListResponse,
    summary="List all orders",
    description="All orders, newest first, with customer and product names (retailer view)."
)
def list_orders(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: OrderService = Depends(get_order_service)
):
    orders = [to_response(o) for o in service.get_all_orders(limit, offset)]
    return OrderListResponse(orders=orders, count=len(orders), message="Orders retrieved successfully")


@router.get(
    "/orders/today",
    response_model=OrderListResponse,
    summary="Orders placed today (UTC)"
)
def todays_orders(service: OrderService = Depends(get_order_service)):
    orders = [to_response(o) for o in service.get_todays_orders()]
    return OrderListResponse(orders=orders, count=len(orders), message="Today's orders retrieved successfully")


@router.get(
    "/orders/customer/{customer_id}",
    response_model=OrderListResponse,
    summary="Customer order history"
)
def order_history(
    customer_id: str,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: OrderService = Depends(get_order_service)
):
    try:
        orders = service.get_order_history(customer_id, limit, offset)
    except CustomerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    responses = [to_response(o) for o in orders]
    return OrderListResponse(
        orders=responses, count=len(responses), message="Order history retrieved successfully"
    )
