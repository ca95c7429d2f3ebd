from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


class OrderCreate(BaseModel):
    """Schema for placing an order."""
    customer_id: str = Field(..., min_length=1, description="ID of the ordering customer")
    product_id: str = Field(..., min_length=1, description="ID of the product to purchase")
    quantity: int = Field(..., gt=0, description="Quantity to purchase")


class OrderResponse(BaseModel):
    """Schema for order response, with customer and product names resolved."""
    id: str
    customer_id: str
    customer_name: Optional[str] = None
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    unit_price: float
    total_amount: float
    order_date: datetime
    message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for a list of orders."""
    orders: list[OrderResponse]
    count: int
    message: str
