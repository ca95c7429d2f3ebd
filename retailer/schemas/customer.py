from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import datetime
from typing import Optional


class CustomerCreate(BaseModel):
    """Schema for registering a customer."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)


class CustomerResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerListResponse(BaseModel):
    items: list[CustomerResponse]
    total: int
    limit: int
    offset: int


class CooldownStatusResponse(BaseModel):
    """Whether a customer may order now, and how long until they may."""
    customer_id: str
    can_order: bool
    cooldown_remaining_seconds: int
    cooldown_remaining_minutes: float
    last_order_time: Optional[datetime] = None
