from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from retailer.api.deps import get_cooldown_period
from retailer.database import get_db
from retailer.schemas.customer import (
    CooldownStatusResponse,
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
)
from retailer.services.cooldown_service import CooldownTracker, cooldown_status
from retailer.services.customer_service import CustomerService
from retailer.services.exceptions import (
    DuplicateEmailError,
    DuplicateIdentifierError,
    ValidationFailedError,
)

router = APIRouter(tags=["Customers"])


@router.post(
    "/customer",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer"
)
def create_customer(
    customer_data: CustomerCreate,
    db: Session = Depends(get_db)
):
    """
    Register a customer.

    - **name**, **email**, **phone** are required
    - the email must not belong to another customer (409 otherwise)
    """
    service = CustomerService(db)
    try:
        return service.create(customer_data)
    except (DuplicateEmailError, DuplicateIdentifierError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValidationFailedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "/customer/{customer_id}",
    response_model=CustomerResponse,
    summary="Get customer by ID"
)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db)
):
    customer = CustomerService(db).get_by_id(customer_id)
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Customer with ID {customer_id} not found"
        )
    return customer


@router.get(
    "/customer/{customer_id}/cooldown",
    response_model=CooldownStatusResponse,
    summary="Order cooldown status",
    description="Whether the customer may order now and how long until they may."
)
def get_cooldown_status(
    customer_id: str,
    db: Session = Depends(get_db)
):
    if not CustomerService(db).get_by_id(customer_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Customer with ID {customer_id} not found"
        )

    cooldown = CooldownTracker(db).get_by_customer_id(customer_id)
    return CooldownStatusResponse(
        customer_id=customer_id,
        **cooldown_status(cooldown, get_cooldown_period()),
    )


@router.get(
    "/customers",
    response_model=CustomerListResponse,
    summary="List customers"
)
def list_customers(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    service = CustomerService(db)
    return CustomerListResponse(
        items=[CustomerResponse.model_validate(c) for c in service.get_all(limit, offset)],
        total=service.count(),
        limit=limit,
        offset=offset
    )


@router.get(
    "/customers/search",
    response_model=list[CustomerResponse],
    summary="Search customers by name"
)
def search_customers(
    name: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    return CustomerService(db).search(name)
