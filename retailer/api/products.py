from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from retailer.config import get_settings
from retailer.database import get_db
from retailer.services.exceptions import DuplicateIdentifierError, ValidationFailedError
from retailer.services.product_service import ProductService
from retailer.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse
)

router = APIRouter(tags=["Products"])


@router.post(
    "/product",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a new product with name, price, and initial quantity."
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db)
):
    """
    Create a new product.

    - **name**: Product name (required)
    - **price**: Product price, must be positive (required)
    - **quantity**: Initial stock, must be non-negative (required)
    """
    service = ProductService(db)
    try:
        return service.create(product_data)
    except ValidationFailedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateIdentifierError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get(
    "/product/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID"
)
def get_product(
    product_id: str,
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    product = service.get_by_id(product_id)

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return product


@router.get(
    "/product/{product_id}/cached",
    response_model=ProductResponse,
    summary="Get product from cache",
    description="Product details from the Redis cache, or the database when not cached."
)
def get_product_cached(
    product_id: str,
    db: Session = Depends(get_db)
):
    product_data = ProductService(db).get_cached(product_id)

    if not product_data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return product_data


@router.put(
    "/product/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update price and/or quantity. Only provided fields are changed."
)
def update_product(
    product_id: str,
    product_data: ProductUpdate,
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    try:
        product = service.update(product_id, product_data)
    except ValidationFailedError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product with ID {product_id} not found"
        )

    return product


@router.get(
    "/products",
    response_model=ProductListResponse,
    summary="List all products"
)
def list_products(
    limit: int = Query(50, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: Session = Depends(get_db)
):
    service = ProductService(db)
    products = service.get_all(limit, offset)

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=service.count(),
        limit=limit,
        offset=offset
    )


@router.get(
    "/products/search",
    response_model=list[ProductResponse],
    summary="Search products by name"
)
def search_products(
    name: str = Query(..., min_length=1, description="Part of the product name"),
    db: Session = Depends(get_db)
):
    return ProductService(db).search(name)


@router.get(
    "/products/available",
    response_model=list[ProductResponse],
    summary="Products currently in stock"
)
def available_products(db: Session = Depends(get_db)):
    return ProductService(db).get_available()


@router.get(
    "/products/low-stock",
    response_model=list[ProductResponse],
    summary="Products running out of stock"
)
def low_stock_products(
    threshold: int = Query(None, ge=0, description="Stock level below which a product is listed"),
    db: Session = Depends(get_db)
):
    if threshold is None:
        threshold = get_settings().LOW_STOCK_THRESHOLD
    return ProductService(db).get_low_stock(threshold)
