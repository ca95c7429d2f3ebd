from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from retailer.models.product import Product
from retailer.schemas.product import ProductCreate, ProductUpdate
from retailer.services.exceptions import (
    DuplicateIdentifierError,
    InsufficientQuantityError,
    ProductNotFoundError,
    ValidationFailedError,
)
from retailer.services.validation import validate_product
from retailer.utils.cache import CacheService, cache_service
from retailer.utils.clock import utcnow
from retailer.utils.ids import generate_id, PRODUCT_PREFIX

logger = logging.getLogger(__name__)


class ProductService:
    """
    Product catalog and inventory store.

    This service handles:
    - Creating products and retailer price/stock updates
    - Reading products (with caching)
    - Availability checks for the order workflow
    - The atomic stock decrement used when an order is committed
    """

    CACHE_PREFIX = "product"

    def __init__(self, db: Session, cache: CacheService = None):
        self.db = db
        self.cache = cache or cache_service

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance
        """
        now = utcnow()
        product = Product(
            id=generate_id(PRODUCT_PREFIX),
            name=product_data.name.strip(),
            price=product_data.price,
            quantity=product_data.quantity,
            created_at=now,
            updated_at=now,
        )
        validate_product(product)

        self.db.add(product)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateIdentifierError("create product", e) from e
        self.db.refresh(product)

        logger.info(f"Product {product.id} created with quantity {product.quantity}")
        return product

    def get_by_id(self, product_id: str) -> Optional[Product]:
        """
        Get a product by ID.

        The database is always the source of truth for the returned instance;
        the cache is refreshed on every hit so that cached readers
        (``get_cached``) see current stock.
        """
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product:
            self._cache_product(product)
        return product

    def get_cached(self, product_id: str) -> Optional[dict]:
        """
        Get product details from cache or database as a dictionary.

        Args:
            product_id: Product ID to look up

        Returns:
            Product data as dictionary or None
        """
        cached = self.cache.get(self.CACHE_PREFIX, product_id)
        if cached:
            return cached

        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            return None
        return self._cache_product(product)

    def check_availability(self, product_id: str, requested_quantity: int) -> Product:
        """
        Load a product and make sure the requested amount is in stock.

        Raises:
            ProductNotFoundError: If product doesn't exist
            InsufficientQuantityError: If not enough stock available
        """
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise ProductNotFoundError(product_id)
        if product.quantity < requested_quantity:
            raise InsufficientQuantityError(product_id, product.quantity, requested_quantity)
        return product

    def reduce_quantity(self, product_id: str, amount: int) -> None:
        """
        Atomically take ``amount`` units out of stock.

        A single conditional UPDATE does the check and the decrement, so two
        concurrent orders can never both take the last unit. If no row
        matches, the product is re-read to report why.

        Does not commit; the caller owns the transaction.

        Raises:
            ProductNotFoundError: If product doesn't exist
            InsufficientQuantityError: If stock is below ``amount``
        """
        updated = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.quantity >= amount)
            .update(
                {Product.quantity: Product.quantity - amount, Product.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
        if updated == 1:
            return

        row = self.db.query(Product.quantity).filter(Product.id == product_id).first()
        if row is None:
            raise ProductNotFoundError(product_id)
        raise InsufficientQuantityError(product_id, row.quantity, amount)

    def get_all(self, limit: int = 50, offset: int = 0) -> List[Product]:
        """Get products, newest first."""
        return (
            self.db.query(Product)
            .order_by(Product.created_at.desc(), Product.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(Product).count()

    def search(self, name: str) -> List[Product]:
        """Case-insensitive substring search on product name."""
        return (
            self.db.query(Product)
            .filter(Product.name.ilike(f"%{name}%"))
            .order_by(Product.name)
            .all()
        )

    def get_available(self) -> List[Product]:
        return self.db.query(Product).filter(Product.quantity > 0).order_by(Product.name).all()

    def get_low_stock(self, threshold: int = 5) -> List[Product]:
        """Products whose stock is strictly below ``threshold``."""
        return (
            self.db.query(Product)
            .filter(Product.quantity < threshold)
            .order_by(Product.quantity, Product.name)
            .all()
        )

    def update(self, product_id: str, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update price and/or quantity of a product.

        Args:
            product_id: ID of product to update
            product_data: Update data (only provided fields are changed)

        Returns:
            Updated product or None if not found
        """
        product = self.db.query(Product).filter(Product.id == product_id).first()

        if not product:
            return None

        update_data = product_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is not None:
                setattr(product, field, value)
        try:
            validate_product(product)
        except ValidationFailedError:
            self.db.rollback()
            raise
        product.updated_at = utcnow()

        self.db.commit()
        self.db.refresh(product)

        self.invalidate_cache(product_id)
        logger.info(f"Product {product_id} updated: {update_data}")

        return product

    def invalidate_cache(self, product_id: str) -> None:
        self.cache.delete(self.CACHE_PREFIX, product_id)

    def _cache_product(self, product: Product) -> dict:
        product_dict = {
            "id": product.id,
            "name": product.name,
            "price": product.price,
            "quantity": product.quantity,
            "created_at": product.created_at.isoformat(),
            "updated_at": product.updated_at.isoformat(),
        }
        self.cache.set(self.CACHE_PREFIX, product.id, product_dict)
        return product_dict
