from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from retailer.models.customer import Customer
from retailer.schemas.customer import CustomerCreate
from retailer.services.exceptions import DuplicateEmailError, DuplicateIdentifierError
from retailer.services.validation import validate_customer
from retailer.utils.clock import utcnow
from retailer.utils.ids import generate_id, CUSTOMER_PREFIX

logger = logging.getLogger(__name__)


class CustomerService:
    """Customer registration and lookup."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, customer_data: CustomerCreate) -> Customer:
        """
        Register a new customer.

        Raises:
            DuplicateEmailError: If the email is already registered
            ValidationFailedError: If name, email or phone is unusable
        """
        email = str(customer_data.email).strip()
        if self.get_by_email(email):
            raise DuplicateEmailError(email)

        now = utcnow()
        customer = Customer(
            id=generate_id(CUSTOMER_PREFIX),
            name=customer_data.name.strip(),
            email=email,
            phone=customer_data.phone.strip(),
            created_at=now,
            updated_at=now,
        )
        validate_customer(customer)

        self.db.add(customer)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Either a concurrent registration won the email, or the id collided
            self.db.rollback()
            if self.get_by_email(email):
                raise DuplicateEmailError(email) from e
            raise DuplicateIdentifierError("create customer", e) from e
        self.db.refresh(customer)

        logger.info(f"Customer {customer.id} registered")
        return customer

    def get_by_id(self, customer_id: str) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def get_by_email(self, email: str) -> Optional[Customer]:
        return self.db.query(Customer).filter(Customer.email == email).first()

    def get_all(self, limit: int = 50, offset: int = 0) -> List[Customer]:
        return (
            self.db.query(Customer)
            .order_by(Customer.created_at.desc(), Customer.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(Customer).count()

    def search(self, name: str) -> List[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.name.ilike(f"%{name}%"))
            .order_by(Customer.name)
            .all()
        )
