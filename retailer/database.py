from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from retailer.config import get_settings

settings = get_settings()


def build_engine(url: str):
    """
    Create a SQLAlchemy engine.

    PostgreSQL gets a sized connection pool; SQLite (local runs and tests)
    gets a connection that can be shared between worker threads.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


engine = build_engine(settings.DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db():
    """
    Dependency to get database session.
    Yields a database session and closes it after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Run a block of writes as one database transaction.

    Commits when the block exits normally. Any exception raised inside the
    block (including KeyboardInterrupt or a cancelled request) rolls the
    whole transaction back and is re-raised to the caller.

    Example:
        with atomic(db):
            db.add(order)
            db.flush()
            products.reduce_quantity(product_id, 2)
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
