from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from retailer.config import get_settings
from retailer.database import engine, Base
from retailer.api import customers, health, orders, products, transactions
from retailer.models import customer, order, product, transaction  # noqa: F401  (register tables)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info(f"Starting retailer API ({settings.APP_ENV})...")

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")

    yield

    logger.info("Shutting down retailer API...")


app = FastAPI(
    title="Retailer Back-Office API",
    description="""
    Back-office API for a retailer:

    - **Products**: catalog and stock management
    - **Customers**: registration and lookup
    - **Orders**: order placement with a per-customer cooldown
    - **Transactions**: audit log and business analytics

    ## Order placement

    An order is accepted only if the customer has not ordered within the
    cooldown period (5 minutes by default) and the product has enough stock.
    The order, the stock decrement, the audit transaction and the cooldown
    update are committed in one database transaction. Stock and cooldown are
    changed with conditional statements, so concurrent requests can neither
    oversell a product nor sneak a second order into a cooldown window.
    """,
    version="2.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(customers.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(transactions.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "name": "Retailer Back-Office API",
        "version": "2.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/api/v1/health"
    }
