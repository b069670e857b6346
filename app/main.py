from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from app.config import get_settings
from app.database import engine, Base
from app.api import products, purchases, users, health
from app.services.exceptions import DomainError

# Models must be imported so their tables are registered on Base.metadata
from app.models import product, purchase, user  # noqa: F401

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info("Starting up application...")

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")

    yield

    logger.info("Shutting down application...")


app = FastAPI(
    title="Inventory Purchase Service",
    description="""
    Backend API for a small inventory and sales workflow:

    - **Users**: Clients register themselves; administrators manage the rest
    - **Products**: Administrators manage lots, prices and stock
    - **Catalog**: Clients browse active products with stock
    - **Purchases**: Clients buy a cart of products in one atomic transaction
    - **Receipts**: Celery workers send receipts once a purchase commits
    - **Caching**: Redis-based caching for product details

    ## Purchases

    A purchase either succeeds completely or changes nothing. Product rows are
    locked with `SELECT FOR UPDATE` and every stock decrement is conditional,
    so concurrent buyers can never oversell a product. Each purchase line keeps
    a copy of the product name, lot code and unit price at purchase time.

    ## Errors

    Business errors return `{"detail", "code", "details"}` with a stable `code`
    such as `INSUFFICIENT_STOCK`, `PRODUCT_NOT_FOUND` or `EMPTY_CART`.
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Render business errors with their stable code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(purchases.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "name": "Inventory Purchase Service",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/api/v1/health"
    }
