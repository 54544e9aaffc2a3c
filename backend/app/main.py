"""
B2B Commerce - Backend API
Admin API (campaigns, integration clients) and ERP Integration API (catalog sync)
"""
import logging
import time
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from app.api import api_clients, attributes, brands, campaigns, categories, product_types, products
from app.core.config import settings
from app.core.database import get_db_connection_with_retry
from app.core.errors import DomainException, ErrorCodes
from app.core.rate_limit import RateLimitExceeded, RateLimitMiddleware, rate_limit_exceeded_response

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

INTEGRATION_PREFIX = "/api/v1/integration"
ADMIN_PREFIX = "/api/v1/admin"

app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
)
app.add_middleware(RateLimitMiddleware)


# ============================================================================
# Exception handlers
# ============================================================================

@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    logger.warning(f"Domain rule violated on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": exc.message, "error_code": ErrorCodes.VALIDATION_ERROR, "data": None},
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    return rate_limit_exceeded_response(exc.limit, exc.retry_after, exc.message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error", "error_code": "INTERNAL_ERROR", "data": None},
    )


# ============================================================================
# Routers
# ============================================================================

# ERP Integration API (X-API-Key)
app.include_router(products.router, prefix=f"{INTEGRATION_PREFIX}/products", tags=["Integration - Products"])
app.include_router(categories.router, prefix=f"{INTEGRATION_PREFIX}/categories", tags=["Integration - Categories"])
app.include_router(brands.router, prefix=f"{INTEGRATION_PREFIX}/brands", tags=["Integration - Brands"])
app.include_router(attributes.router, prefix=f"{INTEGRATION_PREFIX}/attributes", tags=["Integration - Attributes"])
app.include_router(
    product_types.router, prefix=f"{INTEGRATION_PREFIX}/product-types", tags=["Integration - Product Types"]
)

# Admin API (bearer JWT, admin role)
app.include_router(campaigns.router, prefix=f"{ADMIN_PREFIX}/campaigns", tags=["Admin - Campaigns"])
app.include_router(api_clients.router, prefix=ADMIN_PREFIX, tags=["Admin - Integration Clients"])


@app.get("/")
async def root():
    return {
        "message": settings.API_TITLE,
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
async def health():
    """Health check for monitoring - tests database connectivity"""
    start_time = time.time()

    db_status = "unknown"
    db_latency_ms = None
    db_error = None

    try:
        conn = get_db_connection_with_retry(max_retries=1, retry_delay=0.5)
        cursor = conn.cursor()

        db_start = time.time()
        cursor.execute("SELECT 1")
        cursor.fetchone()
        db_latency_ms = round((time.time() - db_start) * 1000, 2)

        cursor.close()
        conn.close()
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        db_status = "disconnected"
        db_error = str(e)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "b2b-commerce-api",
        "version": settings.API_VERSION,
        "database": {
            "status": db_status,
            "latency_ms": db_latency_ms,
            "error": db_error,
        },
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
    }
