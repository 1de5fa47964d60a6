"""
Storefront - Application Entry Point
======================================
FastAPI app initialization, middleware, error envelope, and router registration.
"""

import logging
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from config.database import Base, engine
from common.exceptions import StorefrontError

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("storefront")
request_logger = logging.getLogger("storefront.request")

# ==========================================
# Import ALL models so Base can see them
# ==========================================
from modules.user.models import User  # noqa: F401
from modules.catalog.models import Product, ProductSize  # noqa: F401
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.auth.routes import router as auth_router
from modules.catalog.routes import router as catalog_router
from modules.cart.routes import router as cart_router
from modules.order.routes import router as order_router


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info("Storefront API started")
    yield
    logger.info("Storefront API stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Storefront API",
    description="Catalog, cart and checkout API",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==========================================
# Exception handlers: uniform {success, error, details} envelope
# ==========================================

def _error(status_code: int, message: str, details=None) -> JSONResponse:
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return _error(500, "Server Error")
    return _error(exc.status_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        details.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return _error(400, "Validation failed", details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Not Found - {request.url.path}"
    return _error(exc.status_code, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(500, "Server Error")


# ==========================================
# Middleware: Request Log
# ==========================================
_SKIP_PATHS = ("/health",)


@app.middleware("http")
async def request_log(request: Request, call_next):
    """Log method, path, status and elapsed time for every request."""
    path = request.url.path
    if path in _SKIP_PATHS:
        return await call_next(request)

    start = _time.time()
    response = await call_next(request)
    elapsed_ms = int((_time.time() - start) * 1000)
    request_logger.info(f"{request.method} {path} -> {response.status_code} ({elapsed_ms}ms)")
    return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(cart_router)
app.include_router(order_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
