# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings
from app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import coupon as _coupon_models  # noqa: F401
from app.models import support as _support_models  # noqa: F401
from app.models import subscription as _subscription_models  # noqa: F401

# Routers
from app.routers.users import router as users_router
from app.routers.products import (
    router as products_router,
    parts_router,
    catalog_router,
)
from app.routers.cart import router as cart_router
from app.routers.orders import router as orders_router
from app.routers.coupons import router as coupons_router
from app.routers.support import router as support_router
from app.routers.notifications import router as notifications_router
from app.routers.admin_stats import router as admin_stats_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: check the database and create missing tables.
    Nothing to release on shutdown with the sync engine.
    """
    logger.info("Startup: connecting to database (%s)", settings.ENVIRONMENT)
    try:
        create_db_and_tables()
        logger.info("Startup: tables verified")
    except Exception as e:
        logger.error("Startup: database connection failed: %s", e)
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Everything lives under one prefix, e.g. /api
for api_router in (
    users_router,
    products_router,
    parts_router,
    catalog_router,
    cart_router,
    orders_router,
    coupons_router,
    support_router,
    notifications_router,
    admin_stats_router,
):
    app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "auto-speed-shop-backend"}
