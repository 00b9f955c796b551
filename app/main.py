from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import engine, Base

# Import middleware
from app.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from app.modules.auth.router import auth_router
from app.modules.categories.router import categories_router
from app.modules.products.router import product_router
from app.modules.customers.router import customers_router
from app.modules.expenses.router import expenses_router
from app.modules.sales.router import sales_router, payment_history_router, returns_router
from app.modules.ograi.router import ograi_router
from app.modules.reports.routers import report_router, dashboard_router
from app.modules.admin.router import admin_router

# Import models for table creation
import app.modules.auth.models
import app.modules.categories.models
import app.modules.products.models
import app.modules.customers.models
import app.modules.expenses.models
import app.modules.sales.models
import app.modules.ograi.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Shop Ledger API",
    description="Shop management API: sales, payments, returns, supplier purchases and reporting",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(categories_router, prefix="/api/categories", tags=["Categories"])
app.include_router(product_router, prefix="/api")
app.include_router(customers_router, prefix="/api")
app.include_router(expenses_router, prefix="/api")
app.include_router(sales_router, prefix="/api")
app.include_router(payment_history_router, prefix="/api")
app.include_router(returns_router, prefix="/api")
app.include_router(ograi_router, prefix="/api")
app.include_router(report_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(admin_router, prefix="/api")

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)

@app.get("/")
async def read_root():
    return {
        "message": "Shop Ledger API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("Shop Ledger API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shop Ledger API shutting down...")
