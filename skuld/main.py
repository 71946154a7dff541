from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
import logging

# Import database components
from skuld.database.database import create_tables

# Import middleware
from skuld.common.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from skuld.common.exceptions import AppError

# Import routers
from skuld.modules.company.router import setup_router, settings_router
from skuld.modules.contacts.router import router as contacts_router
from skuld.modules.documents.router import router as documents_router
from skuld.modules.transactions.router import router as transactions_router
from skuld.modules.proofs.router import router as proofs_router
from skuld.modules.attachments.router import router as attachments_router
from skuld.modules.dashboard.router import router as dashboard_router

# Import models for table creation
import skuld.modules.company.models
import skuld.modules.contacts.models
import skuld.modules.sequences.models
import skuld.modules.documents.models
import skuld.modules.transactions.models
import skuld.modules.proofs.models
import skuld.modules.attachments.models

from skuld.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Skuld API",
    description="Bookkeeping and invoicing for French micro-entrepreneurs, built with FastAPI, PostgreSQL and MinIO",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestContextMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Invalid request",
            "code": "VALIDATION_ERROR",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error", "code": "INTERNAL_ERROR"})


# Include routers
app.include_router(setup_router)
app.include_router(settings_router)
app.include_router(contacts_router)
app.include_router(documents_router)
app.include_router(transactions_router)
app.include_router(proofs_router)
app.include_router(attachments_router)
app.include_router(dashboard_router)


@app.get("/")
async def read_root():
    return {
        "message": "Skuld API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Skuld API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Create database tables (only for development - production schemas are provisioned up front)
    if settings.ENVIRONMENT == "development":
        try:
            await create_tables()
        except Exception as e:
            logger.warning(f"Table creation skipped or failed: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Skuld API shutting down...")
