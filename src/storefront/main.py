"""
Storefront - Main FastAPI Application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from storefront import __version__
from storefront.common_logging import setup_logging
from storefront.common_instrumentation import setup_opentelemetry, instrument_fastapi, instrument_sqlalchemy
from storefront.api import addresses, admin, cart, catalog, contact, orders, users
from storefront.db.database import Database
from storefront.services.payment_client import PaymentProviderClient
from storefront.services.image_client import ImageHostClient
from storefront.services.mailer import Mailer
from storefront.config import Settings, settings as default_settings

# Setup logging
setup_logging(
    service_name=default_settings.service_name,
    log_level=default_settings.log_level,
    log_format=default_settings.log_format
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    settings: Settings = app.state.settings

    # Startup
    logger.info(f"Starting {settings.service_name}")
    logger.info(f"Environment: {settings.environment}")

    # Initialize OpenTelemetry
    if settings.otel_enabled:
        setup_opentelemetry(
            service_name=settings.otel_service_name or settings.service_name,
            otlp_endpoint=settings.otel_endpoint,
            enabled=settings.otel_enabled
        )
        logger.info("OpenTelemetry initialized")

    # Initialize database
    try:
        db = Database(settings.database_url)
        db.create_tables()
        logger.info("Database initialized successfully")

        if settings.otel_enabled:
            instrument_sqlalchemy(db.engine)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
    app.state.db = db

    # External collaborators
    app.state.payment_client = PaymentProviderClient(
        private_api_key=settings.payment_private_api_key,
        webhook_secret=settings.payment_webhook_secret,
        sandbox=settings.payment_sandbox,
        timeout=settings.payment_timeout_seconds
    )
    app.state.image_client = ImageHostClient(
        upload_url=settings.image_host_url,
        api_key=settings.image_host_api_key,
        upload_preset=settings.image_host_upload_preset
    )
    app.state.mailer = Mailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        sender=settings.mail_sender
    )
    logger.info(f"Payment provider: {app.state.payment_client.base_url}")

    logger.info(f"{settings.service_name} started successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.service_name}")
    await app.state.payment_client.close()
    await app.state.image_client.close()
    db.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application for ``settings`` (the environment by default)"""
    settings = settings or default_settings

    app = FastAPI(
        title="Storefront",
        description="Catalog, cart, checkout and back-office API",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Instrument FastAPI with OpenTelemetry
    if settings.otel_enabled:
        instrument_fastapi(app)

    # Include API routes
    for module in (users, catalog, cart, addresses, orders, admin, contact):
        app.include_router(module.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint (liveness probe)"""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "version": __version__,
            "timestamp": datetime.utcnow().isoformat()
        }

    @app.get("/ready")
    async def readiness_check(request: Request):
        """Readiness check endpoint (readiness probe)"""
        try:
            request.app.state.db.ping()

            return {
                "status": "ready",
                "service": settings.service_name,
                "database": "connected",
                "timestamp": datetime.utcnow().isoformat()
            }
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "not_ready",
                    "service": settings.service_name,
                    "database": "disconnected",
                    "error": str(e),
                    "timestamp": datetime.utcnow().isoformat()
                }
            )

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": settings.service_name,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "ready": "/ready"
        }

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed or missing fields are answered with 400"""
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        logger.warning(f"Validation error on {request.method} {request.url.path}: {errors}")

        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request", "errors": errors}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "type": exc.__class__.__name__
            }
        )

    return app


app = create_app()


def run():
    """Serve the application with uvicorn"""
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.debug,
        log_level=default_settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
