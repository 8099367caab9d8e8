"""
Main FastAPI application.
"""

from dotenv import load_dotenv

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.openapi.docs import get_redoc_html
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.di.container import Container
from .core.utils import get_logger
from .core.observability import setup_observability
from .core.api.exception_handlers import setup_exception_handlers
from .modules.entitlements.api import router as entitlements_router

logger = get_logger(__name__)

APP_VERSION = "1.0.0"

# Initialize DI Container
container = Container()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup: load the tier catalog now so an invalid document fails fast
    catalog = container.entitlements.tier_catalog()
    logger.info(
        "app_starting",
        host=settings.api.host,
        port=settings.api.port,
        db_backend=settings.database.backend,
        catalog_version=catalog.version,
    )

    yield

    # Shutdown
    await container.entitlements.entitlement_cache().aclose()
    if settings.database.backend == "postgres":
        container.core.postgres_db().close()
    logger.info("app_stopped")


# Create FastAPI app
is_production = settings.api.environment == "production"

app = FastAPI(
    title="Lovelock Entitlements API",
    description="Subscription entitlement and usage metering for Lovelock",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.api.debug,
    docs_url=None if is_production else "/docs",
    redoc_url=None,  # Disable default Redoc to use custom CDN
    openapi_url=None if is_production else "/openapi.json",
)

# Setup Observability
setup_observability(app)

# Setup Exception Handlers
setup_exception_handlers(app)

# Attach container to app
app.container = container

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(entitlements_router.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"name": "Lovelock Entitlements API", "version": APP_VERSION, "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.otel.service_name,
        "db_backend": settings.database.backend,
        "catalog_version": container.entitlements.tier_catalog().version,
    }


if not is_production:
    @app.get("/redoc", include_in_schema=False)
    async def redoc_html():
        """Redoc documentation."""
        return get_redoc_html(
            openapi_url=app.openapi_url,
            title=app.title + " - ReDoc",
            redoc_js_url="https://unpkg.com/redoc@latest/bundles/redoc.standalone.js",
        )


if __name__ == "__main__":
    load_dotenv()
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.debug,
    )
