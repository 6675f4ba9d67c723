import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from soudan.config import Settings, settings as default_settings
from soudan.exception_handlers import register_exception_handlers
from soudan.middleware.logging import StructuredLoggingMiddleware
from soudan.routes import comments
from soudan.services.page_verifier import PageVerifier
from soudan.services.submission_pipeline import SubmissionPipeline
from soudan.services.tenant_registry import TenantRegistry

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    registry: TenantRegistry | None = None,
    verifier: PageVerifier | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    The tenant registry is built here, so a configuration without domains
    fails before the server ever starts.

    Raises:
        ConfigurationError: if no tenant domains are configured
    """
    settings = settings or default_settings
    registry = registry or TenantRegistry.from_domains(
        settings.domains,
        testing=settings.testing,
        data_dir=settings.data_dir,
    )
    verifier = verifier or PageVerifier(timeout_seconds=settings.fetch_timeout_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up the application...")
        await registry.init_stores()
        logger.info("Comment tables created (if not existing).")
        yield
        logger.info("Shutting down the application...")
        await verifier.aclose()
        await registry.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant comment hosting backend",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.pipeline = SubmissionPipeline(registry, verifier)

    # The widget is embedded on every tenant's pages
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(StructuredLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(comments.router)

    if settings.testing:
        logger.info("Running in testing mode (in-memory databases)")

    return app
