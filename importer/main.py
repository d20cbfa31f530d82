"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from importer.api.v1 import imports
from importer.core.config import settings
from importer.core.logging import get_logger, setup_logging
from importer.db.session import build_engine, build_session_factory, create_tables
from importer.pipeline.service import ImportService
from importer.processors.registry import build_default_registry
from importer.repositories import build_stores

API_PREFIX = "/api/v1"


def create_app(service: ImportService | None = None) -> FastAPI:
    """
    Build the application.

    When `service` is given it is started and stopped by the lifespan but
    no database is touched (tests pass one wired to in-memory stores).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle hooks."""
        setup_logging(
            "DEBUG" if settings.APP_ENV == "development" else settings.LOG_LEVEL,
            json_logs=settings.LOG_JSON,
        )
        logger = get_logger("startup")
        logger.info("Application starting", env=settings.APP_ENV)

        engine = None
        import_service = service
        if import_service is None:
            engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
            await create_tables(engine)
            stores = build_stores(build_session_factory(engine))
            import_service = ImportService(build_default_registry(stores), settings)

        await import_service.start()
        app.state.import_service = import_service
        yield

        logger.info("Application shutting down")
        await import_service.shutdown(drain=True)
        app.state.import_service = None
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="Entity Import API",
        description="Asynchronous bulk import of clients, products and users",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(imports.router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Public health-check endpoint."""
        return {"status": "ok", "env": settings.APP_ENV}

    return app


app = create_app()
