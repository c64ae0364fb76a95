"""FastAPI application entry point for the AssetDesk API."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from assetdesk.domain.components.asset_enrichment import AssetEnrichmentEngine
from assetdesk.domain.components.asset_lifecycle import AssetLifecycleManager
from assetdesk.domain.components.asset_overview import AssetOverview
from assetdesk.domain.components.department_directory import DepartmentDirectory
from assetdesk.domain.components.incident_analytics import IncidentAnalytics
from assetdesk.domain.components.incident_triage import IncidentTriageWorkflow
from assetdesk.domain.interfaces.document_store import DocumentStore, DocumentStoreError
from assetdesk.domain.interfaces.suggestion_provider import SuggestionProvider
from assetdesk.domain.models.system_error import AssetDeskError, ErrorCategory
from assetdesk.infrastructure.adapters.groq_adapter import GroqSuggestionAdapter
from assetdesk.infrastructure.config.seed import seed_from_file
from assetdesk.infrastructure.config.settings import AppSettings
from assetdesk.infrastructure.observability.logger import DefaultObservabilityManager
from assetdesk.infrastructure.state_store.memory_store import InMemoryDocumentStore
from assetdesk.infrastructure.state_store.mongo_store import MongoDocumentStore
from assetdesk_api.api import (
    administrators,
    assets,
    dashboard,
    departments,
    health,
    incidents,
    suggestion,
)
from assetdesk_api.middleware.cors import CORSMiddleware

logger = structlog.get_logger(__name__)

STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.ValidationError: 400,
    ErrorCategory.InvalidTransitionError: 400,
    ErrorCategory.NotFoundError: 404,
}
"""HTTP status per domain error category; anything else is a 500."""

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


def build_document_store(settings: AppSettings) -> DocumentStore:
    """Create the DocumentStore selected by `store_backend`."""
    if settings.store_backend == "memory":
        return InMemoryDocumentStore()
    return MongoDocumentStore(
        connection_url=settings.mongodb_url,
        database_name=settings.database_name,
        max_pool_size=settings.mongodb_max_pool_size,
        min_pool_size=settings.mongodb_min_pool_size,
        connect_timeout_ms=settings.mongodb_connect_timeout_ms,
        server_selection_timeout_ms=settings.mongodb_server_selection_timeout_ms,
    )


def build_suggestion_provider(settings: AppSettings) -> SuggestionProvider:
    return GroqSuggestionAdapter(
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
        model=settings.groq_model,
        timeout=settings.suggestion_timeout_seconds,
    )


async def cleanup_resources(app: FastAPI) -> None:
    """Close the suggestion provider and the document store.

    Errors are logged and never stop the remaining cleanup.
    """
    logger.info("shutdown_started", message="Beginning graceful shutdown")

    provider = getattr(app.state, "suggestion_provider", None)
    if provider is not None:
        try:
            await provider.close()
            logger.info(
                "shutdown_resource_closed", resource="suggestion_provider", status="success"
            )
        except Exception as e:
            logger.warning(
                "shutdown_resource_error",
                resource="suggestion_provider",
                error=str(e),
                status="warning",
            )

    store = getattr(app.state, "document_store", None)
    if store is not None:
        try:
            await store.close()
            logger.info("shutdown_resource_closed", resource="document_store", status="success")
        except Exception as e:
            logger.warning(
                "shutdown_resource_error",
                resource="document_store",
                error=str(e),
                status="warning",
            )

    logger.info("shutdown_completed", message="Graceful shutdown completed successfully")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the store and components on startup; release them on shutdown.

    Yields:
        None: Application runs between startup and shutdown.
    """
    settings: AppSettings = app.state.settings
    observability = DefaultObservabilityManager(
        log_level=settings.log_level, json_format=settings.log_json
    )
    logger.info(
        "application_startup",
        store_backend=settings.store_backend,
        shutdown_timeout_seconds=settings.shutdown_timeout_seconds,
    )

    store: DocumentStore = app.state.document_store or build_document_store(settings)
    await store.initialize()
    app.state.document_store = store
    if settings.seed_file is not None:
        await seed_from_file(store, settings.seed_file)

    provider = app.state.suggestion_provider or build_suggestion_provider(settings)
    app.state.suggestion_provider = provider

    app.state.observability_manager = observability
    app.state.enrichment_engine = AssetEnrichmentEngine(store, observability)
    app.state.lifecycle_manager = AssetLifecycleManager(store, observability)
    app.state.asset_overview = AssetOverview(store)
    app.state.department_directory = DepartmentDirectory(store, observability)
    app.state.incident_analytics = IncidentAnalytics(store)
    app.state.triage_workflow = IncidentTriageWorkflow(
        store,
        observability,
        suggestion_provider=provider,
        elevated_role=settings.elevated_role,
    )

    yield

    logger.info("shutdown_signal_received", message="Shutdown signal received")
    timeout = settings.shutdown_timeout_seconds
    try:
        await asyncio.wait_for(cleanup_resources(app), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "shutdown_timeout_exceeded",
            timeout_seconds=timeout,
            message=f"Shutdown timeout ({timeout}s) exceeded, forcing exit",
        )
    except Exception as e:
        logger.error("shutdown_error", error=str(e), message="Unexpected error during shutdown")


async def handle_domain_error(request: Request, exc: AssetDeskError) -> JSONResponse:
    status_code = STATUS_BY_CATEGORY.get(exc.category, 500)
    if status_code == 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            category=exc.category.value,
            error=exc.message,
        )
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def handle_store_error(request: Request, exc: DocumentStoreError) -> JSONResponse:
    logger.error("document_store_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "Invalid value")
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid {field}: {message}" if field else message},
    )


def create_app(
    settings: AppSettings | None = None,
    document_store: DocumentStore | None = None,
    suggestion_provider: SuggestionProvider | None = None,
) -> FastAPI:
    """Create the AssetDesk FastAPI application.

    Args:
        settings: Application settings. Defaults to `AppSettings()` (environment).
        document_store: Prebuilt store; when None, one is built from settings
            on startup.
        suggestion_provider: Prebuilt suggestion provider; when None, the Groq
            adapter is built from settings on startup.
    """
    settings = settings or AppSettings()
    app = FastAPI(
        title="AssetDesk API",
        version="0.1.0",
        description="IT asset and incident tracking backend",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.document_store = document_store
    app.state.suggestion_provider = suggestion_provider

    app.add_middleware(CORSMiddleware, allowed_origins=settings.cors_origins)

    app.add_exception_handler(AssetDeskError, handle_domain_error)
    app.add_exception_handler(DocumentStoreError, handle_store_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    app.include_router(assets.router, prefix="/api/assets", tags=["assets"])
    app.include_router(incidents.router, prefix="/api/incidents", tags=["incidents"])
    app.include_router(suggestion.router, prefix="/api/suggestion", tags=["suggestion"])
    app.include_router(departments.router, prefix="/api/departments", tags=["departments"])
    app.include_router(
        administrators.router, prefix="/api/administrators", tags=["administrators"]
    )
    app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
    app.include_router(health.router, prefix="/api")
    return app


app = create_app()
