"""Health endpoint."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.infrastructure.config.settings import AppSettings
from assetdesk_api.dependencies import get_document_store, get_settings

router = APIRouter()


@router.get("/health", response_model=None)
async def health(
    document_store: Annotated[DocumentStore, Depends(get_document_store)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> dict[str, Any] | JSONResponse:
    """Report whether the document store is reachable (503 when it is not)."""
    body = {"store_backend": settings.store_backend}
    if await document_store.check_connection():
        return {"status": "healthy", **body}
    return JSONResponse(status_code=503, content={"status": "unhealthy", **body})
