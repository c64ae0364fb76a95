"""Domain interfaces for dependency injection."""

from assetdesk.domain.interfaces.document_store import (
    DocumentStore,
    DocumentStoreError,
    IncidentQuery,
)
from assetdesk.domain.interfaces.observability_manager import (
    ObservabilityError,
    ObservabilityManager,
)
from assetdesk.domain.interfaces.suggestion_provider import SuggestionProvider

__all__ = [
    "DocumentStore",
    "DocumentStoreError",
    "IncidentQuery",
    "ObservabilityError",
    "ObservabilityManager",
    "SuggestionProvider",
]
