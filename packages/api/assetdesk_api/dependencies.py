"""
Dependency injection for the AssetDesk API.

Components are built once in the application lifespan and kept on
`app.state`; these providers hand them to the routers.
"""

from fastapi import Request

from assetdesk.domain.components.asset_enrichment import AssetEnrichmentEngine
from assetdesk.domain.components.asset_lifecycle import AssetLifecycleManager
from assetdesk.domain.components.asset_overview import AssetOverview
from assetdesk.domain.components.department_directory import DepartmentDirectory
from assetdesk.domain.components.incident_analytics import IncidentAnalytics
from assetdesk.domain.components.incident_triage import IncidentTriageWorkflow
from assetdesk.domain.interfaces.document_store import DocumentStore
from assetdesk.infrastructure.config.settings import AppSettings


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_enrichment_engine(request: Request) -> AssetEnrichmentEngine:
    return request.app.state.enrichment_engine


def get_lifecycle_manager(request: Request) -> AssetLifecycleManager:
    return request.app.state.lifecycle_manager


def get_asset_overview(request: Request) -> AssetOverview:
    return request.app.state.asset_overview


def get_triage_workflow(request: Request) -> IncidentTriageWorkflow:
    return request.app.state.triage_workflow


def get_department_directory(request: Request) -> DepartmentDirectory:
    return request.app.state.department_directory


def get_incident_analytics(request: Request) -> IncidentAnalytics:
    return request.app.state.incident_analytics
