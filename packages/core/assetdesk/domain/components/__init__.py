"""Domain components."""

from assetdesk.domain.components.asset_enrichment import AssetEnrichmentEngine, EnrichedAsset
from assetdesk.domain.components.asset_lifecycle import AssetLifecycleManager
from assetdesk.domain.components.asset_overview import AssetOverview, AssetOverviewSummary
from assetdesk.domain.components.department_directory import DepartmentDirectory
from assetdesk.domain.components.incident_triage import IncidentTriageWorkflow

__all__ = [
    "AssetEnrichmentEngine",
    "EnrichedAsset",
    "AssetLifecycleManager",
    "AssetOverview",
    "AssetOverviewSummary",
    "DepartmentDirectory",
    "IncidentTriageWorkflow",
]
