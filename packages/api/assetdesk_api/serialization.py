"""JSON shaping shared by the routers."""

from typing import Any

from pydantic import BaseModel

from assetdesk.domain.models.asset import AssetView


def to_json(model: BaseModel) -> dict[str, Any]:
    """Dump a domain model for a response, exposing `id` as `_id`."""
    data = model.model_dump(mode="json")
    if "id" in data:
        data["_id"] = data.pop("id")
    return data


def asset_view_json(view: AssetView) -> dict[str, Any]:
    """Asset view body; `location` is omitted when the state hides it."""
    data = to_json(view)
    if data.get("location") is None:
        data.pop("location", None)
    return data
