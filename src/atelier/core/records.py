"""Persisted artwork record.

Records are written to disk with camelCase keys (``imagePath``,
``fileName``, ``lastUpdated``) because the browser UI and the CSV export
consume those names; Python code uses the snake_case attributes.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ArtworkRecord(BaseModel):
    """One catalogued artwork, as stored in ``data/<id>.json`` and the manifest."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    price: str = ""
    dimensions: str = ""
    medium: str = ""
    status: str = "Available"
    image_path: str = ""
    file_name: str = ""
    last_updated: str = Field(default_factory=utc_timestamp)

    def to_document(self) -> dict:
        """Serialise with the on-disk camelCase keys."""
        return self.model_dump(by_alias=True)
