"""Pydantic request models for the Gallery API.

Field names on the wire are camelCase (``imageBase64``) to match the browser
UI; Python code uses snake_case attributes.  Models are strict so a value of
the wrong JSON type (e.g. a number for ``title``) is rejected rather than
coerced.  Length limits, the status enum, tag lists and the image payload are
checked by the validation gate through each model's ``check()`` method.

Models
------
GenerateRequest
    Payload for ``POST /api/ai/generate``.
SaveRequest
    Payload for ``POST /api/save``.
CMSUploadRequest
    Payload for ``POST /api/cms/upload``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from atelier.core.records import ArtworkRecord
from atelier.core.validation import (
    LONG_TEXT_MAX,
    SHORT_TEXT_MAX,
    ImagePayload,
    check_generation_type,
    check_identifier,
    check_image,
    check_price,
    check_status,
    check_string,
    check_tags,
)

_REQUEST_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)


class GenerateRequest(BaseModel):
    """Request body for ``POST /api/ai/generate``.

    Attributes:
        type: What to draft: ``title``, ``story`` or ``tags``.
        context: Optional free-text hints passed to the model.
        image: Inline ``data:image/...;base64,`` payload.
    """

    model_config = _REQUEST_CONFIG

    type: str = Field(..., description="One of 'title', 'story', 'tags'.")
    context: str | None = Field(default=None, description="Optional hints for the model.")
    image: str = Field(..., description="data:image/<subtype>;base64 payload.")

    def check(self) -> tuple[str, str, ImagePayload]:
        """Run the validation gate.

        Returns:
            ``(type, context, image)`` with the image decoded.

        Raises:
            InvalidInput: On the first failing field.
        """
        generation_type = check_generation_type("type", self.type).raise_for_failure()
        context = check_string("context", self.context, LONG_TEXT_MAX).raise_for_failure()
        image = check_image("image", self.image).raise_for_failure()
        return generation_type, context, image


class ArtworkFields(BaseModel):
    """Artwork metadata shared by the save and CMS upload payloads."""

    model_config = _REQUEST_CONFIG

    id: str = Field(..., description="Client-generated artwork identifier.")
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    price: str | None = None
    dimensions: str | None = None
    medium: str | None = None
    status: str = Field(default="Available", description="Available, Sold, Reserved or NFS.")

    def check_fields(self, *, title_required: bool = False) -> dict:
        """Run the validation gate over the metadata fields.

        Returns:
            Normalised field values keyed by snake_case attribute name.

        Raises:
            InvalidInput: On the first failing field.
        """
        return {
            "id": check_identifier("id", self.id).raise_for_failure(),
            "title": check_string(
                "title", self.title, SHORT_TEXT_MAX, required=title_required
            ).raise_for_failure(),
            "description": check_string(
                "description", self.description, LONG_TEXT_MAX
            ).raise_for_failure(),
            "tags": check_tags("tags", self.tags).raise_for_failure(),
            "price": check_price("price", self.price).raise_for_failure(),
            "dimensions": check_string(
                "dimensions", self.dimensions, SHORT_TEXT_MAX
            ).raise_for_failure(),
            "medium": check_string("medium", self.medium, SHORT_TEXT_MAX).raise_for_failure(),
            "status": check_status("status", self.status).raise_for_failure(),
        }


class SaveRequest(ArtworkFields):
    """Request body for ``POST /api/save``.

    Attributes:
        image_base64: Inline image payload (``imageBase64`` on the wire).
    """

    image_base64: str = Field(..., description="data:image/<subtype>;base64 payload.")

    def check(self) -> tuple[ArtworkRecord, ImagePayload]:
        """Validate and split the payload into a record and its image."""
        fields = self.check_fields(title_required=True)
        image = check_image("imageBase64", self.image_base64).raise_for_failure()
        return ArtworkRecord(**fields), image


class CMSUploadRequest(ArtworkFields):
    """Request body for ``POST /api/cms/upload``."""

    def check(self) -> dict:
        return self.check_fields()
