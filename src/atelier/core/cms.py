"""Push artwork metadata to the Wix CMS.

Items are inserted into a Wix Data collection (``ArtGallery`` by default),
which must already exist on the site.  Images are not uploaded; they are
attached manually in the CMS or through the ``bulk_import.csv`` export.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation

import httpx

from atelier.core.config import AtelierConfig
from atelier.core.errors import UpstreamRejected, UpstreamUnavailable

logger = logging.getLogger(__name__)

CMS_FAILED = (
    "CMS integration failed. Ensure the collection exists and the API key has permissions."
)


def parse_price(price: str | None) -> float | None:
    """Convert a price string to a float, or ``None`` when empty or unparseable."""
    if not price or not price.strip():
        return None
    try:
        amount = float(Decimal(price.strip()))
    except InvalidOperation:
        return None
    return amount if math.isfinite(amount) else None


class CMSClient:
    """Async client for the Wix Data items API.

    Args:
        config: Application configuration (CMS credentials and collection).
        http: Shared ``httpx.AsyncClient``; owned by the application lifespan.
    """

    def __init__(self, config: AtelierConfig, http: httpx.AsyncClient):
        self.config = config
        self.http = http

    @property
    def endpoint(self) -> str:
        return f"{self.config.cms_api_base.rstrip('/')}/wix-data/v2/items"

    def build_item(self, artwork: dict) -> dict:
        """Map an artwork payload onto the collection's item fields."""
        return {
            "title": artwork.get("title", ""),
            "description": artwork.get("description", ""),
            "tags": list(artwork.get("tags") or []),
            "price": parse_price(artwork.get("price")),
            "dimensions": artwork.get("dimensions", ""),
            "medium": artwork.get("medium", ""),
            "status": artwork.get("status", ""),
            "originalId": artwork["id"],
        }

    async def upload(self, artwork: dict) -> str:
        """Insert *artwork* into the CMS collection.

        Args:
            artwork: Validated artwork fields, including ``id``.

        Returns:
            The id the CMS assigned to the new item.

        Raises:
            UpstreamUnavailable: Credentials missing or CMS unreachable.
            UpstreamRejected: The CMS answered with an error.
        """
        if not self.config.cms_api_key or not self.config.cms_site_id:
            logger.error("CMS upload attempted without ATELIER_CMS_API_KEY/ATELIER_CMS_SITE_ID")
            raise UpstreamUnavailable("Missing CMS credentials")

        headers = {
            "Authorization": self.config.cms_api_key,
            "wix-site-id": self.config.cms_site_id,
            "Content-Type": "application/json",
        }
        body = {
            "dataCollectionId": self.config.cms_collection,
            "dataItem": {"data": self.build_item(artwork)},
        }

        try:
            response = await self.http.post(self.endpoint, headers=headers, json=body)
        except httpx.TransportError as e:
            logger.error(f"Could not reach the CMS: {e}")
            raise UpstreamUnavailable("The CMS is unreachable") from e

        if response.is_error:
            logger.error(
                f"CMS returned {response.status_code} for {artwork['id']}: {response.text[:500]}"
            )
            raise UpstreamRejected(CMS_FAILED)

        try:
            payload = response.json()
            remote_id = payload["dataItem"]["id"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"CMS response did not contain an item id: {e}")
            raise UpstreamRejected(CMS_FAILED) from e

        logger.info(f"Uploaded {artwork['id']} to CMS collection {self.config.cms_collection}")
        return str(remote_id)
