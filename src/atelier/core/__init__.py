"""Core services for Atelier Catalog.

Modules
-------
config
    Pydantic Settings configuration (``ATELIER_*`` environment variables).
errors
    Error taxonomy mapped onto HTTP status codes.
validation
    Pure validation gate for artwork and AI-generation inputs.
records
    The persisted :class:`ArtworkRecord` model.
manifest
    Manifest upsert and CSV regeneration.
storage
    File-backed artwork store (images, records, manifest).
rate_limit
    Fixed-window rate limiter for AI calls.
generation
    Gemini client for drafting titles, stories and tags.
cms
    Wix Data client for pushing artwork metadata.
"""

from atelier.core.config import AtelierConfig, config
from atelier.core.errors import (
    AtelierError,
    InvalidInput,
    RateLimited,
    StorageFailure,
    UpstreamRejected,
    UpstreamUnavailable,
)

__all__ = [
    "AtelierConfig",
    "config",
    "AtelierError",
    "InvalidInput",
    "RateLimited",
    "StorageFailure",
    "UpstreamRejected",
    "UpstreamUnavailable",
]
