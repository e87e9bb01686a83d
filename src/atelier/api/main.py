"""Atelier Catalog Gallery API - FastAPI Application.

This module defines the Gallery API: the ``create_app()`` factory, the
module-level ``app`` instance served by uvicorn, all REST routes, and the
``main()`` CLI function.

Architecture
------------
- **Configuration** comes from :data:`~atelier.core.config.config`
  (``ATELIER_*`` environment variables).
- **Storage** is an :class:`~atelier.core.storage.ArtworkStore` rooted at the
  configured storage directory: one image and one JSON file per artwork plus
  the manifest and its CSV export.
- **AI drafting** goes through :class:`~atelier.core.generation.GenerationClient`,
  via the credential vault unless it is disabled.
- **CMS upload** goes through :class:`~atelier.core.cms.CMSClient`.
- **Rate limiting** of AI calls uses a :class:`~atelier.core.rate_limit.RateLimiter`
  owned by the app and injected into the handler.

Service objects live on ``app.state`` and are created by the lifespan, so
importing this module does not touch the disk or open connections.

Endpoints
---------
========  =====================  ==========================================
Method    Path                   Purpose
========  =====================  ==========================================
GET       ``/api/health``        Liveness and storage location
POST      ``/api/ai/generate``   Draft a title, story or tags for an image
POST      ``/api/save``          Persist an artwork and update the manifest
POST      ``/api/cms/upload``    Push artwork metadata to the CMS
GET       ``/api/artworks``      List stored artworks
========  =====================  ==========================================

Usage
-----
CLI (installed entry point)::

    atelier

Direct invocation::

    python -m atelier.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from atelier import __version__
from atelier.api.models import CMSUploadRequest, GenerateRequest, SaveRequest
from atelier.core.cms import CMSClient
from atelier.core.config import AtelierConfig, config
from atelier.core.errors import AtelierError, InvalidInput, RateLimited
from atelier.core.generation import GenerationClient
from atelier.core.rate_limit import RateLimiter
from atelier.core.records import utc_timestamp
from atelier.core.storage import ArtworkStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error rendering.
# ---------------------------------------------------------------------------


async def handle_atelier_error(request: Request, exc: AtelierError) -> JSONResponse:
    """Render any taxonomy error as ``{"error": <message>}``."""
    body: dict = {"error": exc.message}
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        body["retryAfter"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report pydantic body errors as :class:`InvalidInput` (400) naming the field."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = [str(part) for part in first.get("loc", ()) if part != "body"]
        field = ".".join(location) or "body"
        message = f"{field}: {first.get('msg', 'is invalid')}"
    else:
        message = "body: is invalid"
    logger.info(f"Rejected request body: {message}")
    return await handle_atelier_error(request, InvalidInput(message))


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_store(request: Request) -> ArtworkStore:
    return request.app.state.store


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_generation_client(request: Request) -> GenerationClient:
    return request.app.state.generation_client


def get_cms_client(request: Request) -> CMSClient:
    return request.app.state.cms_client


def get_config(request: Request) -> AtelierConfig:
    return request.app.state.config


def caller_key(request: Request) -> str:
    """Rate-limit key for the caller: its address."""
    return request.client.host if request.client else "unknown"


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    app_config: AtelierConfig | None = None,
    *,
    rate_limiter: RateLimiter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the Gallery API.

    Args:
        app_config: Configuration to use; defaults to the global ``config``.
        rate_limiter: Rate limiter for AI calls; one is built from the
            configuration when omitted.
        transport: Optional httpx transport for outbound calls (tests pass
            an ``httpx.MockTransport``).

    Returns:
        A configured FastAPI application.
    """
    app_config = app_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the store and the outbound HTTP client; close it on shutdown."""
        app.state.config = app_config
        app.state.store = ArtworkStore(app_config.storage_dir)
        app.state.rate_limiter = rate_limiter or RateLimiter(
            max_requests=app_config.rate_limit_max_requests,
            window_seconds=app_config.rate_limit_window_seconds,
        )
        http = httpx.AsyncClient(transport=transport)
        app.state.generation_client = GenerationClient(app_config, http)
        app.state.cms_client = CMSClient(app_config, http)
        logger.info(
            f"Gallery API started (storage={app_config.storage_dir}, "
            f"vault={'on' if app_config.vault_enabled else 'off'})"
        )

        yield

        await http.aclose()
        logger.info("Gallery API stopped.")

    app = FastAPI(
        title="Atelier Catalog",
        description="Local artwork catalogue with AI drafting and CMS export.",
        version=__version__,
        lifespan=lifespan,
    )

    # The browser UI is served from a different port during development.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AtelierError, handle_atelier_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.get("/api/health")
    async def health(cfg: Annotated[AtelierConfig, Depends(get_config)]) -> dict:
        """Report liveness, the storage root and whether the vault is used."""
        return {
            "status": "ok",
            "timestamp": utc_timestamp(),
            "storageDir": str(cfg.storage_dir),
            "vaultEnabled": cfg.vault_enabled,
        }

    @app.post("/api/ai/generate")
    async def generate(
        req: GenerateRequest,
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
        client: Annotated[GenerationClient, Depends(get_generation_client)],
    ) -> dict:
        """Draft a title, story or tag list for the supplied image.

        Input is validated before the caller's rate-limit budget is spent.

        Raises:
            InvalidInput: 400 for an unknown type or a bad image payload.
            RateLimited: 429 when the caller exhausted its window.
            UpstreamUnavailable: 503 when the vault/provider is unreachable.
            UpstreamRejected: 500 when the provider returns an error.
        """
        generation_type, context, image = req.check()
        limiter.hit(caller_key(request))
        result = await client.generate(generation_type, context, image)
        return {"result": result}

    @app.post("/api/save")
    async def save(
        req: SaveRequest,
        store: Annotated[ArtworkStore, Depends(get_store)],
    ) -> dict:
        """Persist the image, its JSON record and the manifest entry.

        Raises:
            InvalidInput: 400 for any invalid field.
            StorageFailure: 500 when a write fails.
        """
        record, image = req.check()
        stored = store.save(record, image)
        return {"success": True, "path": stored.image_path}

    @app.post("/api/cms/upload")
    async def cms_upload(
        req: CMSUploadRequest,
        client: Annotated[CMSClient, Depends(get_cms_client)],
        cfg: Annotated[AtelierConfig, Depends(get_config)],
    ) -> dict:
        """Insert the artwork's metadata into the CMS collection.

        Raises:
            InvalidInput: 400 for a missing/invalid id or other bad field.
            UpstreamUnavailable: 503 for missing credentials or an unreachable CMS.
            UpstreamRejected: 500 when the CMS returns an error.
        """
        artwork = req.check()
        remote_id = await client.upload(artwork)
        return {
            "success": True,
            "message": f"Uploaded metadata to the '{cfg.cms_collection}' collection",
            "remoteId": remote_id,
        }

    @app.get("/api/artworks")
    async def list_artworks(store: Annotated[ArtworkStore, Depends(get_store)]) -> dict:
        """Return every stored artwork record, newest first."""
        return {"artworks": store.list_artworks()}

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the Gallery API with uvicorn.

    Host and port come from ``ATELIER_SERVER_HOST`` / ``ATELIER_SERVER_PORT``
    (default ``0.0.0.0:3000``).  Registered as the ``atelier`` console script.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(
        "atelier.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
