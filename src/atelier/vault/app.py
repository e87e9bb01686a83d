"""Credential Vault - a credential-injecting reverse proxy.

The vault lets the Gallery API (or any local tool) call AI providers while
holding only placeholder keys.  Every provider in the descriptor table gets
an inbound prefix; a request below it is forwarded to the provider's origin
with the real credential attached.

Forwarding rules
----------------
- the prefix is stripped; the rest of the path, the query string, the method
  and the body are forwarded unchanged
- ``Host`` and hop-by-hop headers are dropped so httpx sets them for the
  upstream origin
- the provider's credential header is set (replacing any placeholder the
  caller sent)
- without a configured credential the request is forwarded as-is and a
  warning is logged: the provider's own auth error reaches the caller
- the upstream status, headers and body are relayed unchanged; there is no
  retry and no timeout override

Endpoints
---------
========  ==========================  =====================================
Method    Path                        Purpose
========  ==========================  =====================================
GET       ``/``                       Status and names of loaded credentials
ANY       ``/proxy/{provider}``       Forward to the provider's origin root
ANY       ``/proxy/{provider}/...``   Forward to the provider
========  ==========================  =====================================

Usage
-----
CLI (installed entry point)::

    atelier-vault
    atelier-vault --migrate-from ../.env
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from atelier import __version__
from atelier.core.config import AtelierConfig, config
from atelier.core.errors import StorageFailure
from atelier.vault.credentials import CredentialSet, load_credentials, migrate_credentials
from atelier.vault.providers import DEFAULT_PROVIDERS, ProviderDescriptor

logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    }
)

# httpx decodes compressed bodies, so the encoding header no longer applies.
RESPONSE_SKIP_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding"}


def build_upstream_headers(
    headers: Iterable[tuple[str, str]],
    provider: ProviderDescriptor,
    secret: str | None,
) -> dict[str, str]:
    """Copy inbound headers for the upstream request and inject the credential.

    Args:
        headers: Inbound header pairs.
        provider: Target provider.
        secret: The provider's credential, or ``None`` to forward unchanged.

    Returns:
        Headers for the upstream request.
    """
    outbound = {
        name: value for name, value in headers if name.lower() not in HOP_BY_HOP_HEADERS
    }
    if secret:
        for name in [n for n in outbound if n.lower() == provider.credential_header.lower()]:
            del outbound[name]
        outbound[provider.credential_header] = provider.credential_value(secret)
    return outbound


def create_vault_app(
    credentials: CredentialSet,
    providers: Iterable[ProviderDescriptor] = DEFAULT_PROVIDERS,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the vault application.

    Args:
        credentials: Credentials loaded at startup.
        providers: Provider descriptor table.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).

    Returns:
        A configured FastAPI application.
    """
    provider_table = {provider.name: provider for provider in providers}

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.http = httpx.AsyncClient(transport=transport)
        logger.info(
            "Credential vault proxying: "
            + ", ".join(f"{p.path_prefix} -> {p.upstream_origin}" for p in provider_table.values())
        )

        yield

        await app.state.http.aclose()

    app = FastAPI(
        title="Atelier Credential Vault",
        description="Injects provider credentials into proxied API requests.",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.credentials = credentials
    app.state.providers = provider_table

    @app.get("/")
    async def status() -> dict:
        """Report that the vault is up and which credentials are loaded."""
        return {
            "status": "Credential vault is running",
            "keys_loaded": credentials.loaded_names(),
        }

    async def forward(provider_name: str, path: str, request: Request) -> Response:
        """Forward one request to *provider_name* with its credential attached."""
        provider = provider_table.get(provider_name)
        if provider is None:
            return JSONResponse(
                status_code=404, content={"error": f"Unknown provider: {provider_name}"}
            )

        secret = credentials.get(provider.name)
        if not secret:
            logger.warning(f"Missing {provider.credential_key} in vault, forwarding without it")

        url = provider.upstream_url(path, request.url.query)
        headers = build_upstream_headers(request.headers.items(), provider, secret)
        body = await request.body()
        logger.info(f"Proxied {provider.name} request: {request.method} /{path}")

        try:
            upstream = await request.app.state.http.request(
                request.method, url, headers=headers, content=body
            )
        except httpx.TransportError as e:
            logger.error(f"Upstream {provider.name} unreachable: {e}")
            return JSONResponse(
                status_code=502, content={"error": f"Upstream {provider.name} is unreachable"}
            )

        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in upstream.headers.multi_items():
            if name.lower() not in RESPONSE_SKIP_HEADERS:
                response.headers.append(name, value)
        return response

    @app.api_route("/proxy/{provider_name}", methods=PROXY_METHODS)
    async def proxy_root(provider_name: str, request: Request) -> Response:
        """Forward a request for the provider's origin root."""
        return await forward(provider_name, "", request)

    @app.api_route("/proxy/{provider_name}/{path:path}", methods=PROXY_METHODS)
    async def proxy(provider_name: str, path: str, request: Request) -> Response:
        return await forward(provider_name, path, request)

    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None, vault_config: AtelierConfig = config) -> None:
    """Load credentials and serve the vault with uvicorn.

    Registered as the ``atelier-vault`` console script.  A credential file
    that cannot be created or read is fatal.
    """
    import uvicorn

    parser = argparse.ArgumentParser(prog="atelier-vault", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--migrate-from",
        metavar="PATH",
        help="copy a legacy .env file into the vault credential file and exit",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=vault_config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        if args.migrate_from:
            migrate_credentials(args.migrate_from, vault_config.vault_credentials_file)
            return
        credentials = load_credentials(vault_config.vault_credentials_file)
    except StorageFailure as e:
        logger.error(str(e))
        sys.exit(1)

    uvicorn.run(
        create_vault_app(credentials),
        host=vault_config.vault_host,
        port=vault_config.vault_port,
    )


if __name__ == "__main__":
    main()
