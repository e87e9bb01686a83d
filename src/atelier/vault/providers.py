"""Provider descriptors for the credential vault.

Each provider the vault can front is a row in :data:`DEFAULT_PROVIDERS`: the
inbound path prefix, the upstream origin, which credential to use and how to
attach it.  A single forwarding routine in :mod:`atelier.vault.app` handles
every provider, so supporting a new one only means adding a descriptor.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProviderDescriptor(BaseModel):
    """How to reach one upstream provider and authenticate against it.

    Attributes:
        name: Short provider name, also the last path segment of the prefix.
        path_prefix: Inbound prefix stripped before forwarding.
        upstream_origin: Scheme and host of the provider's public API.
        credential_key: Name of the credential in the vault's dotenv file.
        credential_header: Header the provider reads the credential from.
        credential_style: ``raw`` sends the key as-is, ``bearer`` sends
            ``Bearer <key>``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path_prefix: str
    upstream_origin: str
    credential_key: str
    credential_header: str
    credential_style: Literal["raw", "bearer"] = Field(default="raw")

    def credential_value(self, secret: str) -> str:
        """Format *secret* the way the provider expects it."""
        if self.credential_style == "bearer":
            return f"Bearer {secret}"
        return secret

    def upstream_url(self, path: str, query: str = "") -> str:
        """Build the upstream URL for an inbound path below the prefix."""
        url = f"{self.upstream_origin.rstrip('/')}/{path.lstrip('/')}"
        return f"{url}?{query}" if query else url


DEFAULT_PROVIDERS: tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        name="anthropic",
        path_prefix="/proxy/anthropic",
        upstream_origin="https://api.anthropic.com",
        credential_key="ANTHROPIC_API_KEY",
        credential_header="x-api-key",
    ),
    ProviderDescriptor(
        name="gemini",
        path_prefix="/proxy/gemini",
        upstream_origin="https://generativelanguage.googleapis.com",
        credential_key="GEMINI_API_KEY",
        credential_header="x-goog-api-key",
    ),
    ProviderDescriptor(
        name="openai",
        path_prefix="/proxy/openai",
        upstream_origin="https://api.openai.com",
        credential_key="OPENAI_API_KEY",
        credential_header="Authorization",
        credential_style="bearer",
    ),
)

# Keys written to a freshly bootstrapped credential file.  The CMS keys are
# not proxied but are kept alongside the provider keys.
PLACEHOLDER_KEYS: tuple[str, ...] = (
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "WIX_API_KEY",
    "WIX_SITE_ID",
)
