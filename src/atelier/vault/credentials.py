"""Credential storage for the vault.

Credentials live in a dotenv file next to the vault (``vault.env`` by
default).  The file is read once at startup; nothing mutates it at runtime.

On first run the file does not exist yet, so it is created with empty
placeholders for every known key and a warning is logged.  A key left empty
in the file falls back to a process environment variable of the same name.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

from dotenv import dotenv_values

from atelier.core.errors import StorageFailure
from atelier.vault.providers import DEFAULT_PROVIDERS, PLACEHOLDER_KEYS, ProviderDescriptor

logger = logging.getLogger(__name__)

CREDENTIAL_FILE_HEADER = "# Atelier credential vault keys\n"


class CredentialSet:
    """Read-only mapping of provider name to secret.

    Args:
        secrets: Credential values keyed by credential key (e.g. ``GEMINI_API_KEY``).
        providers: Provider table used to map provider names to keys.
    """

    def __init__(
        self,
        secrets: Mapping[str, str],
        providers: Iterable[ProviderDescriptor] = DEFAULT_PROVIDERS,
    ):
        self._secrets = {key: value for key, value in secrets.items() if value}
        self._providers = {provider.name: provider for provider in providers}

    def get(self, provider_name: str) -> str | None:
        """Return the secret for *provider_name*, or ``None`` if not configured."""
        provider = self._providers.get(provider_name)
        if provider is None:
            return None
        return self._secrets.get(provider.credential_key)

    def loaded_names(self) -> list[str]:
        """Names of providers that have a credential, never the values."""
        return [name for name in self._providers if self.get(name)]

    def __repr__(self) -> str:
        return f"CredentialSet(loaded={self.loaded_names()})"


def bootstrap_credential_file(path: Path, keys: Iterable[str] = PLACEHOLDER_KEYS) -> None:
    """Create *path* with an empty placeholder line for each key."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [CREDENTIAL_FILE_HEADER] + [f"{key}=\n" for key in keys]
    path.write_text("".join(lines), encoding="utf-8")


def load_credentials(
    path: Path,
    providers: Iterable[ProviderDescriptor] = DEFAULT_PROVIDERS,
    environ: Mapping[str, str] | None = None,
) -> CredentialSet:
    """Load the vault's credentials, creating the file on first run.

    Args:
        path: Dotenv file holding the credentials.
        providers: Provider table.
        environ: Environment used for fallbacks; defaults to ``os.environ``.

    Returns:
        The loaded :class:`CredentialSet`.

    Raises:
        StorageFailure: If the file cannot be created or read.
    """
    path = Path(path)
    providers = tuple(providers)
    environ = os.environ if environ is None else environ

    if not path.exists():
        try:
            bootstrap_credential_file(path)
        except OSError as e:
            raise StorageFailure(f"Cannot create credential file {path}") from e
        logger.warning(f"Created default credential file at {path}. Please populate it.")

    try:
        with open(path, encoding="utf-8") as handle:
            file_values = dotenv_values(stream=handle)
    except (OSError, UnicodeDecodeError) as e:
        raise StorageFailure(f"Cannot read credential file {path}") from e

    secrets: dict[str, str] = {}
    for provider in providers:
        value = file_values.get(provider.credential_key) or environ.get(provider.credential_key)
        if value:
            secrets[provider.credential_key] = value.strip()
        else:
            logger.warning(f"No credential configured for {provider.name}")

    credentials = CredentialSet(secrets, providers)
    logger.info(f"Loaded credentials for: {', '.join(credentials.loaded_names()) or 'none'}")
    return credentials


def migrate_credentials(source: Path, target: Path) -> None:
    """Copy a legacy dotenv file into the vault credential file.

    Accidental doubled assignments such as ``KEY=KEY=value`` are collapsed
    to ``KEY=value``.

    Raises:
        StorageFailure: If *source* is missing or either file cannot be accessed.
    """
    source, target = Path(source), Path(target)
    if not source.exists():
        raise StorageFailure(f"Could not find legacy credential file {source}")
    try:
        content = source.read_text(encoding="utf-8")
        content = re.sub(r"(?m)^(\w+)=\1=", r"\1=", content)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        raise StorageFailure(f"Could not migrate credentials to {target}") from e
    logger.info(f"Migrated credentials from {source} to {target}")
