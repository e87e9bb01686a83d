"""Configuration management for Atelier Catalog.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the ATELIER_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (ATELIER_* prefix)
2. .env file in the working directory
3. Default values defined in AtelierConfig

Example .env file:
    ATELIER_STORAGE_DIR=/srv/gallery
    ATELIER_VAULT_ENABLED=false
    ATELIER_GEMINI_API_KEY=...
    ATELIER_CMS_SITE_ID=...

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Both the Gallery API and the Credential Vault read from it; tests build their
own instances pointed at temporary directories.

Usage Example
-------------
    from atelier.core.config import config

    print(config.storage_dir)
    print(config.vault_url)

Directory Management
--------------------
Unlike the storage paths, the configuration does not create anything on disk.
The storage tree (``images/``, ``data/``) is created by
:class:`~atelier.core.storage.ArtworkStore` when the Gallery API starts, so
importing this module never touches the file system.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AtelierConfig(BaseSettings):
    """Main configuration for the Gallery API and the Credential Vault.

    Attributes
    ----------
    Storage:
        storage_dir : Path
            Root of the local gallery database (images, data, manifest, CSV)

    Gallery API server:
        server_host : str
            Bind address for the Gallery API
        server_port : int
            Port for the Gallery API

    Credential Vault:
        vault_enabled : bool
            Route AI calls through the vault instead of calling providers directly
        vault_url : str
            Base URL the Gallery API uses to reach the vault
        vault_host / vault_port
            Bind address and port of the vault process
        vault_credentials_file : Path
            Dotenv file holding the real provider credentials

    AI provider:
        gemini_api_key : str
            Only used when the vault is disabled
        gemini_model : str
            Model name used for ``generateContent``
        gemini_api_base : str
            Public origin of the Gemini API

    CMS:
        cms_api_key / cms_site_id : str
            Wix credentials; both are required for uploads
        cms_collection : str
            Data collection that receives artwork items
        cms_api_base : str
            Public origin of the Wix REST API

    Rate limiting:
        rate_limit_window_seconds : float
            Length of the fixed window for AI generation calls
        rate_limit_max_requests : int
            Calls allowed per caller within one window

    Logging:
        log_level : Literal[...]
            Root log level applied by the ``main()`` entry points
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ATELIER_",
        case_sensitive=False,
    )

    # Storage
    storage_dir: Path = Field(
        default=Path("local_gallery_db"),
        description="Root directory for images, data, manifest and CSV export",
    )

    # Gallery API server
    server_host: str = Field(default="0.0.0.0", description="Gallery API bind address")
    server_port: int = Field(default=3000, ge=1, le=65535)

    # Credential vault
    vault_enabled: bool = Field(
        default=True,
        description="Send AI requests through the credential vault",
    )
    vault_url: str = Field(
        default="http://localhost:9999",
        description="Base URL of the credential vault as seen by the Gallery API",
    )
    vault_host: str = Field(default="127.0.0.1", description="Vault bind address")
    vault_port: int = Field(default=9999, ge=1, le=65535)
    vault_credentials_file: Path = Field(
        default=Path("vault.env"),
        description="Dotenv file with the real provider credentials",
    )

    # AI provider (direct mode)
    gemini_api_key: str = Field(default="", description="Gemini key for direct calls")
    gemini_model: str = Field(default="gemini-1.5-flash")
    gemini_api_base: str = Field(default="https://generativelanguage.googleapis.com")

    # CMS
    cms_api_key: str = Field(default="")
    cms_site_id: str = Field(default="")
    cms_collection: str = Field(default="ArtGallery")
    cms_api_base: str = Field(default="https://www.wixapis.com")

    # Rate limiting
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_max_requests: int = Field(default=20, ge=1)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def images_dir(self) -> Path:
        """Directory holding one image file per artwork."""
        return self.storage_dir / "images"

    @property
    def data_dir(self) -> Path:
        """Directory holding one JSON record per artwork."""
        return self.storage_dir / "data"

    @property
    def manifest_path(self) -> Path:
        return self.storage_dir / "manifest.json"

    @property
    def csv_path(self) -> Path:
        return self.storage_dir / "bulk_import.csv"


# Global configuration instance, loaded from ATELIER_* variables and .env.
config = AtelierConfig()
