"""Tests for atelier.core.config - configuration management.

Tests cover:
- Default values for all configuration fields.
- Environment variable overrides via the ATELIER_ prefix.
- Derived storage paths.
- Pydantic validation constraints (port range, log level literals, etc.).
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from atelier.core.config import AtelierConfig


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any ATELIER_* variables inherited from the shell."""
    for name in list(os.environ):
        if name.upper().startswith("ATELIER_"):
            monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    """Verify that AtelierConfig provides sensible defaults."""

    def test_default_ports(self, clean_env):
        cfg = AtelierConfig(_env_file=None)
        assert cfg.server_port == 3000
        assert cfg.vault_port == 9999

    def test_vault_enabled_by_default(self, clean_env):
        cfg = AtelierConfig(_env_file=None)
        assert cfg.vault_enabled is True
        assert cfg.vault_url == "http://localhost:9999"

    def test_default_rate_limits(self, clean_env):
        cfg = AtelierConfig(_env_file=None)
        assert cfg.rate_limit_max_requests == 20
        assert cfg.rate_limit_window_seconds == 60

    def test_default_cms_collection(self, clean_env):
        cfg = AtelierConfig(_env_file=None)
        assert cfg.cms_collection == "ArtGallery"
        assert cfg.cms_api_key == ""

    def test_default_model(self, clean_env):
        assert AtelierConfig(_env_file=None).gemini_model == "gemini-1.5-flash"

    def test_config_does_not_create_directories(self, clean_env, temp_dir: Path):
        AtelierConfig(_env_file=None, storage_dir=temp_dir / "not-yet")
        assert not (temp_dir / "not-yet").exists()


class TestConfigPaths:
    """Verify derived storage paths."""

    def test_storage_layout(self, test_config: AtelierConfig):
        root = test_config.storage_dir
        assert test_config.images_dir == root / "images"
        assert test_config.data_dir == root / "data"
        assert test_config.manifest_path == root / "manifest.json"
        assert test_config.csv_path == root / "bulk_import.csv"


class TestConfigEnvironment:
    """Verify ATELIER_* environment overrides."""

    def test_env_overrides(self, clean_env, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("ATELIER_STORAGE_DIR", str(temp_dir / "env-gallery"))
        monkeypatch.setenv("ATELIER_VAULT_ENABLED", "false")
        monkeypatch.setenv("ATELIER_RATE_LIMIT_MAX_REQUESTS", "5")

        cfg = AtelierConfig(_env_file=None)

        assert cfg.storage_dir == temp_dir / "env-gallery"
        assert cfg.vault_enabled is False
        assert cfg.rate_limit_max_requests == 5

    def test_env_prefix_is_case_insensitive(self, clean_env, monkeypatch):
        monkeypatch.setenv("atelier_cms_site_id", "site-from-env")
        assert AtelierConfig(_env_file=None).cms_site_id == "site-from-env"


class TestConfigValidation:
    """Verify Pydantic constraints."""

    def test_port_out_of_range(self, clean_env):
        with pytest.raises(ValidationError):
            AtelierConfig(_env_file=None, server_port=70000)

    def test_zero_rate_limit_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            AtelierConfig(_env_file=None, rate_limit_max_requests=0)

    def test_unknown_log_level_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            AtelierConfig(_env_file=None, log_level="CHATTY")
