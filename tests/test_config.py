#!/usr/bin/env python3
"""Tests for settings and the collaborator factory."""

import pydantic
import pytest

from kmcars import LocalIdentity, YamlBackend
from kmcars.config import Settings
from kmcars.connect import connect

ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "KMCARS_BACKEND",
    "KMCARS_DATA_FILE",
    "DUE_SOON_DAYS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Tests for Settings."""

    def test_supabase_requires_credentials(self):
        with pytest.raises(pydantic.ValidationError) as exc:
            Settings(_env_file=None)
        assert "SUPABASE_URL" in str(exc.value)

    def test_supabase_from_environment(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        settings = Settings(_env_file=None)
        assert settings.KMCARS_BACKEND == "supabase"
        assert settings.SUPABASE_URL == "https://example.supabase.co"

    def test_yaml_backend_needs_no_credentials(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KMCARS_BACKEND", "yaml")
        monkeypatch.setenv("KMCARS_DATA_FILE", str(tmp_path / "data.yaml"))
        settings = Settings(_env_file=None)
        assert settings.KMCARS_DATA_FILE == tmp_path / "data.yaml"

    def test_defaults(self):
        settings = Settings(_env_file=None, KMCARS_BACKEND="yaml")
        assert settings.DUE_SOON_DAYS == 30
        assert settings.DUE_SOON_KM == 1000
        assert settings.CATALOG_TTL_SECONDS == 86400

    def test_thresholds_from_environment(self, monkeypatch):
        monkeypatch.setenv("DUE_SOON_DAYS", "45")
        assert Settings(_env_file=None, KMCARS_BACKEND="yaml").DUE_SOON_DAYS == 45

    def test_unknown_backend(self):
        with pytest.raises(pydantic.ValidationError):
            Settings(_env_file=None, KMCARS_BACKEND="sqlite")

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("KMCARS_BACKEND=yaml\nLOG_LEVEL=DEBUG\n")
        settings = Settings(_env_file=env_file)
        assert settings.LOG_LEVEL == "DEBUG"


class TestConnect:
    """Tests for connect."""

    def test_yaml_backend(self, tmp_path):
        settings = Settings(_env_file=None, KMCARS_BACKEND="yaml", KMCARS_DATA_FILE=tmp_path / "data.yaml")
        backend, identity = connect(settings)
        assert isinstance(backend, YamlBackend)
        assert isinstance(identity, LocalIdentity)
        assert (tmp_path / "data.yaml").exists()
