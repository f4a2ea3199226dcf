"""Tests for the settings module."""

import sys
from pathlib import Path

import pytest

from pgbox.config import (
    DEFAULT_RUNTIME,
    ConfigError,
    Settings,
    get_install_root,
    get_settings,
    get_settings_path,
)


class TestGetInstallRoot:
    def test_pgbox_home_override(self, monkeypatch):
        monkeypatch.setenv("PGBOX_HOME", "/opt/pgbox")
        assert get_install_root() == Path("/opt/pgbox")

    def test_defaults_to_script_prefix(self, monkeypatch, tmp_path):
        script = tmp_path / "prefix" / "bin" / "postgres"
        script.parent.mkdir(parents=True)
        script.write_text("")
        monkeypatch.setattr(sys, "argv", [str(script)])
        assert get_install_root() == (tmp_path / "prefix").resolve()

    def test_resolved_once(self, monkeypatch):
        monkeypatch.setenv("PGBOX_HOME", "/opt/first")
        first = get_install_root()
        monkeypatch.setenv("PGBOX_HOME", "/opt/second")
        assert get_install_root() is first


class TestGetSettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        settings = get_settings()
        assert settings.runtime == DEFAULT_RUNTIME
        assert settings.image == tmp_path / "share" / "pgbox" / "postgres.sif"
        assert settings.install_root == tmp_path

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        monkeypatch.setenv("PGBOX_RUNTIME", "apptainer")
        monkeypatch.setenv("PGBOX_IMAGE", "/images/pg16.sif")
        settings = get_settings()
        assert settings.runtime == "apptainer"
        assert settings.image == Path("/images/pg16.sif")

    def test_settings_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        path = get_settings_path()
        path.parent.mkdir(parents=True)
        path.write_text("runtime: apptainer\nimage: images/pg.sif\n")
        settings = get_settings()
        assert settings.runtime == "apptainer"
        assert settings.image == tmp_path / "images" / "pg.sif"

    def test_env_wins_over_settings_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        monkeypatch.setenv("PGBOX_RUNTIME", "singularity-ce")
        path = get_settings_path()
        path.parent.mkdir(parents=True)
        path.write_text("runtime: apptainer\n")
        assert get_settings().runtime == "singularity-ce"

    def test_empty_settings_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        path = get_settings_path()
        path.parent.mkdir(parents=True)
        path.write_text("")
        assert get_settings().runtime == DEFAULT_RUNTIME

    def test_unknown_key_rejected(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        path = get_settings_path()
        path.parent.mkdir(parents=True)
        path.write_text("runtim: apptainer\n")
        with pytest.raises(ConfigError, match="Validation failed"):
            get_settings()

    def test_non_mapping_rejected(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        path = get_settings_path()
        path.parent.mkdir(parents=True)
        path.write_text("- apptainer\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            get_settings()

    def test_blank_runtime_rejected(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PGBOX_HOME", str(tmp_path))
        monkeypatch.setenv("PGBOX_RUNTIME", "   ")
        with pytest.raises(ConfigError, match="Invalid pgbox settings"):
            get_settings()


class TestSettingsModel:
    def test_frozen(self, tmp_path):
        settings = Settings(install_root=tmp_path, image=tmp_path / "pg.sif")
        with pytest.raises(ValueError):
            settings.runtime = "docker"
