"""Centralized settings for pgbox.

The install root is resolved once: ``PGBOX_HOME`` if set, otherwise the prefix
the running ``postgres`` script lives under (``<prefix>/bin/postgres``).

Settings are layered, later wins:

1. built-in defaults (``singularity``, ``<root>/share/pgbox/postgres.sif``)
2. ``<root>/etc/pgbox.yaml`` (optional; keys ``runtime`` and ``image``)
3. ``PGBOX_RUNTIME`` / ``PGBOX_IMAGE`` environment variables
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

DEFAULT_RUNTIME = "singularity"
IMAGE_RELPATH = Path("share") / "pgbox" / "postgres.sif"
SETTINGS_RELPATH = Path("etc") / "pgbox.yaml"


class ConfigError(Exception):
    """Raised when the wrapper settings are unreadable or invalid."""


def _strip_runtime(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("runtime executable must not be empty")
    return value


class SettingsFile(BaseModel):
    """Shape of the optional ``etc/pgbox.yaml`` file."""

    model_config = ConfigDict(extra="forbid")

    runtime: str | None = None
    image: Path | None = None

    @field_validator("runtime")
    @classmethod
    def _runtime_not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _strip_runtime(v)


class Settings(BaseModel):
    """Resolved wrapper settings."""

    model_config = ConfigDict(frozen=True)

    install_root: Path
    image: Path
    runtime: str = DEFAULT_RUNTIME

    @field_validator("runtime")
    @classmethod
    def _runtime_not_blank(cls, v: str) -> str:
        return _strip_runtime(v)


@lru_cache(maxsize=1)
def get_install_root() -> Path:
    """Return the pgbox install root.

    Resolution order:
    1. ``PGBOX_HOME`` environment variable
    2. two levels above the running script (``<prefix>/bin/postgres`` -> ``<prefix>``)
    """
    env = os.environ.get("PGBOX_HOME")
    if env:
        return Path(env)
    return Path(sys.argv[0]).resolve().parent.parent


def get_settings_path() -> Path:
    return get_install_root() / SETTINGS_RELPATH


def _load_settings_file(path: Path) -> SettingsFile:
    """Read the optional settings file; an absent or empty file means no overrides."""
    if not path.is_file():
        return SettingsFile()
    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return SettingsFile()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    try:
        return SettingsFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Validation failed for {path}:\n{e}") from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Resolve and validate the settings (cached after the first call).

    Raises:
        ConfigError: the settings file or an environment override is invalid.
    """
    root = get_install_root()
    file_settings = _load_settings_file(get_settings_path())

    image = file_settings.image
    if image is not None and not image.is_absolute():
        image = root / image
    env_image = os.environ.get("PGBOX_IMAGE")
    if env_image:
        image = Path(env_image)

    runtime = os.environ.get("PGBOX_RUNTIME") or file_settings.runtime or DEFAULT_RUNTIME

    try:
        return Settings(
            install_root=root,
            image=image or root / IMAGE_RELPATH,
            runtime=runtime,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid pgbox settings:\n{e}") from e


def clear_caches() -> None:
    """Forget the cached install root and settings."""
    get_install_root.cache_clear()
    get_settings.cache_clear()
