"""Shared test fixtures: isolated settings and a fake container runtime."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from pgbox.config import clear_caches
from pgbox.datadir import CONTAINER_DATA_DIR


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Drop PGBOX_* overrides and the cached settings around each test."""
    for var in ("PGBOX_HOME", "PGBOX_IMAGE", "PGBOX_RUNTIME"):
        monkeypatch.delenv(var, raising=False)
    clear_caches()
    yield
    clear_caches()


@pytest.fixture()
def image(tmp_path, monkeypatch) -> Path:
    """An install root with an image file, selected through PGBOX_HOME."""
    home = tmp_path / "install"
    img = home / "share" / "pgbox" / "postgres.sif"
    img.parent.mkdir(parents=True)
    img.write_bytes(b"SIF")
    monkeypatch.setenv("PGBOX_HOME", str(home))
    return img


@pytest.fixture()
def runtime_on_path():
    with patch("pgbox.container.shutil.which", return_value="/usr/bin/singularity"):
        yield


def bind_targets(cmd: list[str]) -> dict[str, str]:
    """Map container path -> host path for every ``--bind`` in *cmd*."""
    binds = {}
    for flag, value in zip(cmd, cmd[1:], strict=False):
        if flag == "--bind":
            host, container = value.rsplit(":", 1)
            binds[container] = host
    return binds


@pytest.fixture()
def fake_run(image, runtime_on_path):
    """Patch subprocess.run with a fake engine.

    ``pg_ctl initdb`` writes PG_VERSION into the host directory bound at the
    data path. Set ``fake_run.fail_on`` to a program name to make that step
    exit 3, and ``fake_run.version`` to change the version written.
    """

    def _run(cmd, *args, **kwargs):
        if "pg_ctl" in cmd and "initdb" in cmd:
            host = bind_targets(cmd)[CONTAINER_DATA_DIR]
            (Path(host) / "PG_VERSION").write_text(f"{mock.version}\n")
        failing = mock.fail_on
        returncode = 3 if failing is not None and failing in cmd else 0
        return subprocess.CompletedProcess(cmd, returncode)

    with patch("pgbox.container.subprocess.run", side_effect=_run) as mock:
        mock.version = "16"
        mock.fail_on = None
        yield mock


@pytest.fixture()
def commands(fake_run):
    """Callable returning the argv lists passed to subprocess.run so far."""
    return lambda: [c.args[0] for c in fake_run.call_args_list]
