"""Data Directory layout and the host-to-container path mapping.

A data directory holds one instance's configuration, storage, logs and
runtime sockets::

    DATA_DIR/
      etc/ssl/certs       TLS certificate (from the image skeleton)
      etc/ssl/private     TLS key (from the image skeleton)
      etc/postgresql      engine configuration (from the image skeleton)
      var/lib             storage, written by the engine's initdb
      var/log             server logs
      var/run             sockets, pid file and <version>-main.pg_stat_tmp

It counts as initialized as soon as ``DATA_DIR`` exists. Nothing here checks
the tree further; a broken tree fails inside the container.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pgbox.container import BindMount

logger = logging.getLogger(__name__)

REQUIRED_SUBPATHS: tuple[Path, ...] = (
    Path("etc", "ssl", "certs"),
    Path("etc", "ssl", "private"),
    Path("etc", "postgresql"),
    Path("var", "lib"),
    Path("var", "log"),
    Path("var", "run"),
)

# Fixed paths inside the container
CONTAINER_RUN_DIR = "/var/run/postgresql"
CONTAINER_DATA_DIR = "/var/lib/postgresql/data"
CONTAINER_LOG_DIR = "/var/log/postgresql"
CONTAINER_CONF_DIR = "/etc/postgresql"
CONTAINER_SSL_DIR = "/etc/ssl"
CONTAINER_CONF_FILE = f"{CONTAINER_CONF_DIR}/postgresql.conf"

# initdb copies the skeleton through this mount point, since binding etc/ssl
# over /etc/ssl would hide the files being copied.
STAGING_DIR = "/mnt/pgbox"

SKELETON_SSL_KEY = "/etc/ssl/private/ssl-cert-snakeoil.key"
SKELETON_SSL_CERT = "/etc/ssl/certs/ssl-cert-snakeoil.pem"
SKELETON_CONF_DIR = "/etc/postgresql"

CONF_FILENAME = "postgresql.conf"
VERSION_FILENAME = "PG_VERSION"


class DataDirError(Exception):
    """Raised when a data directory precondition does not hold."""


def parse_port(text: str) -> str:
    """Return the port from postgresql.conf text.

    Takes the first line starting with ``port`` and returns its third
    whitespace-separated field (``port = 5433`` -> ``"5433"``). Returns ``""``
    when there is no such line or it has fewer than three fields.
    """
    for line in text.splitlines():
        if line.startswith("port"):
            fields = line.split()
            return fields[2] if len(fields) > 2 else ""
    return ""


@dataclass(frozen=True)
class DataDir:
    root: Path

    @classmethod
    def from_arg(cls, raw: str) -> DataDir:
        """Build a DataDir from a command-line path, made absolute for binding."""
        return cls(Path(raw).expanduser().resolve())

    # -- layout ------------------------------------------------------------

    @property
    def etc_dir(self) -> Path:
        return self.root / "etc"

    @property
    def ssl_dir(self) -> Path:
        return self.root / "etc" / "ssl"

    @property
    def conf_dir(self) -> Path:
        return self.root / "etc" / "postgresql"

    @property
    def conf_file(self) -> Path:
        return self.conf_dir / CONF_FILENAME

    @property
    def lib_dir(self) -> Path:
        return self.root / "var" / "lib"

    @property
    def log_dir(self) -> Path:
        return self.root / "var" / "log"

    @property
    def run_dir(self) -> Path:
        return self.root / "var" / "run"

    def exists(self) -> bool:
        return self.root.exists()

    def stats_dir(self, version: str) -> Path:
        """Engine-version-tagged statistics directory under ``var/run``."""
        return self.run_dir / f"{version}-main.pg_stat_tmp"

    # -- container view ----------------------------------------------------

    def bind_mounts(self) -> tuple[BindMount, ...]:
        """The five host-to-container mappings shared by every engine command."""
        return (
            BindMount(self.run_dir, CONTAINER_RUN_DIR),
            BindMount(self.lib_dir, CONTAINER_DATA_DIR),
            BindMount(self.log_dir, CONTAINER_LOG_DIR),
            BindMount(self.conf_dir, CONTAINER_CONF_DIR),
            BindMount(self.ssl_dir, CONTAINER_SSL_DIR),
        )

    def staging_mount(self) -> BindMount:
        """Mapping of the whole tree to STAGING_DIR, used for skeleton copies."""
        return BindMount(self.root, STAGING_DIR)

    # -- scaffolding and readers -------------------------------------------

    def create_layout(self) -> list[Path]:
        """Create the root and the six required subpaths.

        Raises:
            DataDirError: the root already exists. Nothing is touched then.
        """
        if self.exists():
            raise DataDirError(f"directory already exists: {self.root}")
        self.root.mkdir(parents=True)
        created = []
        for sub in REQUIRED_SUBPATHS:
            path = self.root / sub
            path.mkdir(parents=True, exist_ok=True)
            created.append(path)
        logger.debug("Created data directory layout at %s", self.root)
        return created

    def read_engine_version(self) -> str:
        """Return the version string the engine's initdb wrote into ``var/lib``."""
        version_file = self.lib_dir / VERSION_FILENAME
        try:
            lines = version_file.read_text(errors="replace").splitlines()
        except OSError as e:
            raise DataDirError(f"cannot read engine version from {version_file}: {e}") from e
        version = lines[0].strip() if lines else ""
        if not version:
            raise DataDirError(f"engine version file is empty: {version_file}")
        return version

    def read_port(self) -> str:
        """Return the configured port, or ``""`` if it cannot be determined."""
        try:
            text = self.conf_file.read_text(errors="replace")
        except OSError as e:
            logger.warning("Cannot read %s: %s", self.conf_file, e)
            return ""
        port = parse_port(text)
        if not port:
            logger.warning("No port setting found in %s", self.conf_file)
        return port
