"""The wrapper's operations: initdb, tune, run, admin and the version report.

Each function takes an already-resolved :class:`DataDir` and
:class:`ContainerRuntime`, so they can be driven without the CLI.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from pgbox._log import get_logger
from pgbox._paths import restrict_tree
from pgbox.container import (
    CommandFailed,
    ContainerRuntime,
    run_checked,
    run_command,
)
from pgbox.datadir import (
    CONTAINER_CONF_FILE,
    CONTAINER_DATA_DIR,
    SKELETON_CONF_DIR,
    SKELETON_SSL_CERT,
    SKELETON_SSL_KEY,
    STAGING_DIR,
    DataDir,
    DataDirError,
)

logger = get_logger("operations")

ENGINE_BINARY = "postgres"
ENGINE_CTL_BINARY = "pg_ctl"
CLIENT_BINARY = "psql"
CLIENT_DATABASE = "postgres"
TUNE_BINARY = "timescaledb-tune"


# ---------------------------------------------------------------------------
# Command builders
# ---------------------------------------------------------------------------


def build_initdb_commands(data_dir: DataDir, runtime: ContainerRuntime) -> list[list[str]]:
    """The four container invocations initdb runs, in order."""
    staging = [data_dir.staging_mount()]
    return [
        runtime.exec_command(
            ["cp", SKELETON_SSL_KEY, f"{STAGING_DIR}/etc/ssl/private/"], staging
        ),
        runtime.exec_command(
            ["cp", SKELETON_SSL_CERT, f"{STAGING_DIR}/etc/ssl/certs/"], staging
        ),
        runtime.exec_command(
            ["cp", "-a", f"{SKELETON_CONF_DIR}/.", f"{STAGING_DIR}/etc/postgresql/"], staging
        ),
        runtime.exec_command(
            [ENGINE_CTL_BINARY, "initdb", "-D", CONTAINER_DATA_DIR], data_dir.bind_mounts()
        ),
    ]


def build_tune_command(
    data_dir: DataDir, opts: Sequence[str], runtime: ContainerRuntime
) -> list[str]:
    return runtime.exec_command(
        [TUNE_BINARY, f"--conf-path={CONTAINER_CONF_FILE}", *opts],
        data_dir.bind_mounts(),
    )


def build_run_command(
    data_dir: DataDir, opts: Sequence[str], runtime: ContainerRuntime
) -> list[str]:
    # config_file goes last: the engine lets the last -c for a setting win.
    return runtime.exec_command(
        [ENGINE_BINARY, *opts, "-c", f"config_file={CONTAINER_CONF_FILE}"],
        data_dir.bind_mounts(),
    )


def build_admin_command(
    data_dir: DataDir, opts: Sequence[str], runtime: ContainerRuntime
) -> list[str]:
    port = data_dir.read_port()
    return runtime.exec_command(
        [CLIENT_BINARY, CLIENT_DATABASE, "-p", port, *opts],
        data_dir.bind_mounts(),
    )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def init_data_dir(data_dir: DataDir, runtime: ContainerRuntime) -> Path:
    """Create and populate a new data directory. Returns the stats directory.

    Steps stop at the first failure and nothing is rolled back, so a failed
    run leaves a partial tree that blocks the next initdb at the same path.

    Raises:
        DataDirError: the directory exists, or the engine wrote no version.
        ContainerError: the runtime or image is unusable, or a host path cannot
            be bound (checked before anything is created).
        CommandFailed: a container step exited non-zero.
    """
    runtime.check_available()
    commands = build_initdb_commands(data_dir, runtime)
    data_dir.create_layout()
    try:
        for cmd in commands:
            run_checked(cmd)
        version = data_dir.read_engine_version()
        stats_dir = data_dir.stats_dir(version)
        stats_dir.mkdir(exist_ok=True)
    except (CommandFailed, DataDirError):
        logger.warning(
            "initdb aborted; remove the partial data directory before retrying: %s",
            data_dir.root,
        )
        raise
    restrict_tree(data_dir.etc_dir)
    logger.debug("Initialized %s (engine %s)", data_dir.root, version)
    return stats_dir


def tune(data_dir: DataDir, opts: Sequence[str], runtime: ContainerRuntime) -> int:
    """Rewrite postgresql.conf with the external tuner. Returns its exit code."""
    runtime.check_available()
    return run_command(build_tune_command(data_dir, opts, runtime))


def run_server(data_dir: DataDir, opts: Sequence[str], runtime: ContainerRuntime) -> int:
    """Run the engine in the foreground. Returns its exit code."""
    runtime.check_available()
    return run_command(build_run_command(data_dir, opts, runtime))


def admin(
    data_dir: DataDir,
    opts: Sequence[str],
    runtime: ContainerRuntime,
    *,
    echo: Callable[[list[str]], None] | None = None,
) -> int:
    """Open psql on the configured port. *echo* sees the command before it runs."""
    runtime.check_available()
    cmd = build_admin_command(data_dir, opts, runtime)
    if echo is not None:
        echo(cmd)
    return run_command(cmd)


def report_versions(runtime: ContainerRuntime) -> int:
    """Print the runtime and engine versions.

    Returns 0, or the exit code of the first query that failed.
    """
    runtime.check_available()
    runtime_rc = run_command(runtime.version_command())
    engine_rc = run_command(runtime.exec_command([ENGINE_BINARY, "--version"]))
    return runtime_rc or engine_rc
