"""Container command construction and execution.

Commands run through a Singularity/Apptainer-style runtime::

    <runtime> exec --bind HOST:CONTAINER ... <image> <command...>

Children inherit the wrapper's stdio and process group, so their output and
Ctrl-C handling are their own. Exit codes are passed back untouched.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import signal
import subprocess
import sys
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pgbox.config import Settings

logger = logging.getLogger(__name__)

# Characters the runtime's --bind syntax reserves as separators.
_BIND_SEPARATORS = (":", ",")


class ContainerError(Exception):
    """Raised when the runtime or image cannot be used."""


class CommandFailed(Exception):
    """Raised when a step of a multi-step operation exits non-zero."""

    def __init__(self, returncode: int, cmd: Sequence[str]) -> None:
        self.returncode = returncode
        self.cmd = list(cmd)
        super().__init__(f"Command exited with status {returncode}: {format_command(cmd)}")


@dataclass(frozen=True)
class BindMount:
    """A host path made visible at a fixed path inside the container."""

    host: Path
    container: str

    def to_arg(self) -> str:
        host = str(self.host)
        for sep in _BIND_SEPARATORS:
            if sep in host:
                raise ContainerError(f"Cannot bind {host!r}: path contains {sep!r}")
        return f"{host}:{self.container}"


@dataclass(frozen=True)
class ContainerRuntime:
    runtime: str
    image: Path

    @classmethod
    def from_settings(cls, settings: Settings) -> ContainerRuntime:
        return cls(runtime=settings.runtime, image=settings.image)

    def check_available(self) -> None:
        """Raise ContainerError unless the runtime is on PATH and the image exists."""
        if shutil.which(self.runtime) is None:
            raise ContainerError(
                f"Container runtime '{self.runtime}' not found on PATH. "
                "Install it or set PGBOX_RUNTIME."
            )
        if not self.image.is_file():
            raise ContainerError(
                f"Container image not found: {self.image}. Set PGBOX_IMAGE or PGBOX_HOME."
            )

    def exec_command(
        self,
        command: Sequence[str],
        binds: Sequence[BindMount] = (),
    ) -> list[str]:
        """Return the argv that runs *command* in the image with *binds* applied."""
        cmd = [self.runtime, "exec"]
        for bind in binds:
            cmd += ["--bind", bind.to_arg()]
        cmd.append(str(self.image))
        cmd.extend(command)
        return cmd

    def version_command(self) -> list[str]:
        return [self.runtime, "--version"]


def format_command(cmd: Sequence[str]) -> str:
    """Render *cmd* as a shell-quoted command line."""
    return shlex.join(cmd)


def _child_default_sigint() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)


@contextmanager
def _sigint_ignored() -> Iterator[None]:
    """Ignore SIGINT in the wrapper while a foreground child is running.

    Ctrl-C reaches the child through the process group; the wrapper only
    waits for its exit code.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


def run_command(cmd: Sequence[str]) -> int:
    """Run *cmd* in the foreground and return its exit code.

    A child killed by signal N reports ``128 + N``, as a shell would.
    """
    logger.debug("exec: %s", format_command(cmd))
    preexec = _child_default_sigint if sys.platform != "win32" else None
    with _sigint_ignored():
        result = subprocess.run(list(cmd), preexec_fn=preexec)
    returncode = result.returncode
    if returncode < 0:
        returncode = 128 - returncode
    logger.debug("exit %d: %s", returncode, cmd[0])
    return returncode


def run_checked(cmd: Sequence[str]) -> None:
    """Run *cmd*; raise CommandFailed if it exits non-zero."""
    returncode = run_command(cmd)
    if returncode != 0:
        raise CommandFailed(returncode, cmd)
