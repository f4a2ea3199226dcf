"""Shared CLI helpers: help texts, argument splitting, and error translation."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer.core import TyperCommand

from pgbox.config import ConfigError
from pgbox.container import CommandFailed, ContainerError, ContainerRuntime
from pgbox.datadir import DataDir, DataDirError

console = Console()

PROG = "postgres"
HELP_FLAGS = ("-h", "--help")
_HELP_OPTION = ("-h, --help", "show this help and exit")
_RAW_ARGS_KEY = "pgbox.raw_args"


@dataclass(frozen=True)
class CommandHelp:
    name: str
    synopsis: str
    summary: str
    options: tuple[tuple[str, str], ...] = ()

    @property
    def usage(self) -> str:
        return f"Usage: {PROG} {self.name} {self.synopsis}"


COMMANDS: dict[str, CommandHelp] = {
    "initdb": CommandHelp(
        "initdb",
        "<DATA_DIR>",
        "create and populate a new data directory; fails if DATA_DIR exists",
    ),
    "tune": CommandHelp(
        "tune",
        "<DATA_DIR> [OPTS...]",
        "rewrite postgresql.conf via external tuning tool, passthrough OPTS",
        (("OPTS...", "passed to timescaledb-tune, e.g. --yes --memory=4GB"),),
    ),
    "run": CommandHelp(
        "run",
        "<DATA_DIR> [OPTS...]",
        "launch the database server in the foreground, passthrough OPTS",
        (("OPTS...", "passed to postgres ahead of -c config_file=..., e.g. -c work_mem=64MB"),),
    ),
    "admin": CommandHelp(
        "admin",
        "<DATA_DIR> [OPTS...]",
        "launch an interactive client connected to DATA_DIR's configured port",
        (("OPTS...", "passed to psql, e.g. -c 'SELECT version()'"),),
    ),
}

GLOBAL_USAGE = (
    f"Usage: {PROG} [-h|--help] [-v|--version] [--verbose] <command> <DATA_DIR> [OPTS...]"
)
GLOBAL_OPTIONS: tuple[tuple[str, str], ...] = (
    ("-h, --help", "show help and exit (non-zero)"),
    ("-v, --version", "print runtime and engine version strings"),
    ("--verbose", "enable debug logging"),
)


def _grid(rows: Sequence[tuple[str, str]]) -> Table:
    grid = Table.grid(padding=(0, 3))
    grid.add_column(no_wrap=True)
    grid.add_column()
    for left, right in rows:
        grid.add_row(f"  {escape(left)}", escape(right))
    return grid


def print_usage(name: str | None = None) -> None:
    """Print the short usage line for *name*, or the top-level one."""
    usage = COMMANDS[name].usage if name else GLOBAL_USAGE
    console.print(escape(usage), soft_wrap=True)


def print_help(name: str | None = None) -> None:
    """Print extended help for *name*, or the top-level help."""
    print_usage(name)
    console.print()
    if name:
        cmd = COMMANDS[name]
        console.print(escape(cmd.summary[0].upper() + cmd.summary[1:]))
        console.print()
        console.print("Options:")
        console.print(_grid((_HELP_OPTION, *cmd.options)))
        return
    console.print("Commands:")
    console.print(_grid([(f"{c.name} {c.synopsis}", c.summary) for c in COMMANDS.values()]))
    console.print()
    console.print("Global options:")
    console.print(_grid(GLOBAL_OPTIONS))


class PassthroughCommand(TyperCommand):
    """Subcommand that keeps its argument list exactly as given.

    The option parser drops a literal ``--``; the raw list is stashed on the
    context so OPTS reach the child unmodified.
    """

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        ctx.meta[_RAW_ARGS_KEY] = list(args)
        return super().parse_args(ctx, args)


def raw_args(ctx: typer.Context, parsed: Sequence[str] | None) -> list[str] | None:
    """The arguments *ctx* was invoked with, falling back to *parsed*."""
    raw = ctx.meta.get(_RAW_ARGS_KEY)
    return parsed if raw is None else raw


def split_command_args(name: str, args: Sequence[str] | None) -> tuple[DataDir, list[str]]:
    """Return ``(data_dir, passthrough)`` for subcommand *name*.

    Prints usage (no arguments) or extended help (``-h``/``--help`` first) and
    exits 1 instead of returning.
    """
    if not args:
        print_usage(name)
        raise typer.Exit(1)
    if args[0] in HELP_FLAGS:
        print_help(name)
        raise typer.Exit(1)
    return DataDir.from_arg(args[0]), list(args[1:])


def get_runtime() -> ContainerRuntime:
    from pgbox.config import get_settings

    return ContainerRuntime.from_settings(get_settings())


@contextmanager
def handle_errors() -> Iterator[None]:
    """Translate pgbox exceptions into messages and exit codes.

    Child failures keep the child's exit code and add no message of their own.
    """
    try:
        yield
    except (DataDirError, ContainerError, ConfigError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(1) from None
    except CommandFailed as e:
        raise typer.Exit(e.returncode) from None
    except KeyboardInterrupt:
        raise typer.Exit(130) from None


def exit_with(returncode: int) -> None:
    if returncode != 0:
        raise typer.Exit(returncode)
