"""Engine-facing commands: tune, run, admin."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape

from pgbox.cli._helpers import (
    console,
    exit_with,
    get_runtime,
    handle_errors,
    raw_args,
    split_command_args,
)
from pgbox.container import format_command

_PassthroughArgs = Annotated[
    list[str] | None,
    typer.Argument(help="DATA_DIR followed by OPTS for the external command", show_default=False),
]


def tune(ctx: typer.Context, args: _PassthroughArgs = None) -> None:
    """Rewrite postgresql.conf via external tuning tool, passthrough OPTS."""
    data_dir, opts = split_command_args("tune", raw_args(ctx, args))

    from pgbox.services.operations import tune as tune_op

    with handle_errors():
        returncode = tune_op(data_dir, opts, get_runtime())
    exit_with(returncode)


def run(ctx: typer.Context, args: _PassthroughArgs = None) -> None:
    """Launch the database server in the foreground, passthrough OPTS."""
    data_dir, opts = split_command_args("run", raw_args(ctx, args))

    from pgbox.services.operations import run_server

    with handle_errors():
        returncode = run_server(data_dir, opts, get_runtime())
    exit_with(returncode)


def _echo_command(cmd: list[str]) -> None:
    console.print(f"[dim]$ {escape(format_command(cmd))}[/dim]", soft_wrap=True)


def admin(ctx: typer.Context, args: _PassthroughArgs = None) -> None:
    """Launch an interactive client connected to DATA_DIR's configured port."""
    data_dir, opts = split_command_args("admin", raw_args(ctx, args))

    from pgbox.services.operations import admin as admin_op

    with handle_errors():
        returncode = admin_op(data_dir, opts, get_runtime(), echo=_echo_command)
    exit_with(returncode)
