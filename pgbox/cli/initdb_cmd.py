"""initdb command: scaffold and populate a new data directory."""

from __future__ import annotations

import shlex
from typing import Annotated

import typer
from rich.markup import escape

from pgbox.cli._helpers import (
    PROG,
    console,
    get_runtime,
    handle_errors,
    raw_args,
    split_command_args,
)


def initdb(
    ctx: typer.Context,
    args: Annotated[
        list[str] | None,
        typer.Argument(help="DATA_DIR to create", show_default=False),
    ] = None,
) -> None:
    """Create and populate a new data directory; fails if DATA_DIR exists."""
    data_dir, extra = split_command_args("initdb", raw_args(ctx, args))
    if extra:
        console.print(
            f"[yellow]Warning:[/yellow] ignoring extra arguments: {escape(' '.join(extra))}",
            soft_wrap=True,
        )

    from pgbox.services.operations import init_data_dir

    with handle_errors():
        init_data_dir(data_dir, get_runtime())

    console.print(f"[green]Initialized[/green] {escape(str(data_dir.root))}", soft_wrap=True)
    console.print(
        f"Start the server with: [bold]{PROG} run {escape(shlex.quote(str(data_dir.root)))}[/bold]",
        soft_wrap=True,
    )
