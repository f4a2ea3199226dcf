"""Typer CLI for pgbox: the ``postgres`` command dispatcher."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape
from typer.core import TyperGroup

from pgbox.cli._helpers import (
    PassthroughCommand,
    console,
    handle_errors,
    print_help,
    print_usage,
)

# Subcommands parse their own arguments: no click help option, and anything
# after DATA_DIR (option-like tokens and a literal "--" included) is forwarded
# verbatim through PassthroughCommand.
_PASSTHROUGH_SETTINGS = {"ignore_unknown_options": True, "help_option_names": []}


class _DispatchGroup(TyperGroup):
    """Command group that fails with exit code 1 on an unknown command."""

    def resolve_command(self, ctx: typer.Context, args: list[str]):
        name = args[0] if args else ""
        if self.get_command(ctx, name) is None:
            console.print(f"[red]Error:[/red] unknown command '{escape(name)}'", soft_wrap=True)
            print_usage()
            raise typer.Exit(1)
        return super().resolve_command(ctx, args)


app = typer.Typer(
    name="postgres",
    cls=_DispatchGroup,
    help="Manage a containerized PostgreSQL data directory.",
    add_completion=False,
    context_settings=_PASSTHROUGH_SETTINGS,
)


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------


def help_callback(value: bool) -> None:
    if value:
        print_help()
        raise typer.Exit(1)


def version_callback(value: bool) -> None:
    if not value:
        return
    from pgbox import __version__
    from pgbox.cli._helpers import get_runtime
    from pgbox.services.operations import report_versions

    console.print(f"pgbox {__version__}")
    with handle_errors():
        returncode = report_versions(get_runtime())
    raise typer.Exit(returncode)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    show_help: Annotated[
        bool | None,
        typer.Option("-h", "--help", callback=help_callback, is_eager=True),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option("-v", "--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """Manage a containerized PostgreSQL data directory."""
    from pgbox._log import setup_logging

    setup_logging(verbose=verbose)

    if ctx.invoked_subcommand is None:
        print_usage()
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Command registrations
# ---------------------------------------------------------------------------

from pgbox.cli.initdb_cmd import initdb  # noqa: E402
from pgbox.cli.server_cmd import admin, run, tune  # noqa: E402

for _command in (initdb, tune, run, admin):
    app.command(
        cls=PassthroughCommand,
        context_settings=_PASSTHROUGH_SETTINGS,
        add_help_option=False,
    )(_command)


def app_entry() -> None:
    """Entry point for the CLI."""
    app()
