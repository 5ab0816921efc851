"""
Root Typer application for the devchain CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from devchain import __version__
from devchain.core.logging import configure_logging

app = Typer(
    name="devchain",
    help="devchain: provision and run local blockchain development stacks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"devchain {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Echo commands and their output."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    json_logs: bool | None = typer.Option(  # noqa: UP007
        None, "--json-logs/--console-logs", help="Force JSON or console log rendering."
    ),
) -> None:
    """devchain CLI: signer provisioning and stack lifecycle."""
    configure_logging(level=log_level, json_format=json_logs)
    ctx.obj = {"verbose": verbose}


# ── Sub-command registration ─────────────────────────────────────────────

from devchain.cli.signer import app as signer_app  # noqa: E402
from devchain.cli.stack import app as stack_app  # noqa: E402

app.add_typer(signer_app, name="signer", help="Signing service configuration and provisioning.")
app.add_typer(stack_app, name="stack", help="Stack lifecycle through compose.")
