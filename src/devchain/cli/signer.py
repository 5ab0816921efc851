"""
CLI: ``devchain signer``: signer configuration and provisioning.

Usage::

    devchain signer write-config --stack-file stack.json --rpc-url http://geth:8545
    devchain signer setup --stack-file stack.json
    devchain signer compose --stack-file stack.json --rpc-url http://geth:8545 -o docker-compose.yml
    devchain signer create-account --stack-file stack.json
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from devchain.cli.utils import console, fail, load_stack, make_provider, run_sync
from devchain.core.errors import DevchainError
from devchain.deploy.compose import render_compose, write_compose_file

app = typer.Typer(no_args_is_help=True)

STACK_FILE_OPTION = typer.Option(..., "--stack-file", "-s", help="Stack JSON file.")
RPC_URL_OPTION = typer.Option(..., "--rpc-url", help="Downstream blockchain RPC URL.")


@app.command("write-config")
def write_config(
    ctx: typer.Context,
    stack_file: Path = STACK_FILE_OPTION,
    rpc_url: str = RPC_URL_OPTION,
) -> None:
    """Write signer config, password and member key files under init/."""
    stack = load_stack(stack_file)
    provider = make_provider(ctx, stack)
    try:
        provider.write_config(rpc_url)
    except DevchainError as exc:
        raise fail(exc) from exc
    console.print(f"[green]✓[/] signer config written to {stack.init_dir}")


@app.command("setup")
def setup(
    ctx: typer.Context,
    stack_file: Path = STACK_FILE_OPTION,
) -> None:
    """Create signer volumes and import every member key."""
    stack = load_stack(stack_file)
    provider = make_provider(ctx, stack)
    run_sync(provider.first_time_setup())
    console.print(f"[green]✓[/] signer provisioned: {len(stack.members)} account(s) imported")


@app.command("compose")
def compose(
    ctx: typer.Context,
    stack_file: Path = STACK_FILE_OPTION,
    rpc_url: str = RPC_URL_OPTION,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to file instead of stdout."),  # noqa: UP007
) -> None:
    """Render the signer compose service."""
    stack = load_stack(stack_file)
    provider = make_provider(ctx, stack)
    try:
        content = render_compose(stack.name, [provider.get_service_definition(rpc_url)])
    except DevchainError as exc:
        raise fail(exc) from exc

    if output is None:
        typer.echo(content, nl=False)
        return
    path = write_compose_file(content, output)
    console.print(f"[green]✓[/] compose file written to {path}")


@app.command("create-account")
def create_account(
    ctx: typer.Context,
    stack_file: Path = STACK_FILE_OPTION,
) -> None:
    """Generate a new account and import it into the running signer."""
    stack = load_stack(stack_file)
    provider = make_provider(ctx, stack)
    account = run_sync(provider.create_account())
    typer.echo(json.dumps(account, indent=2))
