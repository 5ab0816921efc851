"""
CLI: ``devchain stack``: stack lifecycle through compose.

Usage::

    devchain stack compose-variant
    devchain stack up --stack-file stack.json
    devchain stack down --stack-file stack.json
"""

from __future__ import annotations

import shutil
from pathlib import Path

import typer
from rich.markup import escape

from devchain.blockchain.stack import Stack
from devchain.cli.utils import console, err_console, load_stack, make_context, run_sync
from devchain.deploy.compose import ComposeDispatcher, detect_compose_variant
from devchain.deploy.config import ComposeVariant, ExecutionContext
from devchain.deploy.process import ProcessRunner

app = typer.Typer(no_args_is_help=True)

COMPOSE_FILE_NAME = "docker-compose.yml"


async def _compose(stack: Stack, exec_ctx: ExecutionContext, compose_file: Path, *args: str) -> None:
    runner = ProcessRunner()
    variant = await detect_compose_variant(runner, exec_ctx)
    dispatcher = ComposeDispatcher(runner, exec_ctx.with_compose_variant(variant))
    await dispatcher.run(
        ["-p", stack.name, "-f", str(compose_file), *args],
        working_dir=stack.stack_dir,
    )


def _sync_runtime(stack: Stack) -> None:
    """Copy the init tree over the runtime tree (existing files are replaced)."""
    if not stack.init_dir.is_dir():
        return
    try:
        shutil.copytree(stack.init_dir, stack.runtime_dir, dirs_exist_ok=True)
    except OSError as exc:
        err_console.print(f"[bold red]Error[/bold red]: cannot copy {stack.init_dir} to {stack.runtime_dir}: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _compose_file(stack: Stack, compose_file: Path | None) -> Path:
    path = compose_file or stack.stack_dir / COMPOSE_FILE_NAME
    if not path.exists():
        err_console.print(f"[bold red]Error[/bold red]: compose file not found: {path}")
        raise typer.Exit(code=1)
    return path


@app.command("compose-variant")
def compose_variant(ctx: typer.Context) -> None:
    """Print the compose implementation detected on this host."""
    variant = run_sync(detect_compose_variant(ProcessRunner(), make_context(ctx)))
    typer.echo(variant.value)
    if variant is ComposeVariant.NONE:
        raise typer.Exit(code=1)


@app.command("up")
def up(
    ctx: typer.Context,
    stack_file: Path = typer.Option(..., "--stack-file", "-s", help="Stack JSON file."),
    compose_file: Path | None = typer.Option(None, "--file", "-f", help="Compose file."),  # noqa: UP007
) -> None:
    """Start every service of the stack in the background."""
    stack = load_stack(stack_file)
    path = _compose_file(stack, compose_file)
    _sync_runtime(stack)
    console.print(f"[bold green]▲ stack up[/] {stack.name}")
    run_sync(_compose(stack, make_context(ctx), path, "up", "-d"))


@app.command("down")
def down(
    ctx: typer.Context,
    stack_file: Path = typer.Option(..., "--stack-file", "-s", help="Stack JSON file."),
    compose_file: Path | None = typer.Option(None, "--file", "-f", help="Compose file."),  # noqa: UP007
) -> None:
    """Stop and remove the stack's containers."""
    stack = load_stack(stack_file)
    path = _compose_file(stack, compose_file)
    console.print(f"[bold red]▼ stack down[/] {stack.name}")
    run_sync(_compose(stack, make_context(ctx), path, "down"))
