"""
CLI utility helpers: consoles, context construction and error reporting.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from devchain.blockchain.ethsigner import EthSignerProvider
from devchain.blockchain.stack import Stack
from devchain.core.errors import DevchainError
from devchain.deploy.config import ExecutionContext, SignerSettings

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


def make_context(ctx: typer.Context) -> ExecutionContext:
    """Build the ``ExecutionContext`` for a command from root options."""
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    return ExecutionContext(verbose=verbose)


def load_stack(stack_file: Path) -> Stack:
    try:
        return Stack.load(stack_file)
    except (OSError, ValidationError) as exc:
        err_console.print(f"[bold red]Error[/bold red]: cannot load stack {stack_file}: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def make_provider(ctx: typer.Context, stack: Stack) -> EthSignerProvider:
    """Build the signer provider, reading ``DEVCHAIN_*`` settings."""
    try:
        settings = SignerSettings.from_env()
    except ValueError as exc:
        err_console.print(f"[bold red]Error[/bold red]: invalid DEVCHAIN_* settings: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    return EthSignerProvider(stack, make_context(ctx), settings=settings)


def fail(exc: DevchainError) -> typer.Exit:
    """Print ``exc`` on stderr and return the exit to raise."""
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {escape(exc.message)}")
    return typer.Exit(code=1)


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion, turning domain errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except DevchainError as exc:
        raise fail(exc) from exc
