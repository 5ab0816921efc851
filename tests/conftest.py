"""
Shared pytest fixtures for devchain tests.

This module provides:
- ``FakeRunner``: a recording ``CommandRunner`` that never spawns processes
- A three-member ``Stack`` rooted in a temporary directory
- Logging configured once for console output
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from devchain.blockchain.stack import EthereumAccount, Member, Stack
from devchain.core.errors import CommandFailedError
from devchain.core.logging import configure_logging
from devchain.deploy.config import ExecutionContext
from devchain.deploy.process import Invocation, InvocationResult

ADDRESSES = [
    "0x1f2A98889594024BFfdA3311CbE69728d392C06D",
    "0x9c7b3DfC3a1e9f0a5b0D3E0cE4a7D12A4dC65e21",
    "0x00aBcDEF0123456789abcdef0123456789ABCDEF",
]
PRIVATE_KEYS = [
    "0x" + "11" * 32,
    "22" * 32,
    "0x" + "33" * 32,
]


class FakeRunner:
    """Records invocations and answers them without spawning anything.

    ``fail_when`` receives each invocation; returning an int makes that call
    fail with the given exit code, returning an exception raises it as is.
    """

    def __init__(
        self,
        fail_when: Callable[[Invocation], int | BaseException | None] | None = None,
        output: str = "",
    ) -> None:
        self.invocations: list[Invocation] = []
        self.contexts: list[ExecutionContext] = []
        self.fail_when = fail_when
        self.output = output

    async def run(self, invocation: Invocation, ctx: ExecutionContext) -> InvocationResult:
        self.invocations.append(invocation)
        self.contexts.append(ctx)
        if self.fail_when is not None:
            outcome = self.fail_when(invocation)
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome is not None:
                raise CommandFailedError(invocation.command_line, outcome, "boom\n")
        return InvocationResult(command=invocation.command_line, output=self.output, stdout=self.output)

    @property
    def command_lines(self) -> list[str]:
        return [inv.command_line for inv in self.invocations]


@pytest.fixture(autouse=True)
def _configure_logging() -> None:
    """Bind log output to the stderr of the running test."""
    configure_logging(level="DEBUG", json_format=False)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def accounts() -> list[EthereumAccount]:
    return [
        EthereumAccount(address=address, private_key=key)
        for address, key in zip(ADDRESSES, PRIVATE_KEYS)
    ]


@pytest.fixture
def stack(tmp_path: Path, accounts: list[EthereumAccount]) -> Stack:
    members = [
        Member(id=f"member_{i}", index=i, account=account)
        for i, account in enumerate(accounts)
    ]
    return Stack(name="dev", members=members, stack_dir=tmp_path / "dev")


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    """Factory for runners that need a failure predicate or canned output."""
    return FakeRunner
