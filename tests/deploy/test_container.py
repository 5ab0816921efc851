"""Tests for devchain.deploy.container: argument templates per operation."""

from __future__ import annotations

from pathlib import Path

import pytest

from devchain.core.errors import CommandFailedError
from devchain.deploy.config import ExecutionContext
from devchain.deploy.container import ContainerManager
from devchain.execution.retry import ExponentialBackoff


@pytest.fixture
def manager(fake_runner) -> ContainerManager:
    return ContainerManager(fake_runner, ExecutionContext(), helper_image="busybox")


class TestVolumes:
    @pytest.mark.asyncio
    async def test_create_and_remove(self, manager, fake_runner):
        await manager.create_volume("dev_ethsigner")
        await manager.remove_volume("dev_ethsigner")

        assert fake_runner.command_lines == [
            "docker volume create dev_ethsigner",
            "docker volume remove dev_ethsigner",
        ]

    @pytest.mark.asyncio
    async def test_create_retries_transient_failures(self, make_runner):
        attempts = {"n": 0}

        def flaky(_inv):
            attempts["n"] += 1
            return 1 if attempts["n"] == 1 else None

        runner = make_runner(fail_when=flaky)
        await ContainerManager(runner, ExecutionContext()).create_volume("v", retries=3)
        assert runner.command_lines == ["docker volume create v"] * 2

    @pytest.mark.asyncio
    async def test_create_waits_per_strategy(self, make_runner, monkeypatch):
        slept: list[float] = []

        async def fake_sleep(delay):
            slept.append(delay)

        monkeypatch.setattr("devchain.deploy.process.asyncio.sleep", fake_sleep)
        runner = make_runner(fail_when=lambda _inv: 1)
        strategy = ExponentialBackoff(max_retries=2, base_delay=1.0, jitter=False)

        with pytest.raises(CommandFailedError):
            await ContainerManager(runner, ExecutionContext()).create_volume("v", retries=2, strategy=strategy)
        assert slept == [1.0, 2.0]
        assert len(runner.invocations) == 3

    @pytest.mark.asyncio
    async def test_create_without_retries_fails_once(self, make_runner):
        runner = make_runner(fail_when=lambda _inv: 1)
        with pytest.raises(CommandFailedError):
            await ContainerManager(runner, ExecutionContext()).create_volume("v")
        assert len(runner.invocations) == 1

    @pytest.mark.asyncio
    async def test_mkdir_in_volume(self, manager, fake_runner):
        await manager.mkdir_in_volume("dev_ethsigner", "keystore")
        assert fake_runner.invocations[0].argv == [
            "docker", "run", "--rm",
            "-v", "dev_ethsigner:/dest",
            "busybox",
            "mkdir", "-p", "/dest/keystore",
        ]

    @pytest.mark.asyncio
    async def test_copy_file_to_volume(self, manager, fake_runner):
        await manager.copy_file_to_volume("dev_ethsigner_config", Path("/stack/runtime/config/ethsigner.yaml"), "firefly.ffsigner")
        assert fake_runner.invocations[0].argv == [
            "docker", "run", "--rm",
            "-v", "/stack/runtime/config/ethsigner.yaml:/source/ethsigner.yaml",
            "-v", "dev_ethsigner_config:/dest",
            "busybox",
            "cp", "-R", "/source/ethsigner.yaml", "/dest/firefly.ffsigner",
        ]

    @pytest.mark.asyncio
    async def test_run_in_volume(self, manager, fake_runner):
        await manager.run_in_volume("v", ["ls", "/dest"])
        assert fake_runner.command_lines == ["docker run --rm -v v:/dest busybox ls /dest"]


class TestContainers:
    @pytest.mark.asyncio
    async def test_copy_from_container(self, manager, fake_runner):
        await manager.copy_from_container("dev_geth", "/data/genesis.json", Path("/tmp/out"))
        assert fake_runner.command_lines == ["docker cp dev_geth:/data/genesis.json /tmp/out"]

    @pytest.mark.asyncio
    async def test_run_buffered_returns_output(self, make_runner):
        runner = make_runner(output="dev_ethsigner\n")
        manager = ContainerManager(runner, ExecutionContext())
        assert await manager.run_buffered("volume", "ls", "-q") == "dev_ethsigner\n"

    @pytest.mark.asyncio
    async def test_runtime_binary_from_context(self, fake_runner):
        manager = ContainerManager(fake_runner, ExecutionContext(runtime_binary="podman"))
        await manager.run("ps")
        assert fake_runner.command_lines == ["podman ps"]
