"""Tests for devchain.deploy.compose: dispatch, detection and rendering.

All container operations go through a recording fake runner; no Docker
required.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from devchain.core.errors import ConfigurationError
from devchain.deploy.compose import (
    ComposeDispatcher,
    compose_invocation,
    detect_compose_variant,
    render_compose,
    write_compose_file,
)
from devchain.deploy.config import ComposeVariant, ExecutionContext
from devchain.deploy.services import HealthCheck, ServiceDefinition


class TestComposeInvocation:
    def test_legacy_uses_standalone_binary(self):
        ctx = ExecutionContext(compose_variant=ComposeVariant.LEGACY)
        inv = compose_invocation(ctx, ["up", "-d"], working_dir="/stacks/dev")

        assert inv.argv == ["docker-compose", "up", "-d"]
        assert inv.working_dir == Path("/stacks/dev")

    def test_integrated_uses_subcommand(self):
        ctx = ExecutionContext(compose_variant=ComposeVariant.INTEGRATED)
        assert compose_invocation(ctx, ["up", "-d"]).argv == ["docker", "compose", "up", "-d"]

    def test_integrated_follows_runtime_binary(self):
        ctx = ExecutionContext(compose_variant=ComposeVariant.INTEGRATED, runtime_binary="podman")
        assert compose_invocation(ctx, ["ps"]).argv == ["podman", "compose", "ps"]

    def test_none_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="No version for docker-compose has been detected."):
            compose_invocation(ExecutionContext(), ["up"])


class TestComposeDispatcher:
    @pytest.mark.asyncio
    async def test_dispatches_through_runner(self, fake_runner):
        ctx = ExecutionContext(compose_variant=ComposeVariant.LEGACY)
        await ComposeDispatcher(fake_runner, ctx).run(["-p", "dev", "down"], working_dir="/s")

        assert fake_runner.command_lines == ["docker-compose -p dev down"]
        assert fake_runner.contexts == [ctx]

    @pytest.mark.asyncio
    async def test_undetected_issues_nothing(self, fake_runner):
        with pytest.raises(ConfigurationError):
            await ComposeDispatcher(fake_runner, ExecutionContext()).run(["up"])
        assert fake_runner.invocations == []


class TestDetectComposeVariant:
    @pytest.mark.asyncio
    async def test_integrated_preferred(self, fake_runner):
        variant = await detect_compose_variant(fake_runner, ExecutionContext(log_command=True))

        assert variant is ComposeVariant.INTEGRATED
        assert fake_runner.command_lines == ["docker compose version"]
        assert fake_runner.contexts[0].log_command is False

    @pytest.mark.asyncio
    async def test_falls_back_to_legacy(self, make_runner):
        runner = make_runner(fail_when=lambda inv: 1 if inv.binary == "docker" else None)
        variant = await detect_compose_variant(runner, ExecutionContext())

        assert variant is ComposeVariant.LEGACY
        assert runner.command_lines == ["docker compose version", "docker-compose version"]

    @pytest.mark.asyncio
    async def test_none_when_both_fail(self, make_runner):
        runner = make_runner(fail_when=lambda _inv: 127)
        assert await detect_compose_variant(runner, ExecutionContext()) is ComposeVariant.NONE


class TestRenderCompose:
    def _definition(self) -> ServiceDefinition:
        return ServiceDefinition(
            service_name="ethsigner",
            image="signer:latest",
            container_name="dev_ethsigner",
            user="root",
            volumes=("ethsigner:/data",),
            ports=("5100:8545",),
            health_check=HealthCheck(test=("CMD", "true")),
            volume_names=("ethsigner",),
        )

    def test_header_and_document(self):
        content = render_compose("dev", [self._definition()])

        assert content.startswith("# Generated by devchain for stack dev\n# Services: ethsigner\n")
        doc = yaml.safe_load(content)
        assert doc["name"] == "dev"
        assert doc["volumes"] == {"ethsigner": {}}
        service = doc["services"]["ethsigner"]
        assert service["container_name"] == "dev_ethsigner"
        assert service["ports"] == ["5100:8545"]
        assert service["healthcheck"] == {"test": ["CMD", "true"], "interval": "15s", "retries": 60}
        assert service["logging"]["driver"] == "json-file"
        assert "command" not in service

    def test_no_volumes_section_when_unused(self):
        definition = ServiceDefinition(service_name="web", image="nginx", container_name="dev_web")
        assert "volumes" not in yaml.safe_load(render_compose("dev", [definition]))

    def test_write_compose_file(self, tmp_path):
        path = write_compose_file("services: {}\n", tmp_path / "nested" / "docker-compose.yml")
        assert path.read_text() == "services: {}\n"
