"""Compose dispatch and compose-file generation.

The host exposes compose in one of two shapes: the standalone
``docker-compose`` tool (legacy) or the ``docker compose`` subcommand
(integrated). Detection runs once, the result is stored on the
``ExecutionContext``, and every compose call goes through
``ComposeDispatcher`` which rewrites the arguments into the right shape.

Key Concepts:
    detect_compose_variant: Probes ``docker compose version`` then
        ``docker-compose version``; never raises.
    ComposeDispatcher.run: Rewrites and forwards to the process runner.
        An undetected variant is a configuration error and issues nothing.
    render_compose: Serializes ``ServiceDefinition`` values into a compose
        YAML document with a header comment.
    write_compose_file: Persists the rendered document.

Example::

    ctx = ctx.with_compose_variant(await detect_compose_variant(runner, ctx))
    await ComposeDispatcher(runner, ctx).run(["-p", "dev", "up", "-d"], working_dir=stack_dir)

Tags:
    compose, docker, yaml, dispatch
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import yaml

from devchain.core.errors import ConfigurationError, InvocationError
from devchain.core.logging import get_logger
from devchain.deploy.config import ComposeVariant, ExecutionContext
from devchain.deploy.process import CommandRunner, Invocation, InvocationResult
from devchain.deploy.services import ServiceDefinition

logger = get_logger(__name__)

LEGACY_COMPOSE_BINARY = "docker-compose"


def compose_invocation(
    ctx: ExecutionContext,
    args: Sequence[str],
    working_dir: str | Path = ".",
) -> Invocation:
    """Build the compose invocation for the variant on ``ctx``.

    Raises:
        ConfigurationError: If no compose variant has been detected.
    """
    if ctx.compose_variant is ComposeVariant.LEGACY:
        return Invocation.of(LEGACY_COMPOSE_BINARY, *args, working_dir=working_dir)
    if ctx.compose_variant is ComposeVariant.INTEGRATED:
        return Invocation.of(ctx.runtime_binary, "compose", *args, working_dir=working_dir)
    raise ConfigurationError(
        "No version for docker-compose has been detected.",
        context={"args": list(args)},
    )


class ComposeDispatcher:
    """Issues compose commands in whichever form the host supports."""

    def __init__(self, runner: CommandRunner, ctx: ExecutionContext) -> None:
        self.runner = runner
        self.ctx = ctx

    async def run(
        self,
        args: Sequence[str],
        working_dir: str | Path = ".",
    ) -> InvocationResult:
        invocation = compose_invocation(self.ctx, args, working_dir)
        logger.debug(
            "compose.dispatch",
            variant=self.ctx.compose_variant.value,
            cmd=invocation.command_line,
        )
        return await self.runner.run(invocation, self.ctx)


async def detect_compose_variant(runner: CommandRunner, ctx: ExecutionContext) -> ComposeVariant:
    """Probe the host for a compose implementation.

    The integrated subcommand wins when both are installed.
    """
    check_ctx = ctx.with_log_command(False)
    candidates = (
        (ComposeVariant.INTEGRATED, Invocation.of(ctx.runtime_binary, "compose", "version")),
        (ComposeVariant.LEGACY, Invocation.of(LEGACY_COMPOSE_BINARY, "version")),
    )
    for variant, invocation in candidates:
        try:
            await runner.run(invocation, check_ctx)
        except InvocationError as exc:
            logger.debug("compose.variant_unavailable", variant=variant.value, error=exc.message)
            continue
        logger.info("compose.detected", variant=variant.value)
        return variant
    logger.warning("compose.not_detected")
    return ComposeVariant.NONE


# ---------------------------------------------------------------------------
# Compose file generation
# ---------------------------------------------------------------------------


def _yaml_dumps(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def render_compose(project: str, definitions: Iterable[ServiceDefinition]) -> str:
    """Generate a compose YAML document for ``definitions``.

    Parameters
    ----------
    project
        Compose project name (the stack name); named volumes materialize
        as ``<project>_<volume>``.
    definitions
        Services to include, in order.

    Returns
    -------
    str
        YAML string ready to write to a file.
    """
    definitions = list(definitions)
    compose: dict[str, Any] = {"name": project, "services": {}, "volumes": {}}

    for definition in definitions:
        compose["services"][definition.service_name] = definition.to_compose()
        for volume in definition.volume_names:
            compose["volumes"][volume] = {}

    if not compose["volumes"]:
        del compose["volumes"]

    header = (
        f"# Generated by devchain for stack {project}\n"
        f"# Services: {', '.join(d.service_name for d in definitions)}\n\n"
    )
    return header + _yaml_dumps(compose)


def write_compose_file(content: str, output_path: str | Path) -> Path:
    """Write compose YAML to ``output_path`` and return the path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("compose.written", path=str(path))
    return path


__all__ = [
    "LEGACY_COMPOSE_BINARY",
    "ComposeDispatcher",
    "compose_invocation",
    "detect_compose_variant",
    "render_compose",
    "write_compose_file",
]
