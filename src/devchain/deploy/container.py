"""Volume and container operations over the container-runtime CLI.

Each operation is a fixed argument template handed to the process runner.
Nothing here retries on its own; callers that expect transient daemon
contention (first-time volume creation) pass ``retries``.

Operations that need to touch a volume's contents use a disposable helper
container (``--rm``) that mounts the volume at ``/dest`` and, for copies,
bind-mounts the host source file at ``/source/<name>``.

All operations are safe to repeat: ``volume create`` of an existing volume
succeeds, ``mkdir -p`` and ``cp`` overwrite.

Tags:
    container, docker, volume, subprocess
"""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from pathlib import Path

from devchain.core.logging import get_logger
from devchain.deploy.config import ExecutionContext
from devchain.deploy.process import CommandRunner, Invocation, InvocationResult, run_with_retry
from devchain.execution.retry import RetryStrategy

logger = get_logger(__name__)


class ContainerManager:
    """Runs container-runtime commands for one execution context.

    Parameters
    ----------
    runner
        Executes each invocation.
    ctx
        Execution context passed to every invocation; its
        ``runtime_binary`` names the CLI.
    helper_image
        Image for disposable helper containers.

    Example::

        mgr = ContainerManager(ProcessRunner(), ctx)
        await mgr.create_volume("dev_ethsigner", retries=3)
        await mgr.copy_file_to_volume("dev_ethsigner", Path("/tmp/password"), "password")
    """

    def __init__(
        self,
        runner: CommandRunner,
        ctx: ExecutionContext,
        helper_image: str = "alpine",
    ) -> None:
        self.runner = runner
        self.ctx = ctx
        self.helper_image = helper_image

    # ------------------------------------------------------------------
    # Generic runtime commands
    # ------------------------------------------------------------------

    async def run(
        self,
        *args: str,
        working_dir: str | Path = ".",
        retries: int = 0,
        strategy: RetryStrategy | None = None,
    ) -> InvocationResult:
        """Run ``<runtime> <args...>`` and return its captured output.

        ``retries`` extra attempts are made on non-zero exit, spaced by
        ``strategy`` (immediately when omitted).
        """
        invocation = Invocation.of(self.ctx.runtime_binary, *args, working_dir=working_dir)
        if retries:
            return await run_with_retry(self.runner, invocation, self.ctx, retries, strategy)
        return await self.runner.run(invocation, self.ctx)

    async def run_buffered(self, *args: str, working_dir: str | Path = ".") -> str:
        """Run a runtime command and return only its output text."""
        result = await self.run(*args, working_dir=working_dir)
        return result.output

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    async def create_volume(
        self,
        volume_name: str,
        retries: int = 0,
        strategy: RetryStrategy | None = None,
    ) -> None:
        await self.run("volume", "create", volume_name, retries=retries, strategy=strategy)
        logger.info("volume.created", volume=volume_name)

    async def remove_volume(self, volume_name: str) -> None:
        await self.run("volume", "remove", volume_name)
        logger.info("volume.removed", volume=volume_name)

    async def mkdir_in_volume(self, volume_name: str, directory: str) -> None:
        await self.run(
            "run", "--rm",
            "-v", f"{volume_name}:/dest",
            self.helper_image,
            "mkdir", "-p", posixpath.join("/", "dest", directory.lstrip("/")),
        )

    async def copy_file_to_volume(
        self,
        volume_name: str,
        source_path: str | Path,
        dest_path: str,
    ) -> None:
        """Copy a host file into ``volume_name`` at ``dest_path``."""
        source = Path(source_path)
        file_name = source.name
        await self.run(
            "run", "--rm",
            "-v", f"{source}:/source/{file_name}",
            "-v", f"{volume_name}:/dest",
            self.helper_image,
            "cp", "-R",
            posixpath.join("/", "source", file_name),
            posixpath.join("/", "dest", dest_path.lstrip("/")),
        )
        logger.debug("volume.file_copied", volume=volume_name, source=str(source), dest=dest_path)

    async def run_in_volume(self, volume_name: str, command: Sequence[str]) -> InvocationResult:
        """Run ``command`` in a helper container with the volume at ``/dest``."""
        return await self.run(
            "run", "--rm",
            "-v", f"{volume_name}:/dest",
            self.helper_image,
            *command,
        )

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    async def copy_from_container(
        self,
        container_name: str,
        source_path: str,
        dest_path: str | Path,
    ) -> None:
        await self.run("cp", f"{container_name}:{source_path}", str(dest_path))


__all__ = ["ContainerManager"]
