"""Signing service provider: service definition and provisioning sequence.

The signer container holds every member's private key and answers
JSON-RPC on port 8545, forwarding unsigned calls to the downstream
blockchain node. Bringing it from nothing to running takes two
procedures:

write_config (pre-launch, host filesystem only):
    password file, signer YAML config, one key file and one key
    descriptor per member, all under ``<stack>/init``.

first_time_setup (post-launch, against the container runtime):
    data volume, contracts directory, config copy, one key import per
    member in declared order, and the password copy last.

Provisioning State Machine::

    uninitialized → config-written → volumes-created → keys-imported
                  → password-installed → ready

    Each arrow is one sub-step. A failure leaves ``provider.state`` at the
    last completed state; re-running the whole procedure is the recovery
    path (every step is safe to repeat).

Password ordering:
    The signer decrypts keystores with it only once keys are mounted. The
    key imports read the host-side copy (``/keys/password``) instead.

Alternate runtime:
    With ``SignerRuntime.ETHSIGNER`` the image needs an explicit
    flag-based command line derived from the downstream RPC URL. A
    missing or unparseable URL there is a ``ConfigurationError``: the stack
    was never initialized correctly.

Tags:
    signer, ethereum, provisioning, keystore, docker, compose
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from devchain.blockchain.accounts import (
    KEYSTORE_DIR,
    generate_account,
    write_account_key,
    write_key_descriptor,
)
from devchain.blockchain.stack import EthereumAccount, Stack
from devchain.core.errors import ConfigurationError, ProvisioningError
from devchain.core.logging import LogContext, get_logger
from devchain.deploy.config import ExecutionContext, SignerRuntime, SignerSettings
from devchain.deploy.container import ContainerManager
from devchain.deploy.process import CommandRunner, ProcessRunner
from devchain.deploy.services import HealthCheck, ServiceDefinition
from devchain.execution.retry import ExponentialBackoff, RetryStrategy

logger = get_logger(__name__)

SIGNER_PORT = 8545
SIGNER_CONFIG_FILE = "ethsigner.yaml"
SIGNER_CONFIG_IN_VOLUME = "firefly.ffsigner"

HEALTH_CHECK_REQUEST = {"jsonrpc": "2.0", "method": "net_version", "params": [], "id": "1"}
HEALTH_CHECK_INTERVAL = "15s"  # 5760 requests a day
HEALTH_CHECK_RETRIES = 60


class ProvisioningState(str, Enum):
    """How far a stack's signer has been provisioned."""

    UNINITIALIZED = "uninitialized"
    CONFIG_WRITTEN = "config-written"
    VOLUMES_CREATED = "volumes-created"
    KEYS_IMPORTED = "keys-imported"
    PASSWORD_INSTALLED = "password-installed"
    READY = "ready"


# ---------------------------------------------------------------------------
# Pure builders
# ---------------------------------------------------------------------------


def generate_signer_config(chain_id: int, rpc_url: str) -> dict[str, Any]:
    """Static firefly-signer configuration for one stack."""
    return {
        "server": {
            "address": "0.0.0.0",
            "port": SIGNER_PORT,
        },
        "backend": {
            "url": rpc_url,
            "chainId": chain_id,
        },
        "fileWallet": {
            "path": KEYSTORE_DIR,
            "filenames": {
                "primaryExt": ".toml",
            },
            "metadata": {
                "format": "toml",
                "keyFileProperty": '{{ index .signing "key-file" }}',
                "passwordFileProperty": '{{ index .signing "password-file" }}',
            },
        },
    }


def build_signer_command(runtime: SignerRuntime, chain_id: int, rpc_url: str) -> str:
    """Command line for the signer container.

    Empty for the default runtime. For the ethsigner runtime, https URLs
    enable TLS and default the port to 443; http URLs without an explicit
    port get no port flag; a root path gets no path flag.

    Raises:
        ConfigurationError: If the ethsigner runtime is selected and the
            URL is empty or not an absolute http(s) URL.
    """
    if runtime is not SignerRuntime.ETHSIGNER:
        return ""

    try:
        parts = urlsplit(rpc_url)
        host = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"RPC URL invalid '{rpc_url}': {exc}", cause=exc) from exc
    if not rpc_url or parts.scheme not in ("http", "https") or not host:
        raise ConfigurationError(f"RPC URL invalid '{rpc_url}'")

    command = [
        "--logging=DEBUG",
        f"--chain-id={chain_id}",
        f"--downstream-http-host={host}",
    ]
    port_flag = str(port) if port is not None else ""
    if parts.scheme == "https":
        command.append("--downstream-http-tls-enabled")
        port_flag = port_flag or "443"
    if parts.path and parts.path != "/":
        command.append(f"--downstream-http-path={parts.path}")
    if port_flag:
        command.append(f"--downstream-http-port={port_flag}")
    command.append("multikey-signer")
    command.append(f"--directory={KEYSTORE_DIR}")
    return " ".join(command)


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class EthSignerProvider:
    """Provisions and describes the signer service of one stack.

    Parameters
    ----------
    stack
        The stack being provisioned (read only).
    ctx
        Execution context for every runtime command.
    settings
        Images and provisioning knobs (defaults from ``SignerSettings.from_env()``).
    runner
        Command runner (defaults to a ``ProcessRunner``).

    Example::

        provider = EthSignerProvider(stack, ExecutionContext(verbose=True))
        provider.write_config("http://geth:8545")
        # ... copy init → runtime, start the stack ...
        await provider.first_time_setup()
    """

    def __init__(
        self,
        stack: Stack,
        ctx: ExecutionContext,
        settings: SignerSettings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.stack = stack
        self.ctx = ctx
        self.settings = settings or SignerSettings.from_env()
        self.containers = ContainerManager(
            runner or ProcessRunner(),
            ctx,
            helper_image=self.settings.helper_image,
        )
        self.state = ProvisioningState.UNINITIALIZED

    @property
    def data_volume(self) -> str:
        return f"{self.stack.name}_ethsigner"

    @property
    def config_volume(self) -> str:
        return f"{self.stack.name}_ethsigner_config"

    # ------------------------------------------------------------------
    # Pre-launch
    # ------------------------------------------------------------------

    def write_config(self, rpc_url: str) -> None:
        """Write password, signer config and member key material under init/.

        Existing files are overwritten. Stops at the first error.

        Raises:
            ProvisioningError: If any file cannot be written.
        """
        init_dir = self.stack.init_dir
        blockchain_dir = init_dir / "blockchain"
        config_path = init_dir / "config" / SIGNER_CONFIG_FILE

        with LogContext(stack=self.stack.name):
            with _filesystem_step("password"):
                blockchain_dir.mkdir(parents=True, exist_ok=True)
                (blockchain_dir / "password").write_text(self.settings.password, encoding="utf-8")

            with _filesystem_step("signer_config"):
                config_path.parent.mkdir(parents=True, exist_ok=True)
                config_path.write_text(
                    yaml.safe_dump(
                        generate_signer_config(self.stack.chain_id, rpc_url),
                        default_flow_style=False,
                        sort_keys=False,
                    ),
                    encoding="utf-8",
                )

            for member in self.stack.members:
                with _filesystem_step("member_keys"):
                    self._write_key_material(blockchain_dir, member.account)

            logger.info("signer.config_written", path=str(init_dir), members=len(self.stack.members))
            self._advance(ProvisioningState.CONFIG_WRITTEN)

    # ------------------------------------------------------------------
    # Post-launch
    # ------------------------------------------------------------------

    async def first_time_setup(self) -> None:
        """Create volumes, install config, import every key, install password.

        Members are imported one at a time in declared order; the first
        failure aborts the remaining imports and the password copy.
        """
        runtime_dir = self.stack.runtime_dir
        blockchain_dir = runtime_dir / "blockchain"
        contracts_dir = runtime_dir / "contracts"

        with LogContext(stack=self.stack.name):
            await self.containers.create_volume(
                self.data_volume,
                retries=self.settings.volume_create_retries,
                strategy=self._volume_create_strategy(),
            )

            with _filesystem_step("contracts_dir"):
                contracts_dir.mkdir(parents=True, exist_ok=True)

            await self.containers.copy_file_to_volume(
                self.config_volume,
                runtime_dir / "config" / SIGNER_CONFIG_FILE,
                SIGNER_CONFIG_IN_VOLUME,
            )
            self._advance(ProvisioningState.VOLUMES_CREATED)

            for member in self.stack.members:
                await self.import_account(member.account, blockchain_dir)
            self._advance(ProvisioningState.KEYS_IMPORTED)

            await self.containers.copy_file_to_volume(
                self.data_volume,
                blockchain_dir / "password",
                "password",
            )
            self._advance(ProvisioningState.PASSWORD_INSTALLED)
            self._advance(ProvisioningState.READY)

    async def import_account(self, account: EthereumAccount, key_dir: Path) -> None:
        """Import one account's key into the signer's keystore.

        ``key_dir`` must hold ``<addr>.key``, ``<addr>.toml`` and
        ``password``. Not retried: a failed import is surfaced as is.
        """
        name = account.key_name
        staging = f"keystore/{name}"

        await self.containers.mkdir_in_volume(self.data_volume, "keystore")
        await self.containers.run_in_volume(self.data_volume, ["rm", "-rf", f"/dest/{staging}"])
        await self.containers.run(
            "run", "--rm",
            "-v", f"{self.data_volume}:/data",
            "-v", f"{key_dir}:/keys",
            self.settings.geth_image,
            "account", "import",
            "--password", "/keys/password",
            "--keystore", f"/data/{staging}",
            f"/keys/{name}.key",
            working_dir=key_dir,
        )
        await self.containers.run_in_volume(
            self.data_volume,
            ["sh", "-c", f"mv /dest/{staging}/UTC--* /dest/{staging}.key.json && rmdir /dest/{staging}"],
        )
        await self.containers.copy_file_to_volume(
            self.data_volume,
            key_dir / f"{name}.toml",
            f"keystore/{name}.toml",
        )
        logger.info("signer.account_imported", address=account.address)

    async def create_account(self) -> dict[str, str]:
        """Generate a new account, write its key material and import it."""
        account = generate_account()
        key_dir = self.stack.runtime_dir / "blockchain"
        with _filesystem_step("member_keys"):
            key_dir.mkdir(parents=True, exist_ok=True)
            self._write_key_material(key_dir, account)
        await self.import_account(account, key_dir)
        return {
            "address": account.address,
            "privateKey": account.private_key,
        }

    # ------------------------------------------------------------------
    # Service definition
    # ------------------------------------------------------------------

    def get_command(self, rpc_url: str) -> str:
        return build_signer_command(self.settings.signer_runtime, self.stack.chain_id, rpc_url)

    def get_service_definition(self, rpc_url: str) -> ServiceDefinition:
        """Compose service for the signer container."""
        return ServiceDefinition(
            service_name="ethsigner",
            image=self.settings.signer_image,
            container_name=f"{self.stack.name}_ethsigner",
            user="root",
            command=self.get_command(rpc_url),
            volumes=(
                "ethsigner:/data",
                "ethsigner_config:/etc/firefly",
            ),
            ports=(f"{self.stack.exposed_blockchain_port}:{SIGNER_PORT}",),
            health_check=HealthCheck(
                test=(
                    "CMD",
                    "curl",
                    "-X", "POST",
                    "-H", "Content-Type: application/json",
                    "-d", json.dumps(HEALTH_CHECK_REQUEST, separators=(",", ":")),
                    "-w", "%{http_code}",
                    "-sS",
                    "--fail",
                    f"http://localhost:{SIGNER_PORT}/",
                ),
                interval=HEALTH_CHECK_INTERVAL,
                retries=HEALTH_CHECK_RETRIES,
            ),
            volume_names=("ethsigner", "ethsigner_config"),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _volume_create_strategy(self) -> RetryStrategy | None:
        base_delay = self.settings.volume_create_backoff
        if base_delay <= 0:
            return None
        return ExponentialBackoff(
            max_retries=self.settings.volume_create_retries,
            base_delay=base_delay,
            max_delay=base_delay * 8,
        )

    @staticmethod
    def _write_key_material(directory: Path, account: EthereumAccount) -> None:
        write_account_key(directory, account)
        write_key_descriptor(directory, account)

    def _advance(self, state: ProvisioningState) -> None:
        logger.info("provisioning.state", previous=self.state.value, state=state.value)
        self.state = state


@contextmanager
def _filesystem_step(step: str) -> Iterator[None]:
    """Re-raise host filesystem failures as ``ProvisioningError``."""
    try:
        yield
    except OSError as exc:
        logger.error("provisioning.step_failed", step=step, error=str(exc))
        raise ProvisioningError(f"{step}: {exc}", step=step, cause=exc) from exc


__all__ = [
    "EthSignerProvider",
    "ProvisioningState",
    "build_signer_command",
    "generate_signer_config",
]
