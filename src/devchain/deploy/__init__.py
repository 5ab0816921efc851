"""Process-orchestration core: run container-runtime commands and compose.

Key Concepts:
    ProcessRunner: Launches one command, drains both output streams
        concurrently, classifies the result.
    run_with_retry: Bounded re-issue of idempotent invocations.
    ComposeDispatcher: Picks the compose command shape detected on the host.
    ContainerManager: Volume and container primitives built on the runner.
    ServiceDefinition: Declarative description of one container.

Related Modules:
    - :mod:`devchain.deploy.config`: ExecutionContext and SignerSettings
    - :mod:`devchain.deploy.streams`: Stream drainers
    - :mod:`devchain.blockchain.ethsigner`: Provisioning sequence built on this layer
"""

from __future__ import annotations

from devchain.deploy.compose import (
    ComposeDispatcher,
    compose_invocation,
    detect_compose_variant,
    render_compose,
    write_compose_file,
)
from devchain.deploy.config import ComposeVariant, ExecutionContext, SignerRuntime, SignerSettings
from devchain.deploy.container import ContainerManager
from devchain.deploy.process import (
    CaptureBuffer,
    CommandRunner,
    Invocation,
    InvocationResult,
    ProcessRunner,
    run_with_retry,
)
from devchain.deploy.services import HealthCheck, ServiceDefinition
from devchain.deploy.streams import StreamDrainer, StreamEvent, StreamSource

__all__ = [
    "CaptureBuffer",
    "CommandRunner",
    "ComposeDispatcher",
    "ComposeVariant",
    "ContainerManager",
    "ExecutionContext",
    "HealthCheck",
    "Invocation",
    "InvocationResult",
    "ProcessRunner",
    "ServiceDefinition",
    "SignerRuntime",
    "SignerSettings",
    "StreamDrainer",
    "StreamEvent",
    "StreamSource",
    "compose_invocation",
    "detect_compose_variant",
    "render_compose",
    "run_with_retry",
    "write_compose_file",
]
