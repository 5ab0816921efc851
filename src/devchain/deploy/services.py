"""Declarative container descriptions.

A ``ServiceDefinition`` is a pure value: image, container name, command,
volumes, ports and health check for one compose service. It has no
lifecycle of its own; providers synthesize one on demand and the compose
renderer (:mod:`devchain.deploy.compose`) materializes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# json-file driver options applied to every service (bounded local disk use)
STANDARD_LOG_OPTIONS: dict[str, Any] = {
    "driver": "json-file",
    "options": {
        "max-file": "1",
        "max-size": "10m",
    },
}


@dataclass(frozen=True)
class HealthCheck:
    """Compose health check."""

    test: tuple[str, ...]
    """Command in exec form, e.g. ``("CMD", "curl", ...)``."""

    interval: str = "15s"
    retries: int = 60

    def to_compose(self) -> dict[str, Any]:
        return {
            "test": list(self.test),
            "interval": self.interval,
            "retries": self.retries,
        }


@dataclass(frozen=True)
class ServiceDefinition:
    """Desired runtime shape of one container."""

    service_name: str
    """Compose service key (e.g. 'ethsigner')."""

    image: str
    """Image reference."""

    container_name: str
    """Explicit container name (stack-prefixed)."""

    user: str | None = None

    command: str = ""
    """Command line; empty means the image default."""

    volumes: tuple[str, ...] = ()
    """Bindings in ``volume:/mount/path`` form."""

    ports: tuple[str, ...] = ()
    """Bindings in ``host:container`` form."""

    health_check: HealthCheck | None = None

    volume_names: tuple[str, ...] = ()
    """Named volumes this service declares at the top level of the compose file."""

    logging: dict[str, Any] = field(default_factory=lambda: dict(STANDARD_LOG_OPTIONS))

    def qualified_volume_names(self, project: str) -> list[str]:
        """Volume names as the container runtime sees them under ``project``."""
        return [f"{project}_{name}" for name in self.volume_names]

    def to_compose(self) -> dict[str, Any]:
        """Compose service mapping (without the service key)."""
        service: dict[str, Any] = {
            "image": self.image,
            "container_name": self.container_name,
        }
        if self.user:
            service["user"] = self.user
        if self.command:
            service["command"] = self.command
        if self.volumes:
            service["volumes"] = list(self.volumes)
        if self.ports:
            service["ports"] = list(self.ports)
        if self.health_check is not None:
            service["healthcheck"] = self.health_check.to_compose()
        if self.logging:
            service["logging"] = self.logging
        return service


__all__ = ["STANDARD_LOG_OPTIONS", "HealthCheck", "ServiceDefinition"]
