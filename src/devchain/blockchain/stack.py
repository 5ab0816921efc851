"""Stack model: one logical development network.

A ``Stack`` is created once when the stack is initialized and is read-only
to the provisioning core. Member accounts are validated into concrete
``EthereumAccount`` values at construction, so providers read
``member.account.address`` directly and never inspect types at use sites.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class EthereumAccount(BaseModel):
    """Blockchain address plus its private key material."""

    model_config = {"frozen": True}

    address: str
    private_key: str = Field(description="Hex-encoded private key, without 0x prefix")

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not _ADDRESS_RE.match(value):
            raise ValueError(f"not an Ethereum address: {value!r}")
        return value

    @field_validator("private_key")
    @classmethod
    def _strip_prefix(cls, value: str) -> str:
        return value.removeprefix("0x")

    @property
    def key_name(self) -> str:
        """File stem for this account's key material: lowercase address, no 0x."""
        return self.address[2:].lower()


class Member(BaseModel):
    """One participant in the stack."""

    id: str
    index: int
    account: EthereumAccount


class Stack(BaseModel):
    """Containers, accounts and configuration composing one network."""

    name: str = Field(pattern=r"^[a-z0-9][a-z0-9_-]*$", description="Compose project name; lowercase")
    chain_id: int = 2021
    members: list[Member] = Field(default_factory=list)
    stack_dir: Path
    exposed_blockchain_port: int = 5100

    @property
    def init_dir(self) -> Path:
        return self.stack_dir / "init"

    @property
    def runtime_dir(self) -> Path:
        return self.stack_dir / "runtime"

    @classmethod
    def load(cls, path: str | Path) -> Stack:
        """Read a stack from its JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path


__all__ = ["EthereumAccount", "Member", "Stack"]
