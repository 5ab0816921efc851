"""Account key generation and on-disk key material.

Key generation is delegated to ``eth-account``. The file formats written
here are the ones the signer's file wallet reads:

``<addr>.key``
    Hex private key (no ``0x``), consumed once by ``geth account import``.
``<addr>.toml``
    Key-file descriptor pointing the signer at the imported keystore file
    and the shared password file.
"""

from __future__ import annotations

from pathlib import Path

from eth_account import Account

from devchain.blockchain.stack import EthereumAccount

KEYSTORE_DIR = "/data/keystore"
PASSWORD_FILE = "/data/password"

_KEY_DESCRIPTOR_TEMPLATE = """\
[metadata]
createdAt = 2019-11-05T08:15:30-05:00
description = "File based configuration"

[signing]
type = "file-based-signer"
key-file = "{key_file}"
password-file = "{password_file}"
"""


def generate_account() -> EthereumAccount:
    """Create a fresh random account."""
    account = Account.create()
    return EthereumAccount(address=account.address, private_key=account.key.hex())


def keystore_file(account: EthereumAccount) -> str:
    """Path inside the signer volume of the account's encrypted keystore."""
    return f"{KEYSTORE_DIR}/{account.key_name}.key.json"


def write_account_key(directory: Path, account: EthereumAccount) -> Path:
    """Write the raw private key to ``<directory>/<addr>.key``."""
    path = directory / f"{account.key_name}.key"
    path.write_text(account.private_key, encoding="utf-8")
    return path


def write_key_descriptor(directory: Path, account: EthereumAccount) -> Path:
    """Write the TOML key-file descriptor to ``<directory>/<addr>.toml``."""
    path = directory / f"{account.key_name}.toml"
    path.write_text(
        _KEY_DESCRIPTOR_TEMPLATE.format(
            key_file=keystore_file(account),
            password_file=PASSWORD_FILE,
        ),
        encoding="utf-8",
    )
    return path


__all__ = [
    "KEYSTORE_DIR",
    "PASSWORD_FILE",
    "generate_account",
    "keystore_file",
    "write_account_key",
    "write_key_descriptor",
]
