"""Blockchain-side model and the signer provisioning built on it.

Key Concepts:
    Stack: One development network (members, chain id, directories).
    EthSignerProvider: Writes signer config, provisions volumes and keys,
        and describes the signer compose service.
"""

from devchain.blockchain.accounts import generate_account
from devchain.blockchain.ethsigner import (
    EthSignerProvider,
    ProvisioningState,
    build_signer_command,
    generate_signer_config,
)
from devchain.blockchain.stack import EthereumAccount, Member, Stack

__all__ = [
    "EthSignerProvider",
    "EthereumAccount",
    "Member",
    "ProvisioningState",
    "Stack",
    "build_signer_command",
    "generate_account",
    "generate_signer_config",
]
