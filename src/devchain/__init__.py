"""devchain: provisioning core for local multi-container blockchain stacks.

Launches container-runtime commands, drains their output streams
concurrently, classifies failures, and drives the signer provisioning
sequence on top of that.
"""

__version__ = "0.1.0"
