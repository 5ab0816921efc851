"""
CLI layer for devchain.

Thin Typer transport over :mod:`devchain.blockchain` and
:mod:`devchain.deploy`: argument parsing, coloured output and exit codes.

Entry point::

    devchain --help
"""

from devchain.cli.app import app

__all__ = ["app"]
