"""Subcommand modules for entitymap.

Provides register_commands() which uses deferred imports to keep
``entitymap --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from entitymap.commands.convert import decode, encode, roundtrip
    from entitymap.commands.describe import describe

    cli.add_command(describe)
    cli.add_command(encode)
    cli.add_command(decode)
    cli.add_command(roundtrip)
