"""Subcommand modules for layered-crate.

Provides register_commands() which uses deferred imports to keep
``layered-crate --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from layered_crate.commands.check import check
    from layered_crate.commands.closure import closure
    from layered_crate.commands.order import order

    cli.add_command(check)
    cli.add_command(order)
    cli.add_command(closure)
