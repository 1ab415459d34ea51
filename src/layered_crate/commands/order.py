"""Command: print the layer build order."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from layered_crate.commands._base import LayeredCommand
from layered_crate.services.layers import LayerService

if TYPE_CHECKING:
    from layered_crate.commands._context import AppContext


@click.command(
    cls=LayeredCommand,
    examples="""\
  layered-crate order
  layered-crate order -L config/Layerfile.toml
  layered-crate --json order""",
)
@click.option(
    "-L",
    "--layerfile",
    type=click.Path(dir_okay=False),
    default=None,
    help="Layerfile to read.",
)
@click.pass_obj
def order(app: AppContext, layerfile: str | None) -> None:
    """Validate the Layerfile and list layers in check order."""
    app.emit(LayerService(app.settings).order(layerfile=layerfile))
