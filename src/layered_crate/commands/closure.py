"""Command: show what one layer's restricted build contains."""

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
  layered-crate closure api
  layered-crate -v closure storage -L Layerfile.toml
  layered-crate --json closure api""",
)
@click.argument("layer")
@click.option(
    "-L",
    "--layerfile",
    type=click.Path(dir_okay=False),
    default=None,
    help="Layerfile to read.",
)
@click.pass_obj
def closure(app: AppContext, layer: str, layerfile: str | None) -> None:
    """List the modules compiled for LAYER and the layers it may use."""
    app.emit(LayerService(app.settings).closure(layer, layerfile=layerfile))
