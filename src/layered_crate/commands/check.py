"""Command: check every layer of the crate."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import click

from layered_crate.commands._base import LayeredCommand

if TYPE_CHECKING:
    from layered_crate.commands._context import AppContext


@click.command(
    cls=LayeredCommand,
    context_settings={"ignore_unknown_options": True},
    examples="""\
  layered-crate check
  layered-crate check -L Layerfile.toml --manifest crates/core/Cargo.toml
  layered-crate check -T /tmp/layers --no-format
  layered-crate check -- check --lib --features serde --color=always
  layered-crate --json check""",
)
@click.argument("cargo_args", nargs=-1, type=click.UNPROCESSED)
@click.option(
    "-T",
    "--temp-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Scratch directory for the generated packages.",
)
@click.option(
    "-L",
    "--layerfile",
    type=click.Path(dir_okay=False),
    default=None,
    help="Layerfile to read.",
)
@click.option(
    "--manifest",
    type=click.Path(dir_okay=False),
    default=None,
    help="Cargo.toml of the crate to check.",
)
@click.option("--no-format", is_flag=True, help="Do not run rustfmt on generated units.")
@click.pass_obj
def check(
    app: AppContext,
    cargo_args: tuple[str, ...],
    temp_dir: str | None,
    layerfile: str | None,
    manifest: str | None,
    no_format: bool,
) -> None:
    """Build the crate, then each layer with only its declared dependencies.

    CARGO_ARGS replace the default ``check --lib --color=always``.
    """
    from layered_crate.services.layers import LayerService

    started = time.perf_counter()
    result = LayerService(app.settings).check(
        temp_dir=temp_dir,
        layerfile=layerfile,
        manifest=manifest,
        cargo_args=cargo_args or None,
        format_units=False if no_format else None,
        listener=app.listener(),
    )
    if not app.settings.quiet and not app.settings.json_output:
        click.echo(f"done in {time.perf_counter() - started:.2f}s", err=True)
    app.emit(result)
