"""Root CLI group for layered-crate with global flags and command registration."""

from __future__ import annotations

import click

from layered_crate import __version__
from layered_crate.commands import register_commands
from layered_crate.commands._base import LayeredGroup
from layered_crate.commands._context import AppContext
from layered_crate.config.settings import LayeredSettings


@click.group(
    cls=LayeredGroup,
    invoke_without_command=True,
    examples="""\
  layered-crate check
  layered-crate -v check -L Layerfile.toml
  layered-crate -c ci/layered-crate.toml --json check
  layered-crate order
  layered-crate closure api""",
)
@click.version_option(version=__version__, prog_name="layered-crate")
@click.option("--json", "json_output", is_flag=True, help="Print results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Only print verdicts and errors.")
@click.option("-v", "--verbose", is_flag=True, help="Show per-layer modules and debug logs.")
@click.option("--log-json", is_flag=True, help="Write log records to stderr as JSON lines.")
@click.option(
    "-c",
    "--config",
    "config_path",
    default=None,
    help="Read this config file instead of searching for layered-crate.toml.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """layered-crate: check that a Rust crate's modules respect declared layers."""
    settings = LayeredSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
