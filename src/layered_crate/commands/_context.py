"""AppContext: per-invocation state shared by every command.

The root group builds it from the global flags and subcommands receive it
through ``@click.pass_obj``.  It sets up logging once and decides where a
:class:`ServiceResult` is printed and which exit code follows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from layered_crate.config.logging import configure_logging
from layered_crate.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from layered_crate.config.settings import LayeredSettings
    from layered_crate.output.stream import ConsoleListener
    from layered_crate.services.result import ServiceResult


class AppContext:
    """Settings plus the output policy derived from them."""

    def __init__(self, settings: LayeredSettings) -> None:
        self.settings = settings
        configure_logging(
            verbose=settings.verbose,
            quiet=settings.quiet,
            log_json=settings.log_json,
        )

    @property
    def output(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def listener(self) -> ConsoleListener:
        """Stderr listener for compiler output during ``check``."""
        from layered_crate.output.stream import ConsoleListener

        return ConsoleListener(quiet=self.settings.quiet)

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and exit 1 if it failed.

        Successful results go to stdout and their warnings to stderr.  A
        failed result goes to stderr, except with ``--json`` where stdout
        keeps receiving the payload so it can be piped.
        """
        output = self.output
        text = format_result(result, settings=output)
        if not result.ok:
            click.echo(text, err=not output.json_output)
            raise SystemExit(1)

        click.echo(text)
        if output.json_output:
            return
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)
