"""Live console output for a running check.

Compiler lines are echoed to stderr as cargo prints them, keeping cargo's
own colors when present.  Hints follow the line they explain.  Each build
ends with a ``PASS``/``FAIL`` line for the layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.text import Text

from layered_crate.output.console import create_stream_console, style_for_status
from layered_crate.services.diagnostics import LineKind

if TYPE_CHECKING:
    from rich.console import Console

    from layered_crate.services.diagnostics import ClassifiedLine
    from layered_crate.services.result import BuildOutcome

_KIND_STYLES: dict[LineKind, str] = {
    LineKind.STATUS: "lc.status",
    LineKind.WARNING: "lc.warning",
    LineKind.ERROR: "lc.fail",
    LineKind.OTHER: "",
}


class ConsoleListener:
    """Check listener that prints to a Rich console.

    Args:
        console: Destination; stderr when omitted.
        quiet: Suppress compiler lines, keep hints and verdicts.
    """

    def __init__(self, console: Console | None = None, *, quiet: bool = False) -> None:
        self.console = console if console is not None else create_stream_console()
        self.quiet = quiet

    def build_started(self, layer: str | None) -> None:
        if self.quiet:
            return
        target = f"layer {layer}" if layer is not None else "crate"
        self.console.print(Text(f"checking {target}", style="lc.layer"))

    def line(self, layer: str | None, line: ClassifiedLine) -> None:
        if not self.quiet:
            text = Text.from_ansi(line.raw)
            style = _KIND_STYLES[line.kind]
            if style and line.raw == line.text:
                text.stylize(style)
            self.console.print(text)
        if line.hint is not None:
            self.console.print(Text(f"  = hint: {line.hint}", style="lc.hint"))

    def build_finished(self, outcome: BuildOutcome) -> None:
        status = outcome.status
        label = Text(status.label, style=style_for_status(status.value))
        self.console.print(label, Text(outcome.layer or "(baseline)"))
