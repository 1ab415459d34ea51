"""Rich Console factory and theme for layered-crate output.

Report consoles render to a StringIO buffer, preserving the
``format_result() -> str`` contract.  The streaming console writes
compiler output to stderr as it arrives.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

import sys
from io import StringIO
from typing import IO

from rich.console import Console
from rich.theme import Theme

LC_THEME = Theme(
    {
        "lc.ok": "bold green",
        "lc.pass": "bold green",
        "lc.pass_warn": "bold yellow",
        "lc.fail": "bold red",
        "lc.error": "bold red",
        "lc.warning": "bold yellow",
        "lc.hint": "italic cyan",
        "lc.status": "dim",
        "lc.op": "bold cyan",
        "lc.key": "dim",
        "lc.layer": "bold blue",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "pass": "lc.pass",
    "pass_with_warning": "lc.pass_warn",
    "fail": "lc.fail",
}


def create_console(
    *,
    no_color: bool = False,
    width: int | None = None,
    file: IO[str] | None = None,
) -> Console:
    """Create a Console with the project theme.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
        file: Destination; a fresh StringIO buffer when omitted.
    """
    return Console(
        file=file if file is not None else StringIO(),
        theme=LC_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def create_stream_console(*, no_color: bool = False) -> Console:
    """Console on stderr for live compiler output; width follows the terminal."""
    return Console(file=sys.stderr, theme=LC_THEME, no_color=no_color, highlight=False)


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for a build status value."""
    return _STATUS_STYLES.get(status, "")
