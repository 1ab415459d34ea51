"""Human-readable rendering of check, order and closure results.

One renderer per ``result.op``, looked up in ``_OP_RENDERERS``; anything
else gets the key-value fallback.  Renderers print into a StringIO-backed
console and :func:`render_result` returns the collected text.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias

from rich.text import Text

from layered_crate.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from layered_crate.services.result import ServiceResult

_STATUS_LABELS = {
    "pass": "PASS",
    "pass_with_warning": "PASS (with warning)",
    "fail": "FAIL",
}


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    A failed ``check`` that carries a report renders the report first.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        if result.op == "check" and result.data.get("layers") is not None:
            _render_check_layers(console, result.data, verbose=verbose)
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    if result.op == "order":
        return "\n".join(result.data.get("order", []))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="lc.ok")
    op = Text(f"  {result.op}", style="lc.op")
    console.print(label, op, sep="", end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="lc.key")
    if isinstance(value, list):
        v = Text(", ".join(str(item) for item in value) if value else "(none)")
    else:
        v = Text(str(value))
    console.print(k, v, sep="", end="")
    console.print()


def _outcome_line(console: Console, outcome: dict[str, Any]) -> None:
    status = outcome.get("status", "")
    label = Text(_STATUS_LABELS.get(status, status.upper()), style=style_for_status(status))
    target = outcome.get("layer") or "(baseline)"
    console.print(Text("  "), label, Text(f" {target}", style="lc.layer"), sep="", end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        console.print(Text(f"    {k}: {v}"))


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="lc.error")
    op = Text(f" {result.op}:", style="lc.op")
    console.print(label, op, Text(f" {msg}"), sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Operation renderers ───────────────────────────────────────────────


def _render_check_layers(console: Console, data: dict[str, Any], *, verbose: bool) -> None:
    baseline = data.get("baseline")
    if baseline is not None:
        _outcome_line(console, baseline)
    for outcome in data.get("layers", []):
        _outcome_line(console, outcome)
        for hint in outcome.get("hints", []):
            console.print(Text(f"      {hint}", style="lc.hint"))
        if verbose:
            _field(console, "  modules", outcome.get("modules", []))
            _field(console, "  dependencies", outcome.get("dependencies", []))


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a clean check: every layer line, then the totals."""
    _status_line(console, result)
    _render_check_layers(console, result.data, verbose=verbose)
    layers = result.data.get("layers", [])
    warned = sum(1 for outcome in layers if outcome.get("status") == "pass_with_warning")
    _field(console, "layers", len(layers))
    if warned:
        _field(console, "with_warnings", warned)
    if verbose:
        _render_meta(console, result)


def _render_order(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render layers top-down, each with its declared dependencies."""
    _status_line(console, result)
    dependencies = result.data.get("dependencies", {})
    for position, layer in enumerate(result.data.get("order", []), start=1):
        deps = dependencies.get(layer, [])
        line = Text(f"  {position:>3}. ")
        line.append(layer, style="lc.layer")
        if deps:
            line.append(f" -> {', '.join(deps)}", style="dim")
        console.print(line)


def _render_closure(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "layer", result.data.get("layer", ""))
    _field(console, "modules", result.data.get("modules", []))
    _field(console, "dependencies", result.data.get("dependencies", []))
    if verbose:
        _field(console, "transitive", result.data.get("transitive", []))


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_Renderer: TypeAlias = Callable[..., None]

_OP_RENDERERS: dict[str, _Renderer] = {
    "check": _render_check,
    "order": _render_order,
    "closure": _render_closure,
}
