"""Shared pytest fixtures and test helpers for layered-crate tests."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest
from click.testing import CliRunner

from layered_crate.config.settings import LayeredSettings


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ``LAYERED_CRATE_*`` variables of the host out of every test."""
    import os

    for key in list(os.environ):
        if key.startswith("LAYERED_CRATE_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Crate fixtures
# ---------------------------------------------------------------------------

THREE_LAYERS = """\
[crate]
exclude = []

[layer.app]
depends-on = ["domain", "infra"]

[layer.infra]
depends-on = ["domain"]

[layer.domain]
"""


def write_crate(
    root: Path,
    modules: dict[str, str],
    *,
    layerfile: str | None = None,
    name: str = "demo",
    lib_prefix: str = "",
) -> Path:
    """Lay out a minimal library crate under *root*.

    Every key of *modules* becomes ``src/<key>.rs`` and a ``mod <key>;``
    line of ``src/lib.rs``.  Returns the manifest path.
    """
    src = root / "src"
    src.mkdir(parents=True, exist_ok=True)
    for module, body in modules.items():
        (src / f"{module}.rs").write_text(body, encoding="utf-8")
    decls = "".join(f"mod {module};\n" for module in sorted(modules))
    (src / "lib.rs").write_text(lib_prefix + decls, encoding="utf-8")
    manifest = root / "Cargo.toml"
    manifest.write_text(
        f'[package]\nname = "{name}"\nversion = "0.1.0"\nedition = "2021"\n',
        encoding="utf-8",
    )
    if layerfile is not None:
        (root / "Layerfile.toml").write_text(layerfile, encoding="utf-8")
    return manifest


@pytest.fixture
def three_layer_crate(tmp_path: Path) -> Path:
    """A crate whose modules respect :data:`THREE_LAYERS`.  Returns its root."""
    write_crate(
        tmp_path,
        {
            "app": "use crate::domain::Order;\nuse crate::infra::Store;\n",
            "infra": "use crate::domain::Order;\npub struct Store;\n",
            "domain": "pub struct Order;\n",
        },
        layerfile=THREE_LAYERS,
    )
    return tmp_path


def make_settings(root: Path, **overrides: object) -> LayeredSettings:
    """Settings rooted at *root* with no config file."""
    return LayeredSettings.from_cli(project_root=root, **overrides)


# ---------------------------------------------------------------------------
# Scripted compiler
# ---------------------------------------------------------------------------

_MODULE_ITEM = re.compile(
    r'#\[path = "(?P<path>[^"]+)"\]\s*(?:#\[rustfmt::skip\]\s*)?pub mod (?P<name>\w+);'
)
_LAYER_IMPORT = re.compile(r"use ::__layer_test::(\w+);")
_CRATE_REF = re.compile(r"\bcrate::(\w+)")


class FakeCargo:
    """Scripted stand-in for ``cargo check`` on the generated packages.

    A restricted unit is judged the way rustc judges the test crates built
    by :func:`write_crate`: a module naming ``crate::x`` fails unless ``x``
    is compiled or imported, and an imported layer that no compiled module
    names draws an unused-import warning.  Output is ANSI-colored like
    ``--color=always``.
    """

    def __init__(self, *, baseline_exit: int = 0, baseline_lines: Iterable[str] = ()) -> None:
        self.baseline_exit = baseline_exit
        self.baseline_lines = list(baseline_lines)
        self.calls: list[Path] = []
        self.units: list[str] = []

    def run(self, cwd: Path, on_line: Callable[[str], None]) -> int:
        self.calls.append(cwd)
        on_line(f"\x1b[1m\x1b[32m    Checking\x1b[0m {cwd.name} v0.1.0 ({cwd})")
        if "-layer-test-" not in cwd.name:
            for line in self.baseline_lines:
                on_line(line)
            if self.baseline_exit == 0:
                on_line("\x1b[1m\x1b[32m    Finished\x1b[0m `dev` profile target(s) in 0.01s")
            return self.baseline_exit

        unit = (cwd / "lib.rs").read_text(encoding="utf-8")
        self.units.append(unit)
        modules = {m["name"]: Path(m["path"]) for m in _MODULE_ITEM.finditer(unit)}
        imported = set(_LAYER_IMPORT.findall(unit))
        visible = set(modules) | imported

        errors: list[str] = []
        used: set[str] = set()
        for name in sorted(modules):
            refs = set(_CRATE_REF.findall(modules[name].read_text(encoding="utf-8")))
            for ref in sorted(refs):
                if ref in visible:
                    used.add(ref)
                else:
                    errors.append(f"unresolved import `crate::{ref}`")
        warnings = [f"unused import: `::__layer_test::{dep}`" for dep in sorted(imported - used)]

        for warning in warnings:
            on_line(f"\x1b[1m\x1b[33mwarning\x1b[0m\x1b[1m: {warning}\x1b[0m")
            on_line("  --> lib.rs:1:5")
        for error in errors:
            on_line(f"\x1b[1m\x1b[31merror[E0432]\x1b[0m\x1b[1m: {error}\x1b[0m")
        if warnings:
            on_line(f"warning: `{cwd.name}` (lib) generated {len(warnings)} warning(s)")
        if errors:
            on_line(f"error: could not compile `{cwd.name}` (lib) due to {len(errors)} previous error(s)")
            return 101
        on_line("\x1b[1m\x1b[32m    Finished\x1b[0m `dev` profile target(s) in 0.01s")
        return 0


@pytest.fixture
def fake_cargo() -> FakeCargo:
    return FakeCargo()
