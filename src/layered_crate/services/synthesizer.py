"""UnitSynthesizer — the generated ``lib.rs`` files for baseline and layer builds.

Two kinds of unit are produced:

- the *full* unit: the real entry file with every top-level module made
  public and pinned to its absolute source file.  It is compiled once as
  the baseline and is also the ``__layer_test`` package every restricted
  build depends on;
- a *restricted* unit: only the closure of one layer compiled from the
  real sources, plus ``use ::__layer_test::<dep>;`` for each allowed
  dependency.  A reference to any other module fails to resolve.

Output is a pure function of the inputs; iteration is always sorted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from layered_crate.domain.errors import ResolutionError
from layered_crate.infrastructure.rust_source import rust_string_literal
from layered_crate.infrastructure.workspace import LAYER_TEST_DEPENDENCY

if TYPE_CHECKING:
    from layered_crate.infrastructure.rust_source import EntryFile

logger = logging.getLogger(__name__)

# Dependency name of the full crate inside the test package.
LAYER_TEST_MARKER = LAYER_TEST_DEPENDENCY


class UnitSynthesizer:
    """Renders compilation units from a resolved :class:`EntryFile`."""

    def __init__(self, entry: EntryFile) -> None:
        self._entry = entry

    def produce_full_unit(self) -> str:
        """The entry file with all module declarations path-annotated."""
        return self._entry.rewritten()

    def produce_restricted_unit(self, closure: Iterable[str], extra_deps: Iterable[str]) -> str:
        """A unit compiling *closure* directly and importing *extra_deps*.

        File-level attributes and ``extern crate`` items of the entry file
        are kept verbatim.

        Raises:
            ResolutionError: a closure module is not declared in the entry file.
        """
        modules = sorted(set(closure))
        deps = sorted(set(extra_deps) - set(modules))
        logger.debug("producing restricted unit: modules=%s deps=%s", modules, deps)

        parts: list[str] = []
        parts.extend(self._entry.inner_attributes)
        parts.extend(self._entry.extern_crates)
        for name in modules:
            parts.append(self._module_item(name))
        for dep in deps:
            decl = self._entry.modules.get(dep)
            if decl is not None:
                parts.extend(decl.cfg)
            parts.append(f"use ::{LAYER_TEST_MARKER}::{dep};")
        return "\n".join(parts) + "\n"

    def _module_item(self, name: str) -> str:
        decl = self._entry.modules.get(name)
        if decl is None:
            msg = f"test module `{name}` not found in entry file"
            raise ResolutionError(msg)
        if decl.path is None:
            return self._entry.module_declaration(name)
        return "\n".join(
            [
                *decl.cfg,
                f"#[path = {rust_string_literal(str(decl.path))}]",
                "#[rustfmt::skip]",
                f"pub mod {name};",
            ]
        )
