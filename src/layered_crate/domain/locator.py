"""ModuleLocator — which modules a restricted build of one layer needs.

Pure functions over the Layerfile plus the module-to-file map of the
crate's entry unit.  Closures are computed fresh for every layer check.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from layered_crate.domain.errors import InternalInvariantError, ResolutionError
from layered_crate.domain.layerfile import LayerFile

logger = logging.getLogger(__name__)


class ModuleLocator:
    """Maps layers to the modules and source files of their restricted build."""

    def __init__(
        self,
        layerfile: LayerFile,
        module_paths: Mapping[str, Path] | None = None,
    ) -> None:
        self._layerfile = layerfile
        self._module_paths = dict(module_paths or {})

    def test_modules(self, layer: str) -> list[str]:
        """Return *layer* plus every layer implementing part of it, sorted.

        Iterates to a fixed point because ``impl`` chains may be several
        levels deep: a layer implementing a layer that implements *layer*
        is pulled in as well.
        """
        layers = self._layerfile.layer
        if layer not in layers:
            msg = f"layer `{layer}` is not declared; the dependency graph should have caught this"
            raise InternalInvariantError(msg)

        modules = {layer}
        changed = True
        while changed:
            changed = False
            for name in sorted(layers):
                if name not in modules and layers[name].impl_of & modules:
                    modules.add(name)
                    changed = True

        result = sorted(modules)
        logger.debug("test modules for layer `%s`: %s", layer, result)
        return result

    def direct_dependencies(self, modules: Iterable[str]) -> set[str]:
        """Union of the direct ``depends-on`` of *modules*, minus *modules*."""
        members = set(modules)
        deps: set[str] = set()
        for module in members:
            layer = self._layerfile.layer.get(module)
            if layer is not None:
                deps |= layer.depends_on
        return deps - members

    def extra_modules(self, all_modules: Iterable[str]) -> set[str]:
        """Modules that are neither a declared layer nor excluded."""
        extra = set(all_modules) - set(self._layerfile.layer) - self._layerfile.crate.exclude
        logger.debug("extra modules: %s", sorted(extra))
        return extra

    def module_path(self, name: str) -> Path:
        """Absolute source file of the top-level module *name*."""
        try:
            return self._module_paths[name]
        except KeyError:
            msg = f"module `{name}` not found in entry file"
            raise ResolutionError(msg) from None
