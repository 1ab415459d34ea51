"""BaseService — foundation for layered-crate services.

Every service receives the resolved :class:`LayeredSettings` at
construction time and turns paths from settings or CLI overrides into
absolute paths against the project root.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from layered_crate.domain.graph import DependencyGraph
from layered_crate.domain.layerfile import LayerFile, load_layerfile

if TYPE_CHECKING:
    from layered_crate.config.settings import LayeredSettings

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class LayerService(BaseService):
            def order(self) -> ServiceResult:
                layerfile, graph = self._load_layers(None)
                ...
    """

    def __init__(self, settings: LayeredSettings) -> None:
        self._settings = settings

    def _path(self, override: str | Path | None, default: str) -> Path:
        """Absolute path from a CLI override, else the configured default."""
        chosen = override if override is not None else default
        return self._settings.resolve(chosen).resolve()

    def _load_layers(self, layerfile: str | Path | None) -> tuple[LayerFile, DependencyGraph]:
        """Read and validate the Layerfile.

        Raises:
            LayerfileError: unreadable or malformed file.
            DeclarationError: dangling reference or cycle.
        """
        path = self._path(layerfile, self._settings.check.layerfile)
        logger.debug("loading layerfile %s", path)
        declared = load_layerfile(path)
        return declared, DependencyGraph.build(declared.layer)
