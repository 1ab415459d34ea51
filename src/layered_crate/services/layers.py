"""LayerService — the operations behind ``check``, ``order`` and ``closure``.

``check`` prepares the scratch workspace, builds the crate once and then
each layer with only its declared dependencies.  Fatal conditions come
back as a failed :class:`ServiceResult` carrying the error code of the
:class:`LayeredCrateError` raised; failing layers come back as a failed
result with code ``LAYER_FAILED`` and the full report in ``data``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from layered_crate.domain.errors import LayeredCrateError
from layered_crate.domain.locator import ModuleLocator
from layered_crate.infrastructure.compiler import CompilerRunner
from layered_crate.infrastructure.manifest import load_manifest
from layered_crate.infrastructure.rust_source import EntryFile
from layered_crate.infrastructure.workspace import prepare_workspace
from layered_crate.services.base import BaseService
from layered_crate.services.checker import LayerChecker
from layered_crate.services.result import ServiceError, ServiceResult
from layered_crate.services.synthesizer import UnitSynthesizer

if TYPE_CHECKING:
    from layered_crate.services.checker import CheckListener, Runner

logger = logging.getLogger(__name__)
log = structlog.get_logger(__name__)


def _failure(op: str, exc: LayeredCrateError) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=exc.code, message=str(exc)),
    )


class LayerService(BaseService):
    """Layer checks and Layerfile queries."""

    # ------------------------------------------------------------------
    # check
    # ------------------------------------------------------------------

    def check(
        self,
        *,
        temp_dir: str | Path | None = None,
        layerfile: str | Path | None = None,
        manifest: str | Path | None = None,
        cargo_args: Sequence[str] | None = None,
        format_units: bool | None = None,
        listener: CheckListener | None = None,
        runner: Runner | None = None,
    ) -> ServiceResult:
        """Check every layer of the crate.

        Arguments left as None fall back to the ``[check]`` settings.
        *runner* replaces the cargo subprocess, mainly for tests.
        """
        config = self._settings.check
        started = time.perf_counter()
        try:
            declared, graph = self._load_layers(layerfile)
            info = load_manifest(self._path(manifest, config.manifest))
            entry = EntryFile.resolve(info.lib_entrypoint_content, info.entry_path.parent)
            full_unit = UnitSynthesizer(entry).produce_full_unit()

            do_format = config.format_units if format_units is None else format_units
            workspace = prepare_workspace(
                self._path(temp_dir, config.temp_dir),
                info,
                full_unit,
                format_units=do_format,
            )
            args = list(cargo_args) if cargo_args else list(config.cargo_args)
            checker = LayerChecker(
                layerfile=declared,
                graph=graph,
                entry=entry,
                runner=runner or CompilerRunner(config.cargo, args),
                workspace=workspace,
                listener=listener,
                format_units=do_format,
            )
            report = checker.run()
        except LayeredCrateError as exc:
            logger.debug("check aborted: %s", exc)
            return _failure("check", exc)

        elapsed = round(time.perf_counter() - started, 2)
        data = report.model_dump(mode="json")
        data["order"] = list(graph.top_down_order)
        data["failed"] = report.failed_layers
        meta = {"duration_s": elapsed, "package": info.package_name}
        log.info("check.finished", ok=report.ok, layers=len(report.layers), seconds=elapsed)

        if not report.ok:
            failed = report.failed_layers
            return ServiceResult(
                ok=False,
                op="check",
                data=data,
                error=ServiceError(
                    code="LAYER_FAILED",
                    message=f"{len(failed)} layer(s) failed: {', '.join(failed)}",
                    detail={"failed": failed},
                ),
                meta=meta,
            )
        warnings = [f"layer {o.layer} built with warnings" for o in report.layers if o.warnings]
        return ServiceResult(ok=True, op="check", data=data, warnings=warnings, meta=meta)

    # ------------------------------------------------------------------
    # order / closure
    # ------------------------------------------------------------------

    def order(self, *, layerfile: str | Path | None = None) -> ServiceResult:
        """Validate the Layerfile and return the top-down build order."""
        try:
            _, graph = self._load_layers(layerfile)
        except LayeredCrateError as exc:
            return _failure("order", exc)

        return ServiceResult(
            ok=True,
            op="order",
            data={
                "order": list(graph.top_down_order),
                "dependencies": {k: list(v) for k, v in graph.adjacency().items()},
            },
        )

    def closure(self, layer: str, *, layerfile: str | Path | None = None) -> ServiceResult:
        """Modules compiled for *layer* and the layers it may import.

        Modules outside every layer are not listed; they depend on the
        crate's entry file, which this query does not read.
        """
        try:
            declared, graph = self._load_layers(layerfile)
        except LayeredCrateError as exc:
            return _failure("closure", exc)

        if layer not in graph:
            return ServiceResult(
                ok=False,
                op="closure",
                error=ServiceError(
                    code="UNKNOWN_LAYER",
                    message=f"layer `{layer}` is not declared in the Layerfile",
                    detail={"layers": declared.layer_names()},
                ),
            )

        locator = ModuleLocator(declared)
        modules = locator.test_modules(layer)
        deps = sorted(locator.direct_dependencies(modules))
        return ServiceResult(
            ok=True,
            op="closure",
            data={
                "layer": layer,
                "modules": modules,
                "dependencies": deps,
                "transitive": sorted(graph.transitive_dependencies(layer)),
            },
        )
