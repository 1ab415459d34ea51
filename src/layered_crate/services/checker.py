"""LayerChecker — baseline build, then one restricted build per layer.

Run states: Idle -> BaselineBuild -> LayerCheck(layer) for each layer in
``top_down_order`` -> Done, or Aborted when the baseline fails or a fatal
error is raised.

Layer checks are strictly sequential: every check overwrites the same
scratch unit file before invoking the compiler.  A failing layer is
recorded and the run moves on, so one run reports every violation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from layered_crate.domain.errors import BaselineBuildError
from layered_crate.domain.locator import ModuleLocator
from layered_crate.infrastructure.compiler import format_if_possible
from layered_crate.services.diagnostics import ClassifiedLine, DiagnosticClassifier
from layered_crate.services.result import BuildOutcome, CheckReport
from layered_crate.services.synthesizer import UnitSynthesizer

if TYPE_CHECKING:
    from layered_crate.domain.graph import DependencyGraph
    from layered_crate.domain.layerfile import LayerFile
    from layered_crate.infrastructure.rust_source import EntryFile
    from layered_crate.infrastructure.workspace import ScratchWorkspace

logger = logging.getLogger(__name__)
log = structlog.get_logger(__name__)


class Runner(Protocol):
    """Anything that can run the compiler in a directory."""

    def run(self, cwd: Path, on_line: Callable[[str], None]) -> int: ...


class CheckListener(Protocol):
    """Receives build progress as it happens."""

    def build_started(self, layer: str | None) -> None: ...

    def line(self, layer: str | None, line: ClassifiedLine) -> None: ...

    def build_finished(self, outcome: BuildOutcome) -> None: ...


class NullListener:
    """Listener that ignores everything."""

    def build_started(self, layer: str | None) -> None:
        pass

    def line(self, layer: str | None, line: ClassifiedLine) -> None:
        pass

    def build_finished(self, outcome: BuildOutcome) -> None:
        pass


class LayerChecker:
    """Checks every declared layer against its allowed dependencies."""

    def __init__(
        self,
        *,
        layerfile: LayerFile,
        graph: DependencyGraph,
        entry: EntryFile,
        runner: Runner,
        workspace: ScratchWorkspace,
        listener: CheckListener | None = None,
        format_units: bool = False,
    ) -> None:
        self._graph = graph
        self._entry = entry
        self._runner = runner
        self._workspace = workspace
        self._listener: CheckListener = listener or NullListener()
        self._format_units = format_units
        self._locator = ModuleLocator(layerfile, entry.module_paths())
        self._synthesizer = UnitSynthesizer(entry)

    def run(self) -> CheckReport:
        """Build the crate once, then every layer in top-down order.

        Raises:
            BaselineBuildError: the unrestricted crate does not build; no
                layer is checked.
        """
        baseline = self._build(None, self._workspace.package_dir)
        if not baseline.passed:
            msg = "crate failed to build (see cargo output above)"
            raise BaselineBuildError(msg)
        if baseline.warnings:
            logger.warning("initial build finished with warning(s).")

        extra = self._locator.extra_modules(self._entry.all_modules())
        outcomes = [self.check_layer(layer, extra=extra) for layer in self._graph.top_down_order]
        report = CheckReport(baseline=baseline, layers=outcomes)
        log.debug("check.done", ok=report.ok, failed=report.failed_layers)
        return report

    def plan(self, layer: str, *, extra: Iterable[str] = ()) -> tuple[list[str], list[str]]:
        """Modules compiled directly and dependencies imported for *layer*."""
        test_modules = self._locator.test_modules(layer)
        modules = set(test_modules) | set(extra)
        deps = self._locator.direct_dependencies(test_modules) - modules
        return sorted(modules), sorted(deps)

    def check_layer(self, layer: str, *, extra: Iterable[str] = ()) -> BuildOutcome:
        """Synthesize the restricted unit for *layer* and build it."""
        modules, deps = self.plan(layer, extra=extra)
        unit = self._synthesizer.produce_restricted_unit(modules, deps)
        unit_path = self._workspace.unit_path
        logger.debug("writing restricted unit for layer '%s' to %s", layer, unit_path)
        unit_path.write_text(unit, encoding="utf-8")
        if self._format_units:
            format_if_possible(unit_path, edition=self._workspace.edition)
        return self._build(layer, self._workspace.test_package_dir, modules=modules, deps=deps)

    def _build(
        self,
        layer: str | None,
        cwd: Path,
        *,
        modules: list[str] | None = None,
        deps: list[str] | None = None,
    ) -> BuildOutcome:
        classifier = DiagnosticClassifier(layer=layer)
        self._listener.build_started(layer)

        def on_line(raw: str) -> None:
            self._listener.line(layer, classifier.classify(raw))

        exit_code = self._runner.run(cwd, on_line)
        outcome = BuildOutcome.from_build(
            layer=layer,
            exit_code=exit_code,
            warnings=classifier.warning_count,
            errors=classifier.error_count,
            hints=classifier.hints,
            modules=modules,
            dependencies=deps,
        )
        log.debug(
            "build.finished",
            layer=layer,
            status=outcome.status.value,
            warnings=outcome.warnings,
            errors=outcome.errors,
        )
        self._listener.build_finished(outcome)
        return outcome
