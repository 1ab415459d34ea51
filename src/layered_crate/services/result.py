"""ServiceResult and the build report models.

INVARIANT: All service-layer entry points return ServiceResult.
The CLI formats it for humans or as JSON.  The layer checker itself
returns a :class:`CheckReport`, which the service embeds in ``data``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"check"``).
        data: Operation-specific payload.  Also set on failure when a
            partial report is available.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None


class BuildStatus(StrEnum):
    PASS = "pass"
    PASS_WITH_WARNING = "pass_with_warning"
    FAIL = "fail"

    @property
    def label(self) -> str:
        return {
            BuildStatus.PASS: "PASS",
            BuildStatus.PASS_WITH_WARNING: "PASS (with warning)",
            BuildStatus.FAIL: "FAIL",
        }[self]


class BuildOutcome(BaseModel):
    """Result of one compiler invocation.

    Attributes:
        layer: Layer checked, or None for the baseline build.
        status: PASS, PASS (with warning), or FAIL.
        exit_code: Compiler exit code.
        warnings: Warning diagnostics seen.
        errors: Error diagnostics seen.
        hints: Advisory hints, each prefixed by the diagnostic it explains.
        modules: Modules compiled directly (restricted builds only).
        dependencies: Modules imported from the full crate (restricted builds only).
    """

    model_config = {"frozen": True}

    layer: str | None = None
    status: BuildStatus
    exit_code: int
    warnings: int = 0
    errors: int = 0
    hints: list[str] = Field(default_factory=list)
    modules: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status is not BuildStatus.FAIL

    @property
    def label(self) -> str:
        """Report line, e.g. ``PASS (with warning) api``."""
        target = self.layer if self.layer is not None else "(baseline)"
        return f"{self.status.label} {target}"

    @classmethod
    def from_build(
        cls,
        *,
        layer: str | None,
        exit_code: int,
        warnings: int,
        errors: int,
        hints: list[str] | None = None,
        modules: list[str] | None = None,
        dependencies: list[str] | None = None,
    ) -> BuildOutcome:
        if exit_code != 0:
            status = BuildStatus.FAIL
        elif warnings:
            status = BuildStatus.PASS_WITH_WARNING
        else:
            status = BuildStatus.PASS
        return cls(
            layer=layer,
            status=status,
            exit_code=exit_code,
            warnings=warnings,
            errors=errors,
            hints=list(hints or []),
            modules=list(modules or []),
            dependencies=list(dependencies or []),
        )


class CheckReport(BaseModel):
    """Aggregate verdict of a run: the baseline plus every layer in order."""

    model_config = {"frozen": True}

    baseline: BuildOutcome
    layers: list[BuildOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.baseline.passed and all(outcome.passed for outcome in self.layers)

    @property
    def failed_layers(self) -> list[str]:
        return [o.layer for o in self.layers if not o.passed and o.layer is not None]
