"""Error taxonomy for layered-crate.

Every fatal condition is a subclass of :class:`LayeredCrateError` so the
CLI can report it uniformly.  A layer that fails to build is *not* an
exception: it is recorded in the run report and the run continues.
"""

from __future__ import annotations

from typing import ClassVar


class LayeredCrateError(Exception):
    """Base class for all fatal layered-crate errors."""

    code: ClassVar[str] = "ERROR"


# --- Declaration errors (abort before any build) ---


class DeclarationError(LayeredCrateError):
    """The Layerfile is malformed or describes an invalid graph."""

    code = "DECLARATION"


class LayerfileError(DeclarationError):
    """The Layerfile could not be read, parsed, or validated."""

    code = "LAYERFILE"


class DanglingReferenceError(DeclarationError):
    """A layer references a layer that is not declared."""

    code = "MISSING_LAYER"

    def __init__(self, name: str, path: list[str]) -> None:
        self.name = name
        self.path = list(path)
        chain = " -> ".join(self.path)
        super().__init__(
            f"layer `{name}` not found in dependency graph, stack: {chain}. "
            f"(You need to declare [layer.{name}] even if it has no dependencies)"
        )


class CycleError(DeclarationError):
    """The declared dependencies contain a cycle."""

    code = "CYCLE"

    def __init__(self, path: list[str]) -> None:
        self.path = list(path)
        super().__init__(f"circular dependency detected: {' -> '.join(self.path)}")


# --- Resolution errors ---


class ResolutionError(LayeredCrateError):
    """A module source file could not be located."""

    code = "RESOLUTION"


class SourceSyntaxError(ResolutionError):
    """The crate entry file could not be tokenized."""

    code = "SYNTAX"


class ManifestError(LayeredCrateError):
    """Cargo.toml could not be read or lacks required fields."""

    code = "MANIFEST"


# --- Build errors ---


class BaselineBuildError(LayeredCrateError):
    """The unrestricted crate failed to build before any layer was checked."""

    code = "BASELINE_FAILED"


class CompilerSpawnError(LayeredCrateError):
    """The compiler binary could not be started."""

    code = "COMPILER_UNAVAILABLE"


class InternalInvariantError(LayeredCrateError):
    """A condition that earlier validation should have ruled out."""

    code = "INTERNAL"
