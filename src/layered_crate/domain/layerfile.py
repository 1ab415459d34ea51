"""Layerfile models — the declared layering of a crate.

A ``Layerfile.toml`` has a required ``[crate]`` section and an optional
``[layer.<name>]`` table per layer::

    [crate]
    exclude = ["tests_util"]

    [layer.api]
    depends-on = ["utils", "sub_system_1"]

    [layer.sub_system_1_impl]
    impl = ["sub_system_1"]

Unknown keys are rejected.  ``depends-on`` may also be spelled
``depends_on``.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from layered_crate.domain.errors import LayerfileError

LAYERFILE_NAME = "Layerfile.toml"


class Layer(BaseModel):
    """[layer.<name>] section."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    depends_on: frozenset[str] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("depends-on", "depends_on"),
    )
    impl_of: frozenset[str] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("impl", "impl_of"),
    )


class CrateSection(BaseModel):
    """[crate] section."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Modules here are never compiled into a restricted build
    exclude: frozenset[str] = Field(default_factory=frozenset)


class LayerFile(BaseModel):
    """Root model of a Layerfile."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    crate: CrateSection
    layer: dict[str, Layer] = Field(default_factory=dict)

    def layer_names(self) -> list[str]:
        """All declared layer names, sorted."""
        return sorted(self.layer)


def parse_layerfile(text: str, *, source: str = LAYERFILE_NAME) -> LayerFile:
    """Parse and validate Layerfile TOML text.

    Raises:
        LayerfileError: on invalid TOML or a schema violation.
    """
    try:
        data: dict[str, Any] = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        msg = f"failed to parse {source}: {exc}"
        raise LayerfileError(msg) from exc
    try:
        return LayerFile.model_validate(data)
    except ValidationError as exc:
        msg = f"invalid {source}: {exc}"
        raise LayerfileError(msg) from exc


def load_layerfile(path: Path) -> LayerFile:
    """Read and validate the Layerfile at *path*."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"failed to read {path}: {exc}"
        raise LayerfileError(msg) from exc
    return parse_layerfile(text, source=str(path))
