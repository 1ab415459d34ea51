"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, layered-crate.toml only
contains overrides.  Most projects need no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from layered_crate.infrastructure.compiler import DEFAULT_CARGO_ARGS


# --- layered-crate.toml sections ---


class CheckConfig(BaseModel):
    """[check] section."""

    model_config = {"frozen": True, "extra": "forbid"}

    temp_dir: str = "./target/layered-crate"
    layerfile: str = "./Layerfile.toml"
    manifest: str = "./Cargo.toml"
    cargo: str = "cargo"
    cargo_args: list[str] = Field(default_factory=lambda: list(DEFAULT_CARGO_ARGS))
    format_units: bool = True

