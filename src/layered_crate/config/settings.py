"""Settings for one layered-crate invocation.

Sources, strongest first:

1. keyword arguments (the global flags Click parsed)
2. ``LAYERED_CRATE_*`` environment variables, ``__`` between nested keys
   (``LAYERED_CRATE_CHECK__CARGO=cross``)
3. ``layered-crate.toml``, found by :func:`find_config` or named with
   ``--config``
4. defaults of :class:`CheckConfig` and of the fields below

The config file is a custom pydantic-settings source.  Which file it reads
is decided in :meth:`LayeredSettings.from_cli` and handed to
``settings_customise_sources`` through a thread-local, since that hook is a
classmethod with a fixed signature.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from layered_crate.config.discovery import find_config
from layered_crate.config.models import CheckConfig

_pending = threading.local()


def _read_config(path: Path | None) -> dict[str, Any]:
    if path is None or not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


def _locate(config_path: str | None, start: Path | None) -> Path | None:
    if not config_path:
        return find_config(start)
    explicit = Path(config_path)
    return explicit if explicit.is_file() else None


class ConfigFileSource(PydanticBaseSettingsSource):
    """Settings source backed by a parsed ``layered-crate.toml``."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self.path = path
        self.values = _read_config(path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self.values.get(field_name), field_name, field_name in self.values

    def __call__(self) -> dict[str, Any]:
        return dict(self.values)


class LayeredSettings(BaseSettings):
    """Everything a command needs to know about this invocation.

    Frozen once built and kept on the :class:`AppContext`.

    Attributes:
        project_root: Base for relative paths: the directory holding the
            config file, else the working directory.
        config_path: Config file that was read, if any.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="LAYERED_CRATE_",
        env_nested_delimiter="__",
    )

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # global flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # [check]
    check: CheckConfig = Field(default_factory=CheckConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Kwargs, then environment, then the config file.  No dotenv or secrets."""
        config_file = ConfigFileSource(settings_cls, getattr(_pending, "path", None))
        return init_settings, env_settings, config_file

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **flags: Any,
    ) -> LayeredSettings:
        """Build settings for a CLI run.

        An explicit *config_path* that does not exist is ignored, not
        searched for.  Without *project_root* the config file's directory
        (or the working directory) is used.
        """
        source = _locate(config_path, project_root)
        if project_root is None:
            project_root = source.parent if source is not None else Path.cwd()

        _pending.path = source
        try:
            return cls(project_root=project_root, config_path=source, **flags)
        finally:
            _pending.path = None

    def resolve(self, path: str | Path) -> Path:
        """*path* itself if absolute, else relative to :attr:`project_root`."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.project_root / candidate
