"""Cargo.toml reader.

Extracts what the scratch workspace needs from the crate manifest: the
package name, the library entry file, the dependency tables, and the
features.  Plain relative ``path`` dependencies are rebased to absolute
paths so the copied manifest still finds them from the scratch directory.
``workspace = true`` dependencies are copied as they are.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import BaseModel, Field

from layered_crate.domain.errors import ManifestError

logger = logging.getLogger(__name__)

DEFAULT_LIB_ENTRYPOINT = "src/lib.rs"
_DEPENDENCY_KEYS = ("dependencies", "dev-dependencies", "build-dependencies")


class ManifestInfo(BaseModel):
    """Resolved view of a crate manifest.

    Attributes:
        package_name: ``package.name``.
        edition: ``package.edition`` if set.
        manifest_dir: Absolute directory containing ``Cargo.toml``.
        lib_entrypoint: Library entry file relative to *manifest_dir*.
        lib_entrypoint_content: Text of the library entry file.
        content: Serialized manifest with dependency paths rebased.
        dependencies: ``[dependencies]`` table, rebased.
        build_dependencies: ``[build-dependencies]`` table, rebased.
        target: ``[target]`` table, rebased.
        dep_features: Feature name to its ``dep:`` entries.
        default_features: ``features.default``.
    """

    model_config = {"frozen": True}

    package_name: str
    edition: str | None = None
    manifest_dir: Path
    lib_entrypoint: str = DEFAULT_LIB_ENTRYPOINT
    lib_entrypoint_content: str
    content: str
    dependencies: dict[str, Any] | None = None
    build_dependencies: dict[str, Any] | None = None
    target: dict[str, Any] | None = None
    dep_features: dict[str, list[str]] = Field(default_factory=dict)
    default_features: list[str] = Field(default_factory=list)

    @property
    def entry_path(self) -> Path:
        return self.manifest_dir / self.lib_entrypoint

    @property
    def test_package_name(self) -> str:
        """Name of the generated package used for restricted builds."""
        return f"{self.package_name}-layer-test-{len(self.package_name)}"


def load_manifest(manifest_path: Path) -> ManifestInfo:
    """Read the manifest at *manifest_path*.

    Raises:
        ManifestError: unreadable file, invalid TOML, missing
            ``package.name``, or an unusable ``lib.path``.
    """
    logger.debug("reading Cargo.toml at %s", manifest_path)
    try:
        raw = manifest_path.read_text(encoding="utf-8")
        manifest_dir = manifest_path.resolve().parent
    except OSError as exc:
        msg = f"failed to read {manifest_path}: {exc}"
        raise ManifestError(msg) from exc
    try:
        data: dict[str, Any] = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        msg = f"failed to parse {manifest_path} as TOML: {exc}"
        raise ManifestError(msg) from exc

    package = data.get("package")
    name = package.get("name") if isinstance(package, dict) else None
    if not isinstance(name, str):
        msg = f"failed to read package.name from {manifest_path}"
        raise ManifestError(msg)
    edition = package.get("edition") if isinstance(package.get("edition"), str) else None

    lib_entrypoint = _lib_entrypoint(data, manifest_path)
    entry_path = manifest_dir / lib_entrypoint
    try:
        entry_content = entry_path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"failed to read lib entrypoint at {entry_path}: {exc}"
        raise ManifestError(msg) from exc

    _rebase_dependency_paths(data, manifest_dir)
    for target_name, target_table in (data.get("target") or {}).items():
        if isinstance(target_table, dict):
            logger.debug("rebasing dependency paths for target %s", target_name)
            _rebase_dependency_paths(target_table, manifest_dir)

    dep_features, default_features = _features(data.get("features"))
    return ManifestInfo(
        package_name=name,
        edition=edition,
        manifest_dir=manifest_dir,
        lib_entrypoint=lib_entrypoint,
        lib_entrypoint_content=entry_content,
        content=tomli_w.dumps(data),
        dependencies=_table(data, "dependencies"),
        build_dependencies=_table(data, "build-dependencies"),
        target=_table(data, "target"),
        dep_features=dep_features,
        default_features=default_features,
    )


def manifest_has_workspace(manifest_path: Path) -> bool:
    """Whether the manifest at *manifest_path* declares ``[workspace]``.

    Unreadable or invalid manifests count as having none.
    """
    try:
        data = tomllib.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        logger.debug("cannot read %s, assuming no workspace section", manifest_path)
        return False
    return "workspace" in data


def _lib_entrypoint(data: dict[str, Any], manifest_path: Path) -> str:
    lib = data.get("lib")
    if lib is None:
        return DEFAULT_LIB_ENTRYPOINT
    path = lib.get("path") if isinstance(lib, dict) else None
    if path is None:
        return DEFAULT_LIB_ENTRYPOINT
    if not isinstance(path, str):
        msg = f"failed to read lib.path from {manifest_path}"
        raise ManifestError(msg)
    if Path(path).is_absolute():
        msg = f"lib entrypoint path is absolute: {path}"
        raise ManifestError(msg)
    return path


def _rebase_dependency_paths(table: dict[str, Any], base: Path) -> None:
    for key in _DEPENDENCY_KEYS:
        deps = table.get(key)
        if not isinstance(deps, dict):
            continue
        for dep_name, spec in deps.items():
            if not isinstance(spec, dict) or spec.get("workspace") is True:
                continue
            path = spec.get("path")
            if not isinstance(path, str):
                continue
            resolved = (base / path).resolve()
            if not resolved.exists():
                logger.warning("path for dependency '%s' does not exist: %s", dep_name, resolved)
                continue
            spec["path"] = str(resolved)


def _features(features: Any) -> tuple[dict[str, list[str]], list[str]]:
    if not isinstance(features, dict):
        return {}, []
    dep_features: dict[str, list[str]] = {}
    for name, entries in features.items():
        if not isinstance(entries, list):
            logger.warning("feature '%s' is not an array, skipping dependencies", name)
            dep_features[name] = []
            continue
        dep_features[name] = [e for e in entries if isinstance(e, str) and e.startswith("dep:")]
    default = features.get("default")
    default_features = [f for f in default if isinstance(f, str)] if isinstance(default, list) else []
    return dep_features, default_features


def _table(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    return value if isinstance(value, dict) else None
