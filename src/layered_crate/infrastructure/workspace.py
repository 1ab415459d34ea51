"""Scratch workspace for baseline and restricted builds.

Layout under the temp directory::

    <temp>/Cargo.toml                    [workspace] listing the members
    <temp>/<package>/Cargo.toml          copy of the crate manifest
    <temp>/<package>/<lib path>          full unit (absolute module paths)
    <temp>/<package>-layer-test-<n>/     test package
        Cargo.toml                       depends on ../<package> as __layer_test
        lib.rs                           restricted unit, rewritten per layer

Directories are created if missing and never deleted.
"""

from __future__ import annotations

import copy
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w

from layered_crate.infrastructure.compiler import format_if_possible
from layered_crate.infrastructure.manifest import ManifestInfo, manifest_has_workspace

logger = logging.getLogger(__name__)

LAYER_TEST_DEPENDENCY = "__layer_test"
TEST_PACKAGE_EDITION = "2024"
TEST_UNIT_NAME = "lib.rs"


@dataclass(frozen=True)
class ScratchWorkspace:
    """Paths of a prepared scratch workspace."""

    root: Path
    package_dir: Path
    test_package_dir: Path
    edition: str | None = None

    @property
    def unit_path(self) -> Path:
        """The single restricted unit file, overwritten for every layer."""
        return self.test_package_dir / TEST_UNIT_NAME


def prepare_workspace(
    temp_dir: Path,
    manifest: ManifestInfo,
    full_unit: str,
    *,
    format_units: bool = True,
) -> ScratchWorkspace:
    """Create or refresh the scratch workspace for *manifest*."""
    logger.debug("preparing workspace in %s", temp_dir)
    package_dir = temp_dir / manifest.package_name
    test_package_dir = temp_dir / manifest.test_package_name
    package_dir.mkdir(parents=True, exist_ok=True)
    test_package_dir.mkdir(parents=True, exist_ok=True)

    (package_dir / "Cargo.toml").write_text(manifest.content, encoding="utf-8")
    test_manifest = make_test_package_manifest(manifest)
    (test_package_dir / "Cargo.toml").write_text(test_manifest, encoding="utf-8")
    # Members are the directories holding a manifest, so both must exist first
    _write_workspace_manifest(temp_dir)

    lib_path = package_dir / manifest.lib_entrypoint
    lib_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("writing full unit to %s", lib_path)
    lib_path.write_text(full_unit, encoding="utf-8")
    if format_units:
        format_if_possible(lib_path, edition=manifest.edition)

    logger.debug("workspace prepared successfully")
    return ScratchWorkspace(
        root=temp_dir,
        package_dir=package_dir,
        test_package_dir=test_package_dir,
        edition=manifest.edition or TEST_PACKAGE_EDITION,
    )


def _write_workspace_manifest(temp_dir: Path) -> None:
    path = temp_dir / "Cargo.toml"
    data: dict[str, Any] = {}
    if path.is_file():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("failed to read existing workspace %s: %s, creating new one", path, exc)
            data = {}

    workspace = data.get("workspace")
    if not isinstance(workspace, dict):
        workspace = {}
        data["workspace"] = workspace
    workspace.setdefault("resolver", "2")

    members: list[str] = []
    for entry in sorted(temp_dir.iterdir()):
        if not entry.is_dir() or entry.name == "target":
            continue
        member_manifest = entry / "Cargo.toml"
        if member_manifest.is_file() and not manifest_has_workspace(member_manifest):
            members.append(entry.name)
    logger.debug("setting members of workspace: %s", members)
    workspace["members"] = members
    path.write_text(tomli_w.dumps(data), encoding="utf-8")


def make_test_package_manifest(manifest: ManifestInfo) -> str:
    """Manifest of the test package that hosts restricted units."""
    name = manifest.package_name
    doc: dict[str, Any] = {
        "package": {
            "name": manifest.test_package_name,
            "version": "0.0.0",
            "edition": manifest.edition or TEST_PACKAGE_EDITION,
        },
        "lib": {"path": TEST_UNIT_NAME},
    }
    if manifest.dependencies is not None:
        doc["dependencies"] = copy.deepcopy(manifest.dependencies)
    if manifest.build_dependencies is not None:
        doc["build-dependencies"] = copy.deepcopy(manifest.build_dependencies)
    if manifest.target is not None:
        doc["target"] = copy.deepcopy(manifest.target)

    dependencies = doc.setdefault("dependencies", {})
    dependencies[LAYER_TEST_DEPENDENCY] = {
        "path": f"../{name}",
        "package": name,
        "default-features": False,
    }

    features: dict[str, list[str]] = {"default": list(manifest.default_features)}
    for feature in sorted(manifest.dep_features):
        if feature == "default":
            continue
        features[feature] = [
            f"{LAYER_TEST_DEPENDENCY}/{feature}",
            *manifest.dep_features[feature],
        ]
    doc["features"] = features
    return tomli_w.dumps(doc)
