"""Tests for Cargo.toml reading."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from layered_crate.domain.errors import ManifestError
from layered_crate.infrastructure.manifest import load_manifest, manifest_has_workspace


def _crate(root: Path, manifest: str, *, lib: str = "src/lib.rs") -> Path:
    entry = root / lib
    entry.parent.mkdir(parents=True, exist_ok=True)
    entry.write_text("mod a;\n", encoding="utf-8")
    path = root / "Cargo.toml"
    path.write_text(manifest, encoding="utf-8")
    return path


class TestLoadManifest:
    def test_basic(self, tmp_path: Path) -> None:
        info = load_manifest(_crate(tmp_path, '[package]\nname = "demo"\nedition = "2021"\n'))
        assert info.package_name == "demo"
        assert info.edition == "2021"
        assert info.lib_entrypoint == "src/lib.rs"
        assert info.lib_entrypoint_content == "mod a;\n"
        assert info.entry_path == tmp_path.resolve() / "src" / "lib.rs"
        assert info.test_package_name == "demo-layer-test-4"
        assert info.dependencies is None

    def test_custom_lib_path(self, tmp_path: Path) -> None:
        path = _crate(tmp_path, '[package]\nname = "x"\n[lib]\npath = "lib/root.rs"\n', lib="lib/root.rs")
        info = load_manifest(path)
        assert info.lib_entrypoint == "lib/root.rs"
        assert info.edition is None

    def test_absolute_lib_path_rejected(self, tmp_path: Path) -> None:
        path = _crate(tmp_path, f'[package]\nname = "x"\n[lib]\npath = "{tmp_path / "src" / "lib.rs"}"\n')
        with pytest.raises(ManifestError, match="absolute"):
            load_manifest(path)

    def test_relative_path_dependencies_rebased(self, tmp_path: Path) -> None:
        sibling = tmp_path / "sibling"
        sibling.mkdir()
        crate = tmp_path / "crate"
        path = _crate(
            crate,
            '[package]\nname = "x"\n'
            '[dependencies]\nsibling = { path = "../sibling" }\nserde = "1"\n'
            'shared = { workspace = true }\n'
            '[build-dependencies]\ngone = { path = "../gone" }\n'
            "[target.'cfg(unix)'.dependencies]\nunixy = { path = \"../sibling\" }\n",
        )
        info = load_manifest(path)
        assert info.dependencies is not None
        assert info.dependencies["sibling"]["path"] == str(sibling.resolve())
        assert info.dependencies["serde"] == "1"
        assert info.dependencies["shared"] == {"workspace": True}
        assert info.build_dependencies == {"gone": {"path": "../gone"}}
        assert info.target is not None
        assert info.target["cfg(unix)"]["dependencies"]["unixy"]["path"] == str(sibling.resolve())
        assert tomllib.loads(info.content)["dependencies"]["sibling"]["path"] == str(sibling.resolve())

    def test_features(self, tmp_path: Path) -> None:
        path = _crate(
            tmp_path,
            '[package]\nname = "x"\n'
            '[features]\ndefault = ["fast"]\nfast = []\nserde = ["dep:serde", "fast"]\n',
        )
        info = load_manifest(path)
        assert info.default_features == ["fast"]
        assert info.dep_features == {"default": [], "fast": [], "serde": ["dep:serde"]}

    def test_missing_name(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError, match="package.name"):
            load_manifest(_crate(tmp_path, "[package]\n"))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError, match="failed to read"):
            load_manifest(tmp_path / "Cargo.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError, match="TOML"):
            load_manifest(_crate(tmp_path, "[package\n"))

    def test_missing_entry_file(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text('[package]\nname = "x"\n', encoding="utf-8")
        with pytest.raises(ManifestError, match="lib entrypoint"):
            load_manifest(path)


class TestManifestHasWorkspace:
    def test_true(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text("[workspace]\nmembers = []\n", encoding="utf-8")
        assert manifest_has_workspace(path)

    def test_false(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text('[package]\nname = "x"\n', encoding="utf-8")
        assert not manifest_has_workspace(path)

    def test_unreadable_counts_as_none(self, tmp_path: Path) -> None:
        assert not manifest_has_workspace(tmp_path / "missing.toml")
