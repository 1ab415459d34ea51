"""Tests for the closure CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from layered_crate.cli import cli

IMPL_LAYERS = """\
[crate]
[layer.api]
depends-on = ["store"]
[layer.store]
depends-on = ["util"]
[layer.store_mem]
impl = ["store"]
depends-on = ["store", "util"]
[layer.util]
"""


@pytest.fixture(autouse=True)
def layered_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (tmp_path / "Layerfile.toml").write_text(IMPL_LAYERS, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestClosureCommand:
    def test_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "closure", "store"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)["data"]
        assert data["modules"] == ["store", "store_mem"]
        assert data["dependencies"] == ["util"]
        assert data["transitive"] == ["util"]

    def test_human(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["closure", "api"])
        assert result.exit_code == 0
        assert "  modules: api" in result.stdout
        assert "  dependencies: store" in result.stdout
        assert "transitive" not in result.stdout

    def test_verbose_shows_transitive(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-v", "closure", "api"])
        assert "  transitive: store, util" in result.stdout

    def test_unknown_layer(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["closure", "nope"])
        assert result.exit_code == 1
        assert "layer `nope` is not declared" in result.stderr

    def test_missing_argument(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["closure"])
        assert result.exit_code == 2
