"""Unit tests for flow_frontend_cli.output."""

from __future__ import annotations

import json
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from flow_frontend import ArtifactManifest, Tier
from flow_frontend.manifest import file_key, shell_key
from flow_frontend_cli import output


@pytest.fixture
def plain_console() -> Generator[None, None, None]:
    """Swap in a colorless console writing to the captured stdout."""
    original = output.console
    output.console = output.create_console(no_color=True)
    yield
    output.console = original


@pytest.fixture
def manifest() -> ArtifactManifest:
    es5 = Path("out/frontend-es5")
    es6 = Path("out/frontend-es6")
    return ArtifactManifest(
        entries={
            shell_key(Tier.ES5): es5 / "frontend-shell.html",
            file_key(Tier.ES5, "images/logo.png"): es5 / "images/logo.1a2b3c4d5e.png",
            shell_key(Tier.ES6): es6 / "frontend-shell.html",
        },
        tier_directories={Tier.ES6: es6, Tier.ES5: es5},
    )


class TestCreateConsole:
    """Tests for create_console()."""

    def test_no_color(self) -> None:
        assert output.create_console(no_color=True).no_color is True

    def test_respects_env_var(self) -> None:
        with patch.object(output, "_force_no_color", True):
            assert output.create_console().no_color is True


@pytest.mark.usefixtures("plain_console")
class TestStatusLines:
    """Tests for success() and error()."""

    def test_success(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.success("Toolchain installed")
        assert "✓ Toolchain installed" in capsys.readouterr().out

    def test_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        output.error("transpile stage (es5) failed")
        assert "✗ transpile stage (es5) failed" in capsys.readouterr().out


@pytest.mark.usefixtures("plain_console")
class TestManifestOutput:
    """Tests for print_manifest() and tier_summary()."""

    def test_print_manifest_is_the_written_json(
        self, manifest: ArtifactManifest, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output.print_manifest(manifest)

        printed = json.loads(capsys.readouterr().out)
        assert printed["entries"]["es5:shell"] == "out/frontend-es5/frontend-shell.html"
        assert ArtifactManifest.model_validate(printed) == manifest

    def test_summary_rows_per_tier(self, manifest: ArtifactManifest) -> None:
        table = output.tier_summary(manifest)

        assert table.row_count == 2
        tiers, directories, shells, counts = (list(column.cells) for column in table.columns)
        assert tiers == ["es5", "es6"]
        assert directories == ["out/frontend-es5", "out/frontend-es6"]
        assert shells == ["frontend-shell.html", "frontend-shell.html"]
        assert counts == ["2", "1"]

    def test_summary_without_tiers(self) -> None:
        assert output.tier_summary(ArtifactManifest()).row_count == 0
