"""
Tests for the CLI interface using Click's CliRunner.
"""

from pathlib import Path

from click.testing import CliRunner

from notebook_doc import AssetInfo, AssetOutput, TerminalText
from notebook_doc.cli import main

from conftest import make_notebook


def write_snapshot(nb, path="nb.json"):
    Path(path).write_text(nb.model_dump_json())
    return path


def sample_notebook():
    nb = make_notebook(
        ("s1", None, ["c1", "m2"]),
        ("s2", "s1", ["c3"]),
        ("s3", None, ["c4"]),
    )
    nb = nb.add_cell_output("c1", TerminalText(content="Hola amigo"))
    return nb.add_cell_output("c4", AssetOutput(assets=AssetInfo(hash="abcd", js_path="main.js")))


class TestGraphCommand:

    def test_lists_every_cell(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["graph", path])

            assert result.exit_code == 0, result.output
            for cell_id in ["setup", "c1", "m2", "c3", "c4"]:
                assert cell_id in result.output
            assert "branch" in result.output

    def test_evaluable_only_skips_markdown(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["graph", path, "--evaluable-only"])

            assert result.exit_code == 0, result.output
            assert "m2" not in result.output

    def test_missing_file(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["graph", "missing.json"])

            assert result.exit_code != 0

    def test_verbose_flag(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["--verbose", "graph", path])

            assert result.exit_code == 0, result.output


class TestOutputsCommand:

    def test_shows_outputs(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["outputs", path, "c1"])

            assert result.exit_code == 0, result.output
            assert "Hola amigo" in result.output

    def test_source_shown_before_outputs(self):
        nb = sample_notebook().update_cell("c1", source="print('Hola amigo')\nx = 1")
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(nb)
            result = runner.invoke(main, ["outputs", path, "c1"])

            assert result.exit_code == 0, result.output
            assert "x = 1" not in result.output
            assert result.output.index("Source:") < result.output.index("#0 terminal_text")

    def test_cell_without_outputs(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["outputs", path, "c3"])

            assert result.exit_code == 0, result.output
            assert "No outputs" in result.output

    def test_unknown_cell(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["outputs", path, "nope"])

            assert result.exit_code == 1
            assert "Cell not found" in result.output


class TestAssetCommand:

    def test_finds_asset(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["asset", path, "abcd"])

            assert result.exit_code == 0, result.output
            assert "main.js" in result.output

    def test_missing_asset(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            path = write_snapshot(sample_notebook())
            result = runner.invoke(main, ["asset", path, "zzzz"])

            assert result.exit_code == 1
            assert "No asset" in result.output
