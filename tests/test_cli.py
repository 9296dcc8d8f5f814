import json
from pathlib import Path

from click.testing import CliRunner

from tsdoclet.cli import main

SAMPLES = Path(__file__).parent / "samples"

MODULE_WITHOUT_COMMENTS = (
    "declare module 'myModule' {\n"
    "\texport var moduleMember: string;\n"
    "\texport function moduleFunction(param1: string, param2: number): boolean;\n"
    "}\n"
)


def _expected(name):
    return (SAMPLES / f"{name}.d.ts").read_text(encoding="utf-8")


def test_prints_declarations_to_stdout():
    runner = CliRunner()
    result = runner.invoke(main, [str(SAMPLES / "overloading.json")])
    assert result.exit_code == 0, result.output
    assert result.stdout == _expected("overloading")


def test_reads_stdin():
    runner = CliRunner()
    text = (SAMPLES / "module.json").read_text(encoding="utf-8")
    result = runner.invoke(main, ["-"], input=text)
    assert result.exit_code == 0, result.output
    assert result.stdout == _expected("module")


def test_destination_directory(tmp_path):
    runner = CliRunner()
    result = runner.invoke(main, [str(SAMPLES / "propparams.json"), "-d", str(tmp_path)])
    assert result.exit_code == 0, result.output
    written = (tmp_path / "jsdoc-results.d.ts").read_text(encoding="utf-8")
    assert written == _expected("propparams")


def test_destination_file(tmp_path):
    runner = CliRunner()
    target = tmp_path / "types" / "index.d.ts"
    result = runner.invoke(main, [str(SAMPLES / "module.json"), "--destination", str(target)])
    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8") == _expected("module")


def test_config_file(tmp_path):
    config = tmp_path / "tsdoclet.toml"
    config.write_text("[output]\nemit_comments = false\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(main, [str(SAMPLES / "module.json"), "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert result.stdout == MODULE_WITHOUT_COMMENTS


def test_fatal_diagnostics_exit_with_failure(tmp_path):
    source = tmp_path / "doclets.json"
    source.write_text(
        json.dumps(
            [
                {"kind": "class", "name": "X", "longname": "X"},
                {"kind": "member", "name": "X", "longname": "X"},
            ]
        ),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(main, [str(source)])
    assert result.exit_code == 1
    assert "declare" not in result.output


def test_invalid_json_is_a_usage_error(tmp_path):
    source = tmp_path / "doclets.json"
    source.write_text("{not json", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(main, [str(source)])
    assert result.exit_code == 2
    assert "not valid JSON" in result.output


def test_json_must_be_an_array(tmp_path):
    source = tmp_path / "doclets.json"
    source.write_text('{"kind": "function"}', encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(main, [str(source)])
    assert result.exit_code == 2


def test_missing_source():
    runner = CliRunner()
    result = runner.invoke(main, ["does-not-exist.json"])
    assert result.exit_code == 2
