"""Tests for the htsroute.cli group."""

import pytest
from click.testing import CliRunner

import htsroute
from htsroute.cli import cli


@pytest.mark.parametrize("args", [["--version"], ["version"]])
def test_version_is_bare(args: list[str]):
    result = CliRunner().invoke(cli, args)

    assert result.exit_code == 0
    assert result.output == f"{htsroute.__version__}\n"


def test_help_lists_visible_commands():
    result = CliRunner().invoke(cli, ["help"])

    assert result.exit_code == 0
    first_line = result.output.splitlines()[0]
    assert first_line == "Commands: resolve, route, version"
    assert "COMMAND --help" in result.output


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_usage_mentions_subcommands(flag: str):
    result = CliRunner().invoke(cli, [flag])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    for name in ("resolve", "route", "version"):
        assert name in result.output


@pytest.mark.parametrize("command", ["resolve", "route"])
def test_subcommands_require_an_argument(command: str):
    result = CliRunner().invoke(cli, [command])

    assert result.exit_code == 2
    assert "Missing argument" in result.output
