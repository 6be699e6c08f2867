"""Tests for apictl.generator.param_mapper.

Covers:
- option naming and help text
- boolean options accepted bare
- collected values turned back into raw ``--flag=value`` strings
"""

from __future__ import annotations

from typing import Any

import click
from click.testing import CliRunner

from apictl.generator.param_mapper import (
    build_help,
    build_option,
    build_options,
    option_name,
    to_raw_args,
)
from apictl.models import Command, CommandParameter, ParameterLocation, ParameterType


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _param(flag: str, **kwargs: Any) -> CommandParameter:
    return CommandParameter(name=flag, flag=flag, **kwargs)


def _command(*params: CommandParameter) -> Command:
    return Command(service="svc", group="grp", name="op", parameters=params)


def _collect(command: Command, args: list[str]) -> list[str]:
    """Run a click command built from *command* and return the raw args it collected."""
    collected: list[list[str]] = []

    def callback(**values: Any) -> None:
        collected.append(to_raw_args(command, values))

    cli = click.Command("op", callback=callback, params=list(build_options(command)))
    result = CliRunner().invoke(cli, args)
    assert result.exit_code == 0, result.output
    return collected[0]


# ------------------------------------------------------------------ #
# Naming and help
# ------------------------------------------------------------------ #


class TestOptionName:
    def test_positional_name(self) -> None:
        assert option_name(0) == "p0"
        assert option_name(12) == "p12"


class TestBuildHelp:
    def test_description_and_type(self) -> None:
        param = _param("key", type=ParameterType.INTEGER, description="The Bucket Id")
        assert build_help(param) == "The Bucket Id [integer]"

    def test_required_allowed_and_default(self) -> None:
        param = _param(
            "mode",
            required=True,
            allowed_values=("fast", "slow"),
            default="fast",
        )
        assert build_help(param) == "[string, required] Allowed values: fast, slow. Default: fast."


class TestBuildOption:
    def test_option_shape(self) -> None:
        option = build_option(3, _param("content-type"))
        assert option.opts == ["--content-type"]
        assert option.name == "p3"
        assert option.required is False
        assert option.default is None

    def test_boolean_metavar(self) -> None:
        option = build_option(0, _param("verbose", type=ParameterType.BOOLEAN))
        assert option.metavar == "BOOLEAN"


class TestBuildOptions:
    def test_declaration_order(self) -> None:
        command = _command(_param("b"), _param("a"))
        assert [o.opts[0] for o in build_options(command)] == ["--b", "--a"]

    def test_one_option_per_parameter(self) -> None:
        command = _command(_param("key"), _param("content-type"))
        assert [o.name for o in build_options(command)] == ["p0", "p1"]


# ------------------------------------------------------------------ #
# Raw args
# ------------------------------------------------------------------ #


class TestToRawArgs:
    def test_skips_unset_values(self) -> None:
        command = _command(_param("a"), _param("b"), _param("c"))
        assert to_raw_args(command, {"p0": "1", "p1": None, "p2": "x y"}) == ["--a=1", "--c=x y"]

    def test_values_collected_by_click(self) -> None:
        command = _command(
            _param("folder-id", type=ParameterType.INTEGER, location=ParameterLocation.HEADER),
            _param("path"),
        )
        raw = _collect(command, ["--path", "dir/file.txt", "--folder-id", "7"])
        assert raw == ["--folder-id=7", "--path=dir/file.txt"]

    def test_bare_boolean(self) -> None:
        command = _command(_param("verbose", type=ParameterType.BOOLEAN), _param("name"))
        assert _collect(command, ["--verbose", "--name", "x"]) == ["--verbose=true", "--name=x"]

    def test_boolean_with_value(self) -> None:
        command = _command(_param("verbose", type=ParameterType.BOOLEAN))
        assert _collect(command, ["--verbose=false"]) == ["--verbose=false"]
