"""Tests for the output formatting system.

Covers:
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- JSON and text output modes
- print_table in JSON and text mode
- Raw byte output
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from apictl import output as output_module
from apictl.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


# ------------------------------------------------------------------ #
# Colour
# ------------------------------------------------------------------ #


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout / stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd):
        OutputManager(no_color=True).print_data("hello")
        out, err = capfd.readouterr()
        assert out == "hello\n"
        assert err == ""

    def test_print_data_keeps_single_newline(self, capfd):
        OutputManager(no_color=True).print_data("hello\n")
        out, _ = capfd.readouterr()
        assert out == "hello\n"

    def test_error_goes_to_stderr(self, capfd):
        OutputManager(no_color=True).error("boom")
        out, err = capfd.readouterr()
        assert out == ""
        assert err == "Error: boom\n"

    def test_warning_goes_to_stderr(self, capfd):
        OutputManager(no_color=True).warning("careful")
        out, err = capfd.readouterr()
        assert out == ""
        assert "Warning: careful" in err

    def test_error_with_color_keeps_message_on_one_line(self, capfd, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm")
        body = "x" * 300
        OutputManager().error(f"Server returned status code '400' and body '{body}'")
        _, err = capfd.readouterr()
        assert body in err

    def test_error_escapes_markup(self, capfd, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        OutputManager().error("body '[bold]x[/bold]'")
        _, err = capfd.readouterr()
        assert "[bold]x[/bold]" in err


class TestQuietMode:
    def test_quiet_suppresses_info(self, capfd):
        OutputManager(no_color=True, quiet=True).info("note")
        _, err = capfd.readouterr()
        assert err == ""

    def test_quiet_does_not_suppress_error(self, capfd):
        OutputManager(no_color=True, quiet=True).error("boom")
        _, err = capfd.readouterr()
        assert "boom" in err


# ------------------------------------------------------------------ #
# Response formatting
# ------------------------------------------------------------------ #


class TestJsonFormat:
    def test_dict_is_indented(self, capfd):
        OutputManager(format=OutputFormat.JSON).format_response({"status": "Done"})
        out, _ = capfd.readouterr()
        assert out == '{\n  "status": "Done"\n}\n'

    def test_json_string_is_reformatted(self, capfd):
        OutputManager(format=OutputFormat.JSON).format_response('{"a":1}')
        out, _ = capfd.readouterr()
        assert json.loads(out) == {"a": 1}
        assert out == '{\n  "a": 1\n}\n'

    def test_plain_string_as_is(self, capfd):
        OutputManager(format=OutputFormat.JSON).format_response("not json")
        out, _ = capfd.readouterr()
        assert out == "not json\n"

    def test_unicode_is_not_escaped(self, capfd):
        OutputManager(format=OutputFormat.JSON).format_response({"name": "Zürich"})
        out, _ = capfd.readouterr()
        assert "Zürich" in out


class TestTextFormat:
    def test_dict_as_key_value(self, capfd):
        OutputManager(format=OutputFormat.TEXT).format_response({"a": 1, "b": "x"})
        out, _ = capfd.readouterr()
        assert out == "a\t1\nb\tx\n"

    def test_list_of_dicts_as_rows(self, capfd):
        OutputManager(format=OutputFormat.TEXT).format_response([{"a": 1, "b": 2}, {"a": 3, "b": 4}])
        out, _ = capfd.readouterr()
        assert out == "1\t2\n3\t4\n"

    def test_format_setter(self, capfd):
        mgr = OutputManager()
        mgr.format = OutputFormat.TEXT
        mgr.format_response({"k": "v"})
        out, _ = capfd.readouterr()
        assert out == "k\tv\n"


class TestPrintTable:
    def test_json_mode_records(self, capfd):
        OutputManager(format=OutputFormat.JSON).print_table(["name", "tenant"], [["default", "t1"]])
        out, _ = capfd.readouterr()
        assert json.loads(out) == [{"name": "default", "tenant": "t1"}]

    def test_text_mode_no_color_is_tab_separated(self, capfd):
        OutputManager(format=OutputFormat.TEXT, no_color=True).print_table(
            ["name", "tenant"], [["default", "t1"]]
        )
        out, _ = capfd.readouterr()
        assert out == "name\ttenant\ndefault\tt1\n"


class TestBinaryStdout:
    def test_bytes_written_verbatim(self, capfdbinary):
        mgr = OutputManager()
        mgr.print_data("head")
        stream = mgr.binary_stdout()
        stream.write(b"\x00\x01hello")
        stream.flush()
        out, _ = capfdbinary.readouterr()
        assert out == b"head\n\x00\x01hello"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        mgr = get_output()
        assert isinstance(mgr, OutputManager)
        assert get_output() is mgr

    def test_set_output_replaces(self):
        mgr = OutputManager(format=OutputFormat.TEXT)
        set_output(mgr)
        assert get_output() is mgr

    def test_convenience_functions_delegate(self, capfd):
        set_output(OutputManager(no_color=True))
        output_module.print_data("data")
        output_module.error("oops")
        out, err = capfd.readouterr()
        assert out == "data\n"
        assert err == "Error: oops\n"
