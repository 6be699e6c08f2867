"""Shared test fixtures for apictl.

Provides reusable fixtures for isolating configuration, managing output
state, and assembling a complete CLI over temporary definition files and a
mocked HTTP transport. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Optional

import click
import httpx
import pytest

from apictl.cache import MemoryCache
from apictl.models import Profile
from apictl.output import OutputFormat, OutputManager, reset_output, set_output
from apictl.plugins.digitizer import DigitizeCommand, DigitizeResultCommand
from apictl.plugins.manager import PluginRegistry
from apictl.plugins.orchestrator import DownloadCommand, UploadCommand


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches a reference to sys.stderr at creation time.
    When the CliRunner redirects that stream during a test and the test
    finishes, the cached reference becomes stale ("I/O operation on closed
    file"). Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all APICTL_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: True)

    for var in [
        "APICTL_CONFIGURATION_PATH",
        "APICTL_PLUGINS_PATH",
        "APICTL_DEFINITIONS_PATH",
        "APICTL_PROFILE",
        "APICTL_URI",
        "APICTL_ORGANIZATION",
        "APICTL_TENANT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@pytest.fixture
def tenant_profile() -> Profile:
    """A profile with organization and tenant configured."""
    return Profile(name="default", organization="my-org", tenant="my-tenant")


# ---------------------------------------------------------------------------
# CLI assembly
# ---------------------------------------------------------------------------


def _unexpected_request(request: httpx.Request) -> httpx.Response:
    return httpx.Response(500, text=f"unexpected request {request.method} {request.url}")


@pytest.fixture
def make_cli(isolated_config: Path) -> Callable[..., click.Group]:
    """Factory building the full CLI over temporary files and a mock transport.

    Args (of the returned factory):
        definitions: Mapping of definition name to YAML text.
        config: Text of the profiles file, or ``None`` for no file.
        handler: ``httpx.MockTransport`` handler answering every request.
        stdin: Bytes piped into the process, or ``None`` for a terminal.
        plugins_config: Text of the plugin configuration file.

    Example::

        cli = make_cli({"du": ""}, config=CONFIG, handler=handler)
        result = CliRunner().invoke(cli, ["du", "digitization", "digitize"])
    """
    from apictl.app import build_cli
    from apictl.parser import DefinitionStore
    from apictl.runtime import Runtime

    def _make(
        definitions: dict[str, str],
        config: Optional[str] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        stdin: Optional[bytes] = None,
        plugins_config: Optional[str] = None,
    ) -> click.Group:
        definitions_dir = isolated_config / "definitions"
        definitions_dir.mkdir(exist_ok=True)
        for name, text in definitions.items():
            (definitions_dir / f"{name}.yaml").write_text(text, encoding="utf-8")

        config_path = isolated_config / "profiles.yaml"
        if config is not None:
            config_path.write_text(config, encoding="utf-8")
        plugins_path = isolated_config / "plugins.yaml"
        if plugins_config is not None:
            plugins_path.write_text(plugins_config, encoding="utf-8")

        transport = httpx.MockTransport(handler or _unexpected_request)
        registry = PluginRegistry(
            [
                DigitizeCommand(transport=transport, poll_interval=0),
                DigitizeResultCommand(),
                UploadCommand(transport=transport),
                DownloadCommand(transport=transport),
            ]
        )
        runtime = Runtime(
            store=DefinitionStore(definitions_dir),
            registry=registry,
            cache=MemoryCache(),
            config_path=config_path,
            plugins_path=plugins_path,
            transport=transport,
            stdin=io.BytesIO(stdin) if stdin is not None else None,
        )
        return build_cli(runtime)

    return _make


@pytest.fixture
def cli_runner():
    """Click CLI test runner.

    The generated CLI is a plain click group, so click's own runner is used
    rather than Typer's wrapper.
    """
    from click.testing import CliRunner

    return CliRunner()
