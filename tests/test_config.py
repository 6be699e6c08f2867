"""Tests for apictl.config -- XDG paths, profiles file, overrides, credentials."""

from __future__ import annotations

from pathlib import Path

import pytest

from apictl.config import (
    get_cache_dir,
    get_config_dir,
    get_configuration_path,
    get_data_dir,
    get_definitions_dir,
    get_plugins_path,
    load_config,
    load_plugin_config,
    parse_config,
    resolve_credential,
    resolve_profile,
)
from apictl.exceptions import ConfigError
from apictl.models import Config, Profile


PROFILES = """\
profiles:
- name: default
  organization: my-org
  tenant: my-tenant
  header:
    X-Custom: value
- name: staging
  uri: https://staging.example.com
  organization: staging-org
  tenant: staging-tenant
  auth:
    clientId: my-app
    clientSecret: env:APP_SECRET
    scopes: OR.Buckets
"""


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "apictl"
        assert get_config_dir().is_dir()

    def test_config_dir_xdg_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert get_config_dir() == tmp_path / "xdg" / "apictl"

    def test_cache_dir_xdg_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
        assert get_cache_dir() == tmp_path / "cache" / "apictl"

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_data_dir() == tmp_path / ".local" / "share" / "apictl"


class TestFallbackPaths:
    """macOS and Windows use a single dot directory."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".apictl"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("apictl.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_cache_dir() == tmp_path / ".apictl" / "cache"


class TestWellKnownFiles:
    def test_defaults_live_in_config_and_data_dirs(self, isolated_config: Path) -> None:
        assert get_configuration_path() == isolated_config / "config" / "apictl" / "config.yaml"
        assert get_plugins_path() == isolated_config / "config" / "apictl" / "plugins.yaml"
        assert get_definitions_dir() == isolated_config / "data" / "apictl" / "definitions"

    def test_env_overrides(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APICTL_CONFIGURATION_PATH", str(isolated_config / "c.yaml"))
        monkeypatch.setenv("APICTL_PLUGINS_PATH", str(isolated_config / "p.yaml"))
        monkeypatch.setenv("APICTL_DEFINITIONS_PATH", str(isolated_config / "defs"))
        assert get_configuration_path() == isolated_config / "c.yaml"
        assert get_plugins_path() == isolated_config / "p.yaml"
        assert get_definitions_dir() == isolated_config / "defs"


# ---------------------------------------------------------------------------
# Profiles file
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_missing_file_has_no_profiles(self, isolated_config: Path) -> None:
        config = load_config(isolated_config / "nope.yaml")
        assert config.profiles == []

    def test_empty_file_has_no_profiles(self, isolated_config: Path) -> None:
        path = isolated_config / "config.yaml"
        path.write_text("")
        assert load_config(path).profiles == []

    def test_parses_profiles(self, isolated_config: Path) -> None:
        path = isolated_config / "config.yaml"
        path.write_text(PROFILES)
        config = load_config(path)
        assert [p.name for p in config.profiles] == ["default", "staging"]
        default = config.get_profile("default")
        assert default is not None
        assert default.organization == "my-org"
        assert default.header == {"X-Custom": "value"}
        staging = config.get_profile("staging")
        assert staging is not None
        assert staging.auth.client_id == "my-app"
        assert staging.auth.client_secret == "env:APP_SECRET"

    def test_invalid_yaml_raises(self, isolated_config: Path) -> None:
        path = isolated_config / "config.yaml"
        path.write_text("profiles: [unclosed")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_non_mapping_raises(self, isolated_config: Path) -> None:
        path = isolated_config / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="expected a mapping"):
            load_config(path)

    def test_parse_config_validation_error(self) -> None:
        with pytest.raises(ConfigError):
            parse_config("profiles: 42")

    def test_default_location(self, isolated_config: Path) -> None:
        get_configuration_path().write_text(PROFILES)
        assert load_config().get_profile("staging") is not None


class TestLoadPluginConfig:
    def test_missing_file_has_no_authenticators(self, isolated_config: Path) -> None:
        assert load_plugin_config(isolated_config / "nope.yaml").authenticators == []

    def test_parses_authenticators(self, isolated_config: Path) -> None:
        path = isolated_config / "plugins.yaml"
        path.write_text("authenticators:\n- name: kube\n  path: /usr/bin/kube-auth\n")
        config = load_plugin_config(path)
        assert config.authenticators[0].name == "kube"
        assert config.authenticators[0].path == "/usr/bin/kube-auth"

    def test_invalid_entry_raises(self, isolated_config: Path) -> None:
        path = isolated_config / "plugins.yaml"
        path.write_text("authenticators:\n- name: kube\n")
        with pytest.raises(ConfigError, match="Invalid plugin configuration"):
            load_plugin_config(path)


# ---------------------------------------------------------------------------
# Profile resolution
# ---------------------------------------------------------------------------


class TestResolveProfile:
    def _config(self) -> Config:
        return parse_config(PROFILES)

    def test_default_profile(self, isolated_config: Path) -> None:
        assert resolve_profile(self._config()).name == "default"

    def test_cli_profile_wins(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APICTL_PROFILE", "default")
        assert resolve_profile(self._config(), "staging").name == "staging"

    def test_env_profile(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APICTL_PROFILE", "staging")
        assert resolve_profile(self._config()).organization == "staging-org"

    def test_unknown_profile_raises(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="Could not find profile 'prod'"):
            resolve_profile(self._config(), "prod")

    def test_missing_default_is_empty(self, isolated_config: Path) -> None:
        profile = resolve_profile(Config())
        assert profile == Profile(name="default")

    def test_env_overrides_fields(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APICTL_ORGANIZATION", "env-org")
        monkeypatch.setenv("APICTL_TENANT", "env-tenant")
        monkeypatch.setenv("APICTL_URI", "https://env.example.com")
        profile = resolve_profile(self._config())
        assert profile.organization == "env-org"
        assert profile.tenant == "env-tenant"
        assert profile.uri == "https://env.example.com"
        assert profile.header == {"X-Custom": "value"}


# ---------------------------------------------------------------------------
# Credential sources
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_literal(self) -> None:
        assert resolve_credential("plain-value") == "plain-value"

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "secret")
        assert resolve_credential("env:MY_TOKEN") == "secret"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="MY_TOKEN"):
            resolve_credential("env:MY_TOKEN")

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "token.txt"
        path.write_text("  file-secret\n")
        assert resolve_credential(f"file:{path}") == "file-secret"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Credential file not found"):
            resolve_credential(f"file:{tmp_path / 'missing'}")
