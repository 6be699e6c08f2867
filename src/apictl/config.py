"""Configuration management with XDG paths, YAML profiles, and env overrides.

This module handles all persistent configuration for apictl:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apictl/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Well-known files** -- the profiles file, the plugin configuration file
  and the definitions directory. Each location can be overridden with an
  ``APICTL_*_PATH`` environment variable.
* **Profiles** -- :func:`load_config` parses the YAML profiles file into a
  :class:`~apictl.models.Config`; :func:`resolve_profile` picks the active
  :class:`~apictl.models.Profile` and layers environment overrides on top.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars or files when an auth option uses the ``env:``/``file:``
  source syntax.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from apictl.exceptions import ConfigError
from apictl.models import Config, PluginConfig, Profile

_APP_NAME = "apictl"
_CONFIG_FILENAME = "config.yaml"
_PLUGINS_FILENAME = "plugins.yaml"
_DEFINITIONS_DIRNAME = "definitions"

DEFAULT_PROFILE = "default"
"""Name of the profile used when neither ``--profile`` nor ``APICTL_PROFILE`` is set."""

ENV_CONFIGURATION_PATH = "APICTL_CONFIGURATION_PATH"
ENV_PLUGINS_PATH = "APICTL_PLUGINS_PATH"
ENV_DEFINITIONS_PATH = "APICTL_DEFINITIONS_PATH"
ENV_PROFILE = "APICTL_PROFILE"
ENV_URI = "APICTL_URI"
ENV_ORGANIZATION = "APICTL_ORGANIZATION"
ENV_TENANT = "APICTL_TENANT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apictl/`` (default ``~/.config/apictl/``).
    On macOS/Windows: ``~/.apictl/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the credential cache. Cached data can be safely deleted at any
    time; the next invocation simply authenticates again.

    On Linux/BSD: ``$XDG_CACHE_HOME/apictl/`` (default ``~/.cache/apictl/``).
    On macOS/Windows: ``~/.apictl/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (definitions, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apictl/`` (default ``~/.local/share/apictl/``).
    On macOS/Windows: ``~/.apictl/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_configuration_path() -> Path:
    """Path of the profiles file (``$APICTL_CONFIGURATION_PATH`` wins)."""
    override = os.environ.get(ENV_CONFIGURATION_PATH)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


def get_plugins_path() -> Path:
    """Path of the plugin configuration file (``$APICTL_PLUGINS_PATH`` wins)."""
    override = os.environ.get(ENV_PLUGINS_PATH)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _PLUGINS_FILENAME


def get_definitions_dir() -> Path:
    """Directory holding the definition documents (``$APICTL_DEFINITIONS_PATH`` wins)."""
    override = os.environ.get(ENV_DEFINITIONS_PATH)
    if override:
        return Path(override).expanduser()
    return get_data_dir() / _DEFINITIONS_DIRNAME


# --- YAML files ---


def _read_yaml(path: Path, what: str) -> dict[str, Any]:
    """Read *path* as a YAML mapping; a missing or empty file yields ``{}``."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {what} at {path}: expected a mapping")
    return data


def parse_config(text: str) -> Config:
    """Parse the text of a profiles file.

    Args:
        text: YAML document with a top-level ``profiles`` list.

    Returns:
        The validated :class:`~apictl.models.Config`.

    Raises:
        ConfigError: If the YAML is malformed or fails validation.
    """
    try:
        data = yaml.safe_load(text) or {}
        return Config.model_validate(data)
    except (yaml.YAMLError, ValidationError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: Optional[Path] = None) -> Config:
    """Load the profiles file.

    Args:
        path: Explicit file to read. Defaults to :func:`get_configuration_path`.

    Returns:
        The validated :class:`~apictl.models.Config`. A missing file yields
        a config without profiles.

    Raises:
        ConfigError: If the file exists but is not valid YAML or fails
            Pydantic validation.
    """
    path = path or get_configuration_path()
    data = _read_yaml(path, "configuration")
    try:
        return Config.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration at {path}: {exc}") from exc


def load_plugin_config(path: Optional[Path] = None) -> PluginConfig:
    """Load the plugin configuration file listing external authenticators.

    Args:
        path: Explicit file to read. Defaults to :func:`get_plugins_path`.

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated.
    """
    path = path or get_plugins_path()
    data = _read_yaml(path, "plugin configuration")
    try:
        return PluginConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid plugin configuration at {path}: {exc}") from exc


# --- Profile resolution ---


def resolve_profile(config: Config, cli_profile: Optional[str] = None) -> Profile:
    """Select the active profile and apply environment overrides.

    Precedence for the profile name (high to low):
        1. ``cli_profile`` (the ``--profile`` flag)
        2. ``APICTL_PROFILE``
        3. ``default``

    ``APICTL_URI``, ``APICTL_ORGANIZATION`` and ``APICTL_TENANT`` then
    override the matching profile fields.

    Returns:
        The active :class:`~apictl.models.Profile`. When the ``default``
        profile is not configured an empty one is returned so that commands
        which need no configuration keep working.

    Raises:
        ConfigError: If an explicitly requested profile does not exist.
    """
    name = cli_profile or os.environ.get(ENV_PROFILE) or DEFAULT_PROFILE
    profile = config.get_profile(name)
    if profile is None:
        if name != DEFAULT_PROFILE:
            raise ConfigError(f"Could not find profile '{name}'")
        profile = Profile(name=DEFAULT_PROFILE)

    overrides: dict[str, Any] = {}
    for env_var, field in (
        (ENV_URI, "uri"),
        (ENV_ORGANIZATION, "organization"),
        (ENV_TENANT, "tenant"),
    ):
        value = os.environ.get(env_var)
        if value:
            overrides[field] = value
    if overrides:
        profile = profile.model_copy(update=overrides)
    return profile


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a configured auth value from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- used literally

    Raises:
        ConfigError: If the variable is unset or the file can't be read.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    return source
