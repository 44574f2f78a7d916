"""Settings discovery and loading with XDG paths and precedence resolution.

This module handles everything the daemon reads before its first network
call:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.daemon-console/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Settings file** -- a JSON document deserialised into the frozen
  :class:`~daemon_console.models.AuthenticationConfig`. The file is located
  through :func:`find_settings_file` and read once by :func:`load_settings`.
* **Environment overrides** -- ``DAEMON_CONSOLE_CLIENT_SECRET`` and
  ``DAEMON_CONSOLE_CERTIFICATE_NAME`` replace the corresponding file values
  so that secrets need not live on disk.
* **Secret sources** -- :func:`resolve_secret_source` turns an ``env:`` or
  ``file:`` descriptor into the secret it points to.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from daemon_console.exceptions import ConfigError
from daemon_console.models import AuthenticationConfig

_APP_NAME = "daemon-console"
SETTINGS_FILENAME = "appsettings.json"

ENV_CONFIG_PATH = "DAEMON_CONSOLE_CONFIG"
ENV_CLIENT_SECRET = "DAEMON_CONSOLE_CLIENT_SECRET"
ENV_CERTIFICATE_NAME = "DAEMON_CONSOLE_CERTIFICATE_NAME"

_ENV_OVERRIDES = {
    ENV_CLIENT_SECRET: "ClientSecret",
    ENV_CERTIFICATE_NAME: "CertificateName",
}


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/daemon-console/`` (default
    ``~/.config/daemon-console/``). On macOS/Windows: ``~/.daemon-console/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (certificates, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/daemon-console/`` (default
    ``~/.local/share/daemon-console/``). On macOS/Windows:
    ``~/.daemon-console/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_certificates_dir() -> Path:
    """Default certificate store: ``<data dir>/certificates/``."""
    path = get_data_dir() / "certificates"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Settings file ---


def find_settings_file(cli_path: Optional[str] = None) -> Path:
    """Locate the settings file.

    Precedence (high to low):
        1. ``cli_path`` (the ``--config`` flag)
        2. ``DAEMON_CONSOLE_CONFIG`` environment variable
        3. ``./appsettings.json``
        4. ``<config dir>/appsettings.json``

    An explicitly named file (1 or 2) must exist; it is never silently
    replaced by a lower-precedence candidate.

    Raises:
        ConfigError: If no settings file can be found.
    """
    explicit = cli_path or os.environ.get(ENV_CONFIG_PATH)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Settings file not found: {path}")
        return path

    candidates = [Path.cwd() / SETTINGS_FILENAME, get_config_dir() / SETTINGS_FILENAME]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    searched = ", ".join(str(c) for c in candidates)
    raise ConfigError(f"No {SETTINGS_FILENAME} found (searched: {searched})")


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    merged = dict(data)
    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            merged[key] = value
    return merged


def parse_settings(data: dict[str, Any], source: str = "<memory>") -> AuthenticationConfig:
    """Validate a settings mapping, applying environment overrides first.

    Args:
        data: The decoded settings document.
        source: Where the document came from, for error messages.

    Raises:
        ConfigError: If validation fails.
    """
    try:
        return AuthenticationConfig.model_validate(_apply_env_overrides(data))
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings at {source}: {exc}") from exc


def load_settings(cli_path: Optional[str] = None) -> AuthenticationConfig:
    """Find, read and validate the settings file.

    Args:
        cli_path: Value of the ``--config`` flag, if given.

    Returns:
        The frozen :class:`~daemon_console.models.AuthenticationConfig`.

    Raises:
        ConfigError: If the file is missing, is not a JSON object, or fails
            Pydantic validation.
    """
    path = find_settings_file(cli_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read settings at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings at {path} must be a JSON object")
    return parse_settings(data, str(path))


# --- Secret source resolution ---


def resolve_secret_source(value: str) -> str:
    """Resolve a client secret that may be given as a source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- the literal secret

    Raises:
        ConfigError: If the referenced variable or file is missing.
    """
    if value.startswith("env:"):
        var_name = value[4:]
        secret = os.environ.get(var_name)
        if secret is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {value})"
            )
        return secret

    if value.startswith("file:"):
        path = Path(value[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Secret file not found: {path} (source: {value})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read secret file {path}: {exc}") from exc

    return value
