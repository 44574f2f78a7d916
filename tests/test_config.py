"""Tests for daemon_console.config and the settings model -- paths, discovery, overrides."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
from pydantic import ValidationError

from daemon_console.config import (
    find_settings_file,
    get_config_dir,
    get_data_dir,
    load_settings,
    parse_settings,
    resolve_secret_source,
)
from daemon_console.exceptions import ConfigError
from daemon_console.models import AuthenticationConfig, GraphUser


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestPaths:
    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("daemon_console.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))

        result = get_config_dir()
        assert result == tmp_path / "cfg" / "daemon-console"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("daemon_console.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_data_dir() == tmp_path / ".local" / "share" / "daemon-console"

    def test_fallback_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("daemon_console.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".daemon-console"
        assert get_data_dir() == tmp_path / ".daemon-console" / "data"


# ---------------------------------------------------------------------------
# Settings discovery
# ---------------------------------------------------------------------------


class TestFindSettingsFile:
    def test_cli_path_wins(
        self, write_settings: Callable[..., Path], settings_data: dict[str, Any], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        write_settings(settings_data)
        env_file = write_settings(settings_data, "env.json")
        cli_file = write_settings(settings_data, "cli.json")
        monkeypatch.setenv("DAEMON_CONSOLE_CONFIG", str(env_file))

        assert find_settings_file(str(cli_file)) == cli_file

    def test_env_beats_working_directory(
        self, write_settings: Callable[..., Path], settings_data: dict[str, Any], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        write_settings(settings_data)
        env_file = write_settings(settings_data, "env.json")
        monkeypatch.setenv("DAEMON_CONSOLE_CONFIG", str(env_file))

        assert find_settings_file() == env_file

    def test_working_directory_beats_config_dir(
        self, write_settings: Callable[..., Path], settings_data: dict[str, Any], isolated_config: Path
    ) -> None:
        local = write_settings(settings_data)
        (get_config_dir() / "appsettings.json").write_text("{}")

        assert find_settings_file() == local

    def test_config_dir_fallback(self, isolated_config: Path) -> None:
        global_file = get_config_dir() / "appsettings.json"
        global_file.write_text("{}")

        assert find_settings_file() == global_file

    def test_missing_explicit_file(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            find_settings_file(str(isolated_config / "nope.json"))

    def test_nothing_found(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="No appsettings.json found"):
            find_settings_file()


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_load(self, write_settings: Callable[..., Path], settings_data: dict[str, Any]) -> None:
        write_settings(settings_data)
        config = load_settings()

        assert config.client_id == "11111111-2222-3333-4444-555555555555"
        assert config.client_secret == "s3cr3t"
        assert config.ms_graph_scope == "https://graph.microsoft.com/.default"

    def test_invalid_json(self, write_settings: Callable[..., Path], isolated_config: Path) -> None:
        (isolated_config / "appsettings.json").write_text("{ not json")
        with pytest.raises(ConfigError, match="Cannot read settings"):
            load_settings()

    def test_not_an_object(self, isolated_config: Path) -> None:
        (isolated_config / "appsettings.json").write_text("[]")
        with pytest.raises(ConfigError, match="JSON object"):
            load_settings()

    def test_missing_client_id(self, write_settings: Callable[..., Path], settings_data: dict[str, Any]) -> None:
        del settings_data["ClientId"]
        write_settings(settings_data)
        with pytest.raises(ConfigError, match="ClientId"):
            load_settings()

    def test_missing_tenant_and_authority(self, settings_data: dict[str, Any]) -> None:
        del settings_data["Tenant"]
        with pytest.raises(ConfigError, match="Authority"):
            parse_settings(settings_data)

    def test_env_overrides(
        self, settings_data: dict[str, Any], isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DAEMON_CONSOLE_CLIENT_SECRET", "from-env")
        monkeypatch.setenv("DAEMON_CONSOLE_CERTIFICATE_NAME", "CN=daemon-app")

        config = parse_settings(settings_data)

        assert config.client_secret == "from-env"
        assert config.certificate_name == "CN=daemon-app"

    def test_config_is_frozen(self, settings_data: dict[str, Any]) -> None:
        config = parse_settings(settings_data)
        with pytest.raises(ValidationError):
            config.client_secret = "changed"  # type: ignore[misc]

    def test_sample_settings_file_parses(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sample = Path(__file__).resolve().parents[1] / "appsettings.json"
        monkeypatch.delenv("DAEMON_CONSOLE_CONFIG", raising=False)
        config = load_settings(str(sample))
        assert config.todo_list_url == "https://localhost:44372/api/todolist"


# ---------------------------------------------------------------------------
# Derived settings
# ---------------------------------------------------------------------------


class TestDerived:
    def test_authority_from_instance_template(self, settings_data: dict[str, Any]) -> None:
        config = AuthenticationConfig.model_validate(settings_data)
        assert config.authority == "https://login.microsoftonline.com/contoso.onmicrosoft.com"

    def test_authority_from_plain_instance(self, settings_data: dict[str, Any]) -> None:
        settings_data["Instance"] = "https://login.example.com/"
        config = AuthenticationConfig.model_validate(settings_data)
        assert config.authority == "https://login.example.com/contoso.onmicrosoft.com"

    def test_explicit_authority(self, settings_data: dict[str, Any]) -> None:
        settings_data["Authority"] = "https://idp.example.com/tenant-x"
        config = AuthenticationConfig.model_validate(settings_data)
        assert config.authority == "https://idp.example.com/tenant-x"

    def test_urls(self, settings_data: dict[str, Any]) -> None:
        settings_data["TodoListBaseAddress"] = "https://todo.example.com/"
        config = AuthenticationConfig.model_validate(settings_data)
        assert config.users_url == "https://graph.microsoft.com/v1.0/users?$top=5"
        assert config.todo_list_url == "https://todo.example.com/api/todolist"

    def test_snake_case_accepted(self) -> None:
        config = AuthenticationConfig(tenant="t", client_id="c")
        assert config.authority == "https://login.microsoftonline.com/t"
        assert config.todo_list_url is None

    def test_graph_user_alias(self) -> None:
        user = GraphUser.model_validate(
            {"id": "0b1f7c3a-7a8e-4a0e-9d3c-1b2c3d4e5f60", "displayName": "Adele"}
        )
        assert user.display_name == "Adele"


# ---------------------------------------------------------------------------
# Secret sources
# ---------------------------------------------------------------------------


class TestResolveSecretSource:
    def test_literal(self) -> None:
        assert resolve_secret_source("plain-secret") == "plain-secret"

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SOME_SECRET", "abc")
        assert resolve_secret_source("env:SOME_SECRET") == "abc"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SOME_SECRET", raising=False)
        with pytest.raises(ConfigError, match="SOME_SECRET"):
            resolve_secret_source("env:SOME_SECRET")

    def test_file(self, tmp_path: Path) -> None:
        secret = tmp_path / "secret"
        secret.write_text("  xyz \n")
        assert resolve_secret_source(f"file:{secret}") == "xyz"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_secret_source(f"file:{tmp_path / 'nope'}")
