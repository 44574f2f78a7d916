"""Shared test fixtures for daemon-console.

Provides isolated config environments, settings documents, self-signed
certificate factories and output-state management. These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from daemon_console.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The Rich consoles cache references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG dirs at tmp_path, clear DAEMON_CONSOLE_* vars, chdir to tmp_path."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("daemon_console.config._is_xdg_platform", lambda: True)

    for var in [
        "DAEMON_CONSOLE_CONFIG",
        "DAEMON_CONSOLE_CLIENT_SECRET",
        "DAEMON_CONSOLE_CERTIFICATE_NAME",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings_data() -> dict[str, Any]:
    """A complete settings document in client-secret mode."""
    return {
        "Instance": "https://login.microsoftonline.com/{0}",
        "Tenant": "contoso.onmicrosoft.com",
        "ClientId": "11111111-2222-3333-4444-555555555555",
        "ClientSecret": "s3cr3t",
        "MsGraphBaseAddress": "https://graph.microsoft.com/",
        "MsGraphApiVersion": "v1.0",
        "MsGraphScope": "https://graph.microsoft.com/.default",
        "TodoListBaseAddress": "https://todo.example.com",
        "TodoListScope": "api://todo-service/.default",
    }


@pytest.fixture
def write_settings(isolated_config: Path) -> Callable[..., Path]:
    """Write a settings document to ``<tmp>/appsettings.json`` (or *name*)."""

    def _write(data: dict[str, Any], name: str = "appsettings.json") -> Path:
        path = isolated_config / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """One RSA key shared by every generated test certificate."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def make_certificate(rsa_key: rsa.RSAPrivateKey) -> Callable[..., Path]:
    """Write a self-signed certificate to a store directory.

    Keyword args:
        not_before / not_after: Validity window.
        common_name: Subject CN.
        key: ``"inline"`` (key in the same PEM), ``"sibling"`` (``<stem>.key``)
            or ``"none"``.
        organization: Optional O attribute added after the CN.
    """

    def _make(
        directory: Path,
        filename: str,
        not_before: datetime,
        not_after: datetime,
        common_name: str = "daemon-app",
        key: str = "inline",
        organization: Optional[str] = None,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        if organization is not None:
            attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
        subject = x509.Name(attributes)
        cert = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(rsa_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .sign(rsa_key, hashes.SHA256())
        )
        cert_pem = cert.public_bytes(serialization.Encoding.PEM)
        key_pem = rsa_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        path = directory / filename
        if key == "inline":
            path.write_bytes(cert_pem + key_pem)
        else:
            path.write_bytes(cert_pem)
            if key == "sibling":
                path.with_suffix(".key").write_bytes(key_pem)
        return path

    return _make