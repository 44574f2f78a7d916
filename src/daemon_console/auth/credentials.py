"""Credential selection: client secret or client certificate.

A daemon authenticates to the identity provider with exactly one kind of
client credential. :func:`resolve_credential` inspects the settings and
returns one of the two :data:`Credential` variants:

- :class:`SharedSecret` -- the application's client secret;
- :class:`CertificateCredential` -- a certificate from the
  :class:`~daemon_console.auth.certificates.CertificateStore`, used to sign
  a client assertion.

The secret wins whenever one is configured. A value equal to the
placeholder text of the sample settings file counts as "not configured".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Union

from daemon_console.auth.certificates import CertificateHandle, CertificateStore
from daemon_console.config import get_certificates_dir, resolve_secret_source
from daemon_console.exceptions import MissingCredentialError
from daemon_console.models import (
    CERTIFICATE_PLACEHOLDER,
    CLIENT_SECRET_PLACEHOLDER,
    AuthenticationConfig,
)


@dataclass(frozen=True)
class SharedSecret:
    """Authenticate with the application's client secret."""

    secret: str = field(repr=False)
    kind: Literal["secret"] = "secret"


@dataclass(frozen=True)
class CertificateCredential:
    """Authenticate with a certificate-signed client assertion."""

    certificate: CertificateHandle
    kind: Literal["certificate"] = "certificate"


Credential = Union[SharedSecret, CertificateCredential]

MISSING_CREDENTIAL_MESSAGE = (
    "You must choose between using client secret or certificate. "
    "Please update the ClientSecret or CertificateName setting."
)


def _is_configured(value: Optional[str], placeholder: str) -> bool:
    return value is not None and value.strip() != "" and value != placeholder


def _configured_secret(config: AuthenticationConfig) -> Optional[str]:
    """The client secret after ``env:``/``file:`` resolution, or None if unset."""
    if not _is_configured(config.client_secret, CLIENT_SECRET_PLACEHOLDER):
        return None
    assert config.client_secret is not None
    secret = resolve_secret_source(config.client_secret)
    return secret if _is_configured(secret, CLIENT_SECRET_PLACEHOLDER) else None


def uses_client_secret(config: AuthenticationConfig) -> bool:
    """Return True if the settings select the client-secret mode.

    A secret descriptor that resolves to a blank value counts as unset.

    Raises:
        MissingCredentialError: If neither a secret nor a certificate name
            is configured.
        ConfigError: If the secret descriptor cannot be resolved.
    """
    if _configured_secret(config) is not None:
        return True
    if _is_configured(config.certificate_name, CERTIFICATE_PLACEHOLDER):
        return False
    raise MissingCredentialError(MISSING_CREDENTIAL_MESSAGE)


def resolve_credential(
    config: AuthenticationConfig,
    store: Optional[CertificateStore] = None,
) -> Credential:
    """Select and load the client credential described by *config*.

    Args:
        config: The loaded settings.
        store: Certificate store to search in certificate mode. Defaults to
            ``CertificateStorePath`` from the settings, or the data
            directory's ``certificates/`` folder.

    Returns:
        A :class:`SharedSecret` or :class:`CertificateCredential`.

    Raises:
        MissingCredentialError: If no credential is configured.
        CertificateNotFoundError: If certificate mode is selected but no
            currently valid certificate matches ``CertificateName``.
        ConfigError: If the secret is an ``env:``/``file:`` descriptor that
            cannot be resolved.
    """
    secret = _configured_secret(config)
    if secret is not None:
        return SharedSecret(secret=secret)
    if not _is_configured(config.certificate_name, CERTIFICATE_PLACEHOLDER):
        raise MissingCredentialError(MISSING_CREDENTIAL_MESSAGE)

    assert config.certificate_name is not None
    if store is None:
        path = config.certificate_store_path or get_certificates_dir()
        store = CertificateStore(path)
    return CertificateCredential(certificate=store.find(config.certificate_name))


def describe_credential(credential: Credential) -> str:
    """One-line, secret-free description of *credential* for diagnostics."""
    if isinstance(credential, SharedSecret):
        return "client secret"
    cert = credential.certificate
    return f"certificate {cert.subject} (thumbprint {cert.thumbprint})"
