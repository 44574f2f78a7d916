"""Client authentication for the daemon.

The main entry points are:

- :func:`resolve_credential` -- choose between client secret and
  certificate from the settings.
- :class:`CertificateStore` -- directory of PEM client certificates.
- :class:`TokenAcquirer` -- client-credentials grant via MSAL.

Typical usage::

    from daemon_console.auth import TokenAcquirer, resolve_credential

    credential = resolve_credential(config)
    token = TokenAcquirer().acquire(
        credential, config.authority, config.client_id, [config.ms_graph_scope]
    )
"""

from daemon_console.auth.certificates import CertificateHandle, CertificateStore
from daemon_console.auth.credentials import (
    CertificateCredential,
    Credential,
    SharedSecret,
    describe_credential,
    resolve_credential,
    uses_client_secret,
)
from daemon_console.auth.token import TokenAcquirer

__all__ = [
    "CertificateCredential",
    "CertificateHandle",
    "CertificateStore",
    "Credential",
    "SharedSecret",
    "TokenAcquirer",
    "describe_credential",
    "resolve_credential",
    "uses_client_secret",
]
