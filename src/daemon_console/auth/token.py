"""OAuth2 client-credentials token acquisition through MSAL.

:class:`TokenAcquirer` performs the Client Credentials grant
(:rfc:`6749` section 4.4) against an identity provider's token endpoint by
way of :class:`msal.ConfidentialClientApplication`, and turns the outcome
into either a :class:`~daemon_console.models.Token` or one of the typed
errors from :mod:`daemon_console.exceptions`:

==========================================  ==================================
Outcome                                     Raised
==========================================  ==================================
``invalid_scope`` / ``AADSTS70011``         :class:`InvalidScopeError`
any other provider error                    :class:`AuthenticationFailedError`
timeout, DNS failure, connection refused    :class:`TransportError`
==========================================  ==================================

There is no token cache: a fresh MSAL application (and therefore a fresh
in-memory cache) is built for every call, so every :meth:`acquire` is a
live request to the token endpoint. Nothing is retried.

See Also:
    :mod:`daemon_console.auth.credentials` for how the credential is chosen.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

import msal
import requests

from daemon_console.auth.credentials import CertificateCredential, Credential, SharedSecret
from daemon_console.exceptions import (
    AuthenticationFailedError,
    InvalidScopeError,
    TransportError,
)
from daemon_console.models import Token

logger = logging.getLogger(__name__)

INVALID_SCOPE_ERROR = "invalid_scope"
INVALID_SCOPE_CODE = 70011

INVALID_SCOPE_HINT = (
    "Scope provided is not supported. With client credentials flows the "
    "scope has to be of the form 'https://resourceurl/.default'."
)

AppFactory = Callable[..., Any]


def client_credential_for(credential: Credential) -> Any:
    """Translate a :data:`Credential` into MSAL's ``client_credential`` argument."""
    if isinstance(credential, SharedSecret):
        return credential.secret
    if isinstance(credential, CertificateCredential):
        return credential.certificate.to_client_credential()
    raise TypeError(f"Unsupported credential type: {type(credential).__name__}")


def _is_invalid_scope(result: dict[str, Any]) -> bool:
    if result.get("error") == INVALID_SCOPE_ERROR:
        return True
    if INVALID_SCOPE_CODE in (result.get("error_codes") or []):
        return True
    return f"AADSTS{INVALID_SCOPE_CODE}" in (result.get("error_description") or "")


class TokenAcquirer:
    """Acquire app-only access tokens with the client-credentials grant.

    Args:
        app_factory: Callable building the confidential client application.
            Defaults to :class:`msal.ConfidentialClientApplication`; tests
            substitute a fake.
        timeout: Timeout in seconds for each HTTP request MSAL makes.
    """

    def __init__(
        self,
        app_factory: AppFactory | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._app_factory = app_factory or msal.ConfidentialClientApplication
        self._timeout = timeout

    def acquire(
        self,
        credential: Credential,
        authority: str,
        client_id: str,
        scopes: Iterable[str],
    ) -> Token:
        """Request a token for *scopes* from the authority's token endpoint.

        All scopes must belong to the same resource; tokens for a different
        audience require a separate call.

        Args:
            credential: Client secret or certificate to authenticate with.
            authority: Authority URL, e.g.
                ``https://login.microsoftonline.com/<tenant>``.
            client_id: Application (client) id.
            scopes: Requested scopes, each of the form ``<resource>/.default``.

        Returns:
            The freshly issued :class:`~daemon_console.models.Token`.

        Raises:
            InvalidScopeError: If *scopes* is empty or the provider rejects
                the scope.
            AuthenticationFailedError: For any other provider-side error.
            TransportError: If the token endpoint cannot be reached.
        """
        scope_list = [scopes] if isinstance(scopes, str) else list(scopes)
        if not scope_list:
            raise InvalidScopeError("At least one scope is required to acquire a token")

        try:
            app = self._app_factory(
                client_id,
                authority=authority,
                client_credential=client_credential_for(credential),
                timeout=self._timeout,
            )
            result = app.acquire_token_for_client(scopes=scope_list)
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"Token request to {authority} failed: {exc}") from exc
        except ValueError as exc:
            # MSAL reports unusable authorities and malformed credentials this way.
            raise AuthenticationFailedError(str(exc)) from exc

        if not result or "access_token" not in result:
            self._raise_for_error(result or {})

        expires_in = int(result.get("expires_in") or 0)
        logger.info("Token acquired for %s", " ".join(scope_list))
        return Token(
            access_token=result["access_token"],
            token_type=result.get("token_type", "Bearer"),
            expires_in=expires_in,
            expires_on=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            scopes=tuple(scope_list),
        )

    def _raise_for_error(self, result: dict[str, Any]) -> None:
        message = result.get("error_description") or result.get("error") or "no access token returned"
        if _is_invalid_scope(result):
            logger.error("Scope provided is not supported: %s", message)
            raise InvalidScopeError(f"{INVALID_SCOPE_HINT} Provider said: {message}")
        logger.error("Token request rejected: %s", message)
        raise AuthenticationFailedError(f"Token request failed: {message}")
