"""Exception hierarchy for daemon-console.

All exceptions inherit from :class:`DaemonConsoleError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`daemon_console.exit_codes`. Errors are never recovered from inside
the library: they propagate to :func:`daemon_console.app.main`, which
prints the message and exits with the appropriate code.

Subclass hierarchy::

    DaemonConsoleError (exit 1)
    +-- ConfigError                 (exit 3)
    +-- MissingCredentialError      (exit 3)
    +-- CertificateNotFoundError    (exit 3)
    +-- InvalidScopeError           (exit 4)
    +-- AuthenticationFailedError   (exit 4)
    +-- InvalidTokenError           (exit 4)
    +-- ApiCallFailedError          (exit 5)
    +-- TransportError              (exit 6)
"""

from daemon_console.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
)


class DaemonConsoleError(Exception):
    """Base exception for all daemon-console errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`daemon_console.exit_codes`. The entry point
    catches this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(DaemonConsoleError):
    """Raised when the settings file is missing, unreadable, or invalid."""

    exit_code = EXIT_CONFIG_ERROR


class MissingCredentialError(DaemonConsoleError):
    """Raised when neither a client secret nor a certificate is configured."""

    exit_code = EXIT_CONFIG_ERROR


class CertificateNotFoundError(DaemonConsoleError):
    """Raised when no currently valid certificate matches the configured name."""

    exit_code = EXIT_CONFIG_ERROR


class InvalidScopeError(DaemonConsoleError):
    """Raised when the identity provider rejects the requested scopes.

    For client-credentials flows every scope must be of the form
    ``<resource>/.default``; anything else is answered with ``AADSTS70011``.
    """

    exit_code = EXIT_AUTH_FAILURE


class AuthenticationFailedError(DaemonConsoleError):
    """Raised for any other error returned by the identity provider."""

    exit_code = EXIT_AUTH_FAILURE


class InvalidTokenError(DaemonConsoleError):
    """Raised when an API call is attempted without an access token."""

    exit_code = EXIT_AUTH_FAILURE


class ApiCallFailedError(DaemonConsoleError):
    """Raised when a protected API answers with a non-2xx status.

    Args:
        status_code: The HTTP status returned by the API.
        body: The response body, verbatim.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Failed to call the web API: HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TransportError(DaemonConsoleError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Not retried: retry policy, if any, belongs to the caller.
    """

    exit_code = EXIT_CONNECTION_ERROR
