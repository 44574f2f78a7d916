"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~daemon_console.exceptions.DaemonConsoleError`
subclass. Schedulers and shell wrappers running the daemon unattended can
inspect the exit code to tell a misconfiguration from a rejected token
without parsing stderr.

Example::

    $ daemon-console run
    $ echo $?
    4   # EXIT_AUTH_FAILURE -- the identity provider rejected the request
"""

EXIT_SUCCESS = 0
"""The run completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""The settings are unreadable, or no usable credential is configured."""

EXIT_AUTH_FAILURE = 4
"""Token acquisition failed, or no valid token was available for a call."""

EXIT_API_ERROR = 5
"""A downstream API answered with a non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_INTERRUPTED = 130
"""The run was cancelled with Ctrl-C."""
