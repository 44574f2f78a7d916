"""daemon-console -- a daemon application calling protected APIs with app-only tokens.

The application authenticates *as itself* (no signed-in user) using the
OAuth2 client-credentials grant, then calls a graph-style directory API and
a custom todo-list API with the bearer tokens it acquired.

Typical workflow::

    daemon-console credential     # which credential mode is configured
    daemon-console run            # full sample run (users + todo list)

Modules:
    app: Typer application and CLI entry point.
    config: Settings-file discovery and loading.
    models: Pydantic models for configuration, tokens and API payloads.
    daemon: The batch workflow tying the components together.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "1.0.0"
