"""The daemon's batch workflow.

:class:`Daemon` ties together the three stages of a run::

    resolve_credential  ->  TokenAcquirer.acquire  ->  ProtectedApiClient

A token is acquired per resource audience and is never handed to a
different API: scopes of unrelated resources cannot be mixed in one token
request, so the directory API and the todo-list API each get their own.

:meth:`Daemon.run` performs the full sample run:

1. list the first five users of the directory;
2. list the todo items;
3. post a new item numbered after the existing ones;
4. list the todo items again to show the addition.

Errors are not handled here; they propagate to the CLI entry point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from daemon_console.auth.credentials import Credential, describe_credential
from daemon_console.auth.token import TokenAcquirer
from daemon_console.client.api import ProtectedApiClient
from daemon_console.exceptions import ConfigError
from daemon_console.models import AuthenticationConfig, GraphUser, TodoItem, Token
from daemon_console.output import debug, success

logger = logging.getLogger(__name__)

SAMPLE_TASK = "Posting a sample task to the protected WebAPI"


@dataclass
class RunResult:
    """What a full :meth:`Daemon.run` observed."""

    users: list[GraphUser] = field(default_factory=list)
    todos_before: list[TodoItem] = field(default_factory=list)
    added: Optional[TodoItem] = None
    todos_after: list[TodoItem] = field(default_factory=list)


class Daemon:
    """One configured daemon: settings, a credential, and the two clients.

    Args:
        config: The loaded settings.
        credential: The credential chosen by
            :func:`~daemon_console.auth.credentials.resolve_credential`.
        api: An entered :class:`ProtectedApiClient`.
        acquirer: Token acquirer; defaults to an MSAL-backed one.
    """

    def __init__(
        self,
        config: AuthenticationConfig,
        credential: Credential,
        api: ProtectedApiClient,
        acquirer: Optional[TokenAcquirer] = None,
    ) -> None:
        self._config = config
        self._credential = credential
        self._api = api
        self._acquirer = acquirer or TokenAcquirer()

    def acquire_token(self, scope: str) -> Token:
        """Acquire a fresh token for the audience of *scope*."""
        debug(f"Requesting token for {scope} using {describe_credential(self._credential)}")
        token = self._acquirer.acquire(
            self._credential,
            self._config.authority,
            self._config.client_id,
            [scope],
        )
        success("Token acquired")
        return token

    # ------------------------------------------------------------------ #
    # Directory API
    # ------------------------------------------------------------------ #

    def list_users(self) -> list[GraphUser]:
        """Return the first five users of the directory."""
        token = self.acquire_token(self._config.ms_graph_scope)
        users = self._api.collection(self._config.users_url, token.access_token, GraphUser)
        logger.info("Found %d user(s)", len(users))
        return users

    # ------------------------------------------------------------------ #
    # Todo-list API
    # ------------------------------------------------------------------ #

    def _todo_endpoint(self) -> tuple[str, str]:
        url = self._config.todo_list_url
        scope = self._config.todo_list_scope
        if not url or not scope:
            raise ConfigError(
                "TodoListBaseAddress and TodoListScope must be set to call the todo-list API"
            )
        return url, scope

    def todo_token(self) -> Token:
        _, scope = self._todo_endpoint()
        return self.acquire_token(scope)

    def list_todos(self, token: Optional[Token] = None) -> list[TodoItem]:
        """Return every todo item, acquiring a token unless one is given."""
        url, _ = self._todo_endpoint()
        token = token or self.todo_token()
        return self._api.collection(url, token.access_token, TodoItem)

    def add_todo(
        self,
        task: str,
        token: Optional[Token] = None,
        existing: Optional[list[TodoItem]] = None,
    ) -> TodoItem:
        """Post a new item numbered after the existing ones.

        *existing* is listed from the API unless the caller already has it.
        """
        url, _ = self._todo_endpoint()
        token = token or self.todo_token()
        if existing is None:
            existing = self.list_todos(token)
        item = TodoItem(id=len(existing) + 1, task=task)
        self._api.post(url, token.access_token, item)
        logger.info("Posted todo item %d", item.id)
        return item

    def run(self) -> RunResult:
        """Perform the full sample run against both APIs."""
        result = RunResult()
        result.users = self.list_users()

        # New token: the todo-list API is a different audience.
        token = self.todo_token()
        result.todos_before = self.list_todos(token)
        result.added = self.add_todo(SAMPLE_TASK, token, existing=result.todos_before)
        result.todos_after = self.list_todos(token)
        return result
