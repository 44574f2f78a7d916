"""Synchronous client for calling APIs protected by bearer tokens.

This module provides :class:`ProtectedApiClient`, a thin wrapper around
:class:`httpx.Client` used for every downstream call the daemon makes.
Each call takes the access token explicitly, because tokens are scoped to
one resource audience and the same client talks to several audiences in
one run.

Every request:

- refuses to go out without a token (:class:`InvalidTokenError`);
- carries ``Authorization: Bearer <token>`` and ``Accept: application/json``;
- raises :class:`ApiCallFailedError` with the status and the body verbatim
  for any non-2xx answer;
- raises :class:`TransportError` for network-level failures. Nothing is
  retried.

Example::

    with ProtectedApiClient() as api:
        users = api.collection(config.users_url, token.access_token, GraphUser)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from daemon_console.exceptions import (
    ApiCallFailedError,
    DaemonConsoleError,
    InvalidTokenError,
    TransportError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONSENT_HINT = (
    "The tenant administrator has not granted consent for the application "
    "to call this API (Authorization_RequestDenied)."
)


class ProtectedApiClient:
    """Blocking HTTP client for bearer-token protected JSON APIs.

    Can be used as a context manager, in which case an owned
    :class:`httpx.Client` is opened on enter and closed on exit.

    Args:
        client: An existing :class:`httpx.Client` to send requests with.
            When given, the caller owns its lifecycle.
        timeout: Request timeout in seconds for an owned client.
    """

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = 30.0) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def __enter__(self) -> ProtectedApiClient:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout, follow_redirects=True)
        return self

    def __exit__(self, *args: object) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def get(self, url: str, token: str, model: Any = None) -> Any:
        """GET *url* and decode the JSON body.

        Args:
            url: Absolute URL of the resource.
            token: Access token for the resource's audience.
            model: Optional type (e.g. ``list[TodoItem]``) the body is
                validated against.

        Returns:
            The decoded JSON, or an instance of *model*.

        Raises:
            InvalidTokenError: If *token* is empty.
            ApiCallFailedError: On a non-2xx status.
            TransportError: On network errors.
            DaemonConsoleError: If the body is not JSON or does not match
                *model*.
        """
        response = self._send("GET", url, token)
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise DaemonConsoleError(f"Response from {url} is not JSON: {exc}") from exc
        if model is None:
            return data
        try:
            return TypeAdapter(model).validate_python(data)
        except ValidationError as exc:
            raise DaemonConsoleError(f"Unexpected response from {url}: {exc}") from exc

    def collection(self, url: str, token: str, item_model: type[T]) -> list[T]:
        """GET a collection that is either a bare array or a paged ``value`` object.

        Returns:
            The items, validated as *item_model*.
        """
        data = self.get(url, token)
        if isinstance(data, dict) and "value" in data:
            data = data["value"]
        try:
            return TypeAdapter(list[item_model]).validate_python(data)
        except ValidationError as exc:
            raise DaemonConsoleError(f"Unexpected response from {url}: {exc}") from exc

    def post(self, url: str, token: str, payload: Any) -> httpx.Response:
        """POST *payload* as JSON to *url*.

        Args:
            url: Absolute URL of the collection.
            token: Access token for the resource's audience.
            payload: A pydantic model, or any JSON-serialisable object.

        Returns:
            The 2xx :class:`httpx.Response`; its body is not interpreted.

        Raises:
            InvalidTokenError: If *token* is empty.
            ApiCallFailedError: On a non-2xx status.
            TransportError: On network errors.
        """
        if isinstance(payload, BaseModel):
            body = payload.model_dump(mode="json", by_alias=True)
        else:
            body = payload
        return self._send("POST", url, token, json_body=body)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _send(
        self,
        method: str,
        url: str,
        token: str,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        if not token:
            raise InvalidTokenError("Access token is not valid")
        if self._client is None:
            raise RuntimeError("ProtectedApiClient must be used as a context manager")

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, headers=headers, json=json_body)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if not response.is_success:
            self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        body = response.text
        logger.error("Failed to call the web API: %s", response.status_code)
        logger.debug("Content: %s", body)
        if response.status_code == 403 and "Authorization_RequestDenied" in body:
            logger.error(CONSENT_HINT)
        raise ApiCallFailedError(response.status_code, body)
