"""Canonical Pydantic models shared across daemon-console modules.

The models fall into three groups:

**Configuration** -- :class:`AuthenticationConfig`, deserialised from the
``appsettings.json`` settings file. It is frozen: once loaded, the
configuration of a run never changes.

**Tokens** -- :class:`Token`, the immutable result of one client-credentials
grant, scoped to exactly one resource audience.

**API payloads** -- :class:`GraphUser`, :class:`TodoItem` and the generic
paged envelope :class:`GraphResponse`.

Settings keys keep the PascalCase spelling of the sample settings file
(``ClientId``, ``MsGraphScope``, ...) through field aliases; the Python
attribute names are snake_case and either spelling is accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_INSTANCE = "https://login.microsoftonline.com/{0}"
"""Authority template; ``{0}`` is replaced with the tenant."""

CLIENT_SECRET_PLACEHOLDER = "[Enter here a client secret for your application]"
"""Value of ``ClientSecret`` in the unedited sample settings file."""

CERTIFICATE_PLACEHOLDER = (
    "[Or instead of client secret: Enter here the name of a certificate "
    "(from the user cert store) as registered with your application]"
)
"""Value of ``CertificateName`` in the unedited sample settings file."""


# --- Configuration ---


class AuthenticationConfig(BaseModel):
    """Settings for one daemon run.

    Exactly one of :attr:`client_secret` and :attr:`certificate_name` is
    expected to hold a real (non-blank, non-placeholder) value; which one
    wins is decided by :func:`~daemon_console.auth.credentials.resolve_credential`.

    Example::

        AuthenticationConfig(
            Tenant="contoso.onmicrosoft.com",
            ClientId="6e5a...",
            ClientSecret="env:DAEMON_SECRET",
            TodoListBaseAddress="https://localhost:44372",
            TodoListScope="api://6e5a.../.default",
        )
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    instance: str = Field(
        default=DEFAULT_INSTANCE,
        alias="Instance",
        description="Authority template or base URL of the identity provider",
    )
    tenant: Optional[str] = Field(
        default=None,
        alias="Tenant",
        description="Tenant id or domain substituted into the instance",
    )
    authority_url: Optional[str] = Field(
        default=None,
        alias="Authority",
        description="Explicit authority URL; takes precedence over Instance/Tenant",
    )
    client_id: str = Field(alias="ClientId", description="Application (client) id")
    client_secret: Optional[str] = Field(
        default=None,
        alias="ClientSecret",
        description="Client secret, or an 'env:' / 'file:' source descriptor",
    )
    certificate_name: Optional[str] = Field(
        default=None,
        alias="CertificateName",
        description="Subject DN or common name of the client certificate",
    )
    certificate_store_path: Optional[str] = Field(
        default=None,
        alias="CertificateStorePath",
        description="Directory of PEM certificates; defaults to the data dir",
    )
    ms_graph_base_address: str = Field(
        default="https://graph.microsoft.com/", alias="MsGraphBaseAddress"
    )
    ms_graph_api_version: str = Field(default="v1.0", alias="MsGraphApiVersion")
    ms_graph_scope: str = Field(
        default="https://graph.microsoft.com/.default", alias="MsGraphScope"
    )
    todo_list_base_address: Optional[str] = Field(
        default=None, alias="TodoListBaseAddress"
    )
    todo_list_scope: Optional[str] = Field(default=None, alias="TodoListScope")

    @model_validator(mode="after")
    def _require_authority(self) -> "AuthenticationConfig":
        if not self.authority_url and not self.tenant:
            raise ValueError("either 'Authority' or 'Tenant' must be set")
        return self

    @property
    def authority(self) -> str:
        """The authority URL handed to the identity library."""
        if self.authority_url:
            return self.authority_url
        assert self.tenant is not None  # guaranteed by _require_authority
        if "{0}" in self.instance:
            return self.instance.replace("{0}", self.tenant)
        return f"{self.instance.rstrip('/')}/{self.tenant}"

    @property
    def users_url(self) -> str:
        """Directory endpoint listing the first five users."""
        return f"{self.ms_graph_base_address}{self.ms_graph_api_version}/users?$top=5"

    @property
    def todo_list_url(self) -> Optional[str]:
        """Collection endpoint of the todo-list API, if one is configured."""
        if not self.todo_list_base_address:
            return None
        return f"{self.todo_list_base_address.rstrip('/')}/api/todolist"


# --- Tokens ---


class Token(BaseModel):
    """An access token returned by one client-credentials grant.

    A token is valid for the audience of the scopes it was requested with
    and nothing else; a new token is acquired for every audience.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    token_type: str = "Bearer"
    expires_in: int = Field(default=0, description="Lifetime in seconds at issue time")
    expires_on: datetime = Field(description="Absolute UTC expiry")
    scopes: tuple[str, ...] = ()


# --- API payloads ---

T = TypeVar("T")


class GraphUser(BaseModel):
    """A directory user as returned by ``/users``."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    display_name: Optional[str] = Field(default=None, alias="displayName")


class TodoItem(BaseModel):
    """One entry of the todo-list API."""

    id: int
    task: str


class GraphResponse(BaseModel, Generic[T]):
    """Paged response envelope: the items live under ``value``."""

    value: list[T] = Field(default_factory=list)
