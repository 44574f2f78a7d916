"""HTTP client for the protected downstream APIs.

Classes:
    :class:`ProtectedApiClient` -- blocking client backed by :class:`httpx.Client`.
"""

from daemon_console.client.api import ProtectedApiClient

__all__ = ["ProtectedApiClient"]
