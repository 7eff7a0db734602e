"""
firedb/listener.py

Optional notification sink for authentication events raised by
AsyncFirebaseClient.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from typing_extensions import Protocol

if TYPE_CHECKING:
    from firedb.database.client import AsyncFirebaseClient


class AuthenticationListener(Protocol):
    """Receives "authenticated" / "authentication failed" events.

    Both hooks are plain callables invoked on the event loop; they should
    return quickly.
    """

    def did_authenticate(self, client: AsyncFirebaseClient) -> Any:
        """Called after setup() obtained a token."""

    def authentication_failed(self, error: Exception) -> Any:
        """Called when a token could not be obtained, or a request went out without one."""
