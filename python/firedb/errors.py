"""
firedb/errors.py

Error taxonomy for the Realtime Database client. Every error raised by this
package derives from FirebaseError so callers can catch a single type, and
each failure mode has its own subclass so it can be told apart.

Also provides error_for_status(), the total mapping from an HTTP status code
to the matching error (or None for a successful response).
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple, Type


class FirebaseError(Exception):
    """Base class for all firedb failures.

    Attributes:
        message (str): Human readable description of the failure.
        status (Optional[int]): The HTTP status code, if the failure came from a response.
    """

    default_message = "Firebase request failed."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None) -> None:
        """
        Initialize a FirebaseError.

        Args:
            message (Optional[str]): Description of the failure. Defaults to the
                class-level default message.
            status (Optional[int]): The HTTP status code if known.
        """
        self.message = message or self.default_message
        self.status = status
        super().__init__(self.message)


class InvalidURLString(FirebaseError):
    default_message = "Path cannot be turned into a valid database URL."


class UnableToCreateRequest(FirebaseError):
    default_message = "Unable to create the HTTP request."


class NotFound(FirebaseError):
    default_message = "Not found."


class InvalidDatabase(FirebaseError):
    default_message = "Database URL is not a valid http(s) URL."


class BadRequest(FirebaseError):
    default_message = "Bad request."


class Unauthorized(FirebaseError):
    default_message = "Unauthorized."


class ServerError(FirebaseError):
    default_message = "Internal server error."


class DatabaseUnavailable(FirebaseError):
    default_message = "Database unavailable."


class UnknownError(FirebaseError):
    default_message = "Unexpected response status."


class AuthenticationTokenNotRefreshed(FirebaseError):
    """No bearer token was available when the request was built.

    Attributes:
        server_error (Optional[FirebaseError]): The error the server answered with,
            if the unauthenticated request was rejected.
    """

    default_message = "Authentication token was not refreshed; request sent without access_token."

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[int] = None,
        server_error: Optional[FirebaseError] = None,
    ) -> None:
        super().__init__(message, status)
        self.server_error = server_error


class InvalidPrivateKey(FirebaseError):
    default_message = "Private key could not be parsed as an RSA PEM key."


class SigningFailure(FirebaseError):
    default_message = "Failed to sign the JWT assertion."


class EnvironmentVariablesNotFound(FirebaseError):
    """Required configuration variables are missing from the environment.

    Attributes:
        missing (tuple): Names of the missing variables.
    """

    default_message = "Required environment variables not found."

    def __init__(self, missing: Tuple[str, ...] = ()) -> None:
        self.missing = tuple(missing)
        message = self.default_message
        if self.missing:
            message = f"{message} Missing: {', '.join(self.missing)}"
        super().__init__(message)


class TransportError(FirebaseError):
    default_message = "Transport error."


class TokenRefreshError(FirebaseError):
    default_message = "Failed to exchange the assertion for an access token."


STATUS_ERRORS: Dict[int, Type[FirebaseError]] = {
    400: BadRequest,
    401: Unauthorized,
    404: NotFound,
    500: ServerError,
    503: DatabaseUnavailable,
}


def error_for_status(status: int) -> Optional[FirebaseError]:
    """Map an HTTP status code onto a firedb error.

    Only 200 counts as success. The listed codes map to their own error type;
    anything else maps to UnknownError.

    Args:
        status (int): The HTTP response status.

    Returns:
        Optional[FirebaseError]: None for 200, otherwise the matching error instance.
    """
    if status == 200:
        return None
    error_cls = STATUS_ERRORS.get(status, UnknownError)
    return error_cls(status=status)
