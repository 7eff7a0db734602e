"""
firedb/database/client.py

An asynchronous Realtime Database REST client:
  - get / post / put / patch / delete on a slash-delimited path
  - URLs of the form {database_url}/{path}.json?access_token={token}
  - HTTP status mapped to a FirebaseError before the body is looked at
  - 200 bodies decoded into the Value union (empty body => Null)

Tokens come from a TokenManager owned by the client. Call setup() once to
fetch the first token and start the background refresh.

Nothing here retries. Each call's failure goes to that call's caller only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from types import TracebackType
from typing import Any, Mapping, Optional, Tuple, Type
from urllib.parse import quote, urlencode, urlparse

import aiohttp

from firedb.auth.assertion import Clock
from firedb.auth.token_manager import TokenManager, build_session
from firedb.errors import (
    AuthenticationTokenNotRefreshed,
    FirebaseError,
    InvalidDatabase,
    InvalidURLString,
    TransportError,
    UnableToCreateRequest,
    error_for_status,
)
from firedb.listener import AuthenticationListener
from firedb.models.firebase import FirebaseSettings, ServiceAccountCredentials
from firedb.models.token import GoogleAccessToken
from firedb.models.value import NULL, Value, ValueType

logger = logging.getLogger(__name__)

# Characters the Realtime Database refuses in keys.
FORBIDDEN_KEY_CHARS = frozenset(".$#[]")


class AsyncFirebaseClient:
    """Authenticated CRUD client for one Realtime Database."""

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        settings: Optional[FirebaseSettings] = None,
        *,
        listener: Optional[AuthenticationListener] = None,
        require_token: bool = False,
        clock: Clock = time.time,
    ) -> None:
        """
        Initialize the AsyncFirebaseClient.

        Args:
            credentials (ServiceAccountCredentials): Service account and database URL.
            settings (Optional[FirebaseSettings]): Token endpoint, scopes, cadence, SSL.
            listener (Optional[AuthenticationListener]): Receives authentication events.
            require_token (bool): Refuse to send a request when no access token is
                held, raising AuthenticationTokenNotRefreshed instead.
            clock (Clock): Epoch-seconds clock for assertion claims.

        Raises:
            InvalidDatabase: If credentials.database_url isn't an absolute http(s) URL.
        """
        _check_database_url(credentials.database_url)
        self._database_url = credentials.database_url
        self._settings = settings or FirebaseSettings()
        self.listener = listener
        self.require_token = require_token

        self._session: Optional[aiohttp.ClientSession] = None
        self._tokens = TokenManager(credentials, self._settings, clock=clock)

    async def __aenter__(self) -> AsyncFirebaseClient:
        await self.ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def tokens(self) -> TokenManager:
        """The TokenManager supplying this client's access tokens."""
        return self._tokens

    async def ensure_session(self) -> aiohttp.ClientSession:
        """Ensure an aiohttp session is available, creating one if needed."""
        if self._session is None or self._session.closed:
            self._session = build_session(self._settings)
        return self._session

    async def close(self) -> None:
        """Stop token refresh and close both HTTP sessions."""
        await self._tokens.close()
        if self._session is not None:
            await self._session.close()
        self._session = None

    async def setup(self, *, auto_refresh: bool = True) -> GoogleAccessToken:
        """Acquire the first access token and tell the listener how it went.

        Args:
            auto_refresh (bool): On success, keep refreshing in the background
                every settings.refresh_interval_seconds.

        Returns:
            GoogleAccessToken: The token just obtained.

        Raises:
            FirebaseError: Whatever TokenManager.refresh() raised, after the
                listener's authentication_failed() has been called.
        """
        logger.debug("Setting up client for %s", self._database_url)
        try:
            token = await self._tokens.refresh()
        except FirebaseError as exc:
            self._notify_failure(exc)
            raise

        if self.listener is not None:
            self.listener.did_authenticate(self)
        if auto_refresh:
            self._tokens.start(immediate=False, on_error=self._notify_failure)
        return token

    # ------------------------------
    # CRUD
    # ------------------------------
    async def get(self, path: str) -> ValueType:
        """Read the data at `path`. Missing data comes back as Null."""
        return await self._request("GET", path)

    async def post(self, path: str, value: Mapping[str, Any]) -> ValueType:
        """Append `value` under a server-generated child key of `path`.

        Returns:
            ValueType: A Dictionary of the form {"name": <generated key>}.
        """
        return await self._request("POST", path, value)

    async def put(self, path: str, value: Mapping[str, Any]) -> ValueType:
        """Overwrite everything at `path` with `value`."""
        return await self._request("PUT", path, value)

    async def patch(self, path: str, value: Mapping[str, Any]) -> ValueType:
        """Update only the top-level keys of `value` at `path`; siblings are untouched."""
        return await self._request("PATCH", path, value)

    async def delete(self, path: str) -> ValueType:
        """Remove the data at `path`. Always yields Null on success; the body is ignored."""
        return await self._request("DELETE", path, decode=False)

    # ------------------------------
    # Helpers
    # ------------------------------
    def build_url(self, path: str) -> Tuple[str, bool]:
        """Build the REST URL for `path` with the current token attached.

        Args:
            path (str): Slash-delimited database path. Leading/trailing slashes are ignored.

        Returns:
            Tuple[str, bool]: The URL, and whether an access_token was attached.

        Raises:
            InvalidURLString: If a path segment holds a character the database rejects.
        """
        segments = [segment for segment in path.split("/") if segment]
        for segment in segments:
            if any(ch in FORBIDDEN_KEY_CHARS or ord(ch) < 32 or ord(ch) == 127 for ch in segment):
                raise InvalidURLString(f"Invalid path segment {segment!r} in {path!r}.")

        url = f"{self._database_url}/{quote('/'.join(segments), safe='/')}.json"
        token = self._tokens.current_token()
        if token is None:
            return url, False
        return f"{url}?{urlencode({'access_token': token.access_token})}", True

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        *,
        decode: bool = True,
    ) -> ValueType:
        url, authenticated = self.build_url(path)
        data = _encode_body(body) if body is not None else None
        headers = {"Content-Type": "application/json"} if data is not None else None

        if not authenticated:
            missing = AuthenticationTokenNotRefreshed()
            self._notify_failure(missing)
            if self.require_token:
                raise missing
            logger.warning("No access token available; sending %s %s without one", method, path)

        session = await self.ensure_session()
        logger.debug("%s %s", method, path)
        try:
            async with session.request(
                method, url, data=data, headers=headers, ssl=self._settings.verify_ssl
            ) as resp:
                status = resp.status
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{method} {path} failed: {exc!r}") from exc

        error = error_for_status(status)
        if error is not None:
            if not authenticated:
                raise AuthenticationTokenNotRefreshed(
                    status=status, server_error=error
                ) from error
            raise error
        if not decode:
            return NULL
        return decode_body(raw)

    def _notify_failure(self, error: FirebaseError) -> None:
        if self.listener is not None:
            self.listener.authentication_failed(error)


def decode_body(raw: bytes) -> ValueType:
    """Decode a successful response body into the Value union.

    Raises:
        TransportError: If a non-empty body is not valid JSON.
    """
    if not raw.strip():
        return NULL
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        raise TransportError(f"Response body is not valid JSON: {exc}") from exc
    return Value.from_json(parsed)


def _encode_body(body: Mapping[str, Any]) -> str:
    if not isinstance(body, Mapping):
        raise UnableToCreateRequest(
            f"Request body must be a mapping, got {type(body).__name__}."
        )
    try:
        return json.dumps(dict(body), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise UnableToCreateRequest(f"Request body is not JSON serializable: {exc}") from exc


def _check_database_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidDatabase(f"Database URL {url!r} is not an absolute http(s) URL.")
