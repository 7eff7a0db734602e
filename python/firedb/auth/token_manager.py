"""
firedb/auth/token_manager.py

Exchanges signed service-account assertions for Google OAuth2 access tokens
and keeps the current token fresh on a timer.

  - refresh(): sign a new assertion, POST it to the token endpoint, and on
    success swap in the new token. Concurrent calls share one in-flight
    exchange, so two signings never interleave.
  - start()/stop(): a background task that refreshes once (optionally right
    away) and then every `lifetime - slack` seconds.

A failed refresh raises to its caller and leaves the previous token in
place. Failures inside the background task are logged and reported through
`on_error`; there is no caller to raise them to.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from types import TracebackType
from typing import Any, Callable, Dict, Optional, Type
from urllib.parse import urlencode

import aiohttp

from firedb.auth.assertion import Clock, create_assertion
from firedb.errors import FirebaseError, TokenRefreshError
from firedb.models.firebase import FirebaseSettings, ServiceAccountCredentials
from firedb.models.token import GoogleAccessToken
from firedb.models.validator import validate_json

logger = logging.getLogger(__name__)

GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

RefreshErrorCallback = Callable[[FirebaseError], None]


def build_session(settings: FirebaseSettings) -> aiohttp.ClientSession:
    """Create an aiohttp session honoring settings.total_timeout (transport default if None)."""
    kwargs: Dict[str, Any] = {}
    if settings.total_timeout is not None:
        kwargs["timeout"] = aiohttp.ClientTimeout(total=settings.total_timeout)
    return aiohttp.ClientSession(**kwargs)


class TokenManager:
    """Holds the single current access token and refreshes it.

    The token is replaced by plain attribute assignment, so readers see either
    the old token or the new one and never need a lock.
    """

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        settings: Optional[FirebaseSettings] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        clock: Clock = time.time,
    ) -> None:
        """
        Initialize the TokenManager.

        Args:
            credentials (ServiceAccountCredentials): Identity and signing key.
            settings (Optional[FirebaseSettings]): Token endpoint, scopes, cadence.
            session (Optional[aiohttp.ClientSession]): A session to borrow. If omitted,
                the manager creates and closes its own.
            clock (Clock): Epoch-seconds clock used for assertion claims.
        """
        self._credentials = credentials
        self._settings = settings or FirebaseSettings()
        self._clock = clock
        self._session = session
        self._owns_session = session is None

        self._token: Optional[GoogleAccessToken] = None
        self._inflight: Optional[asyncio.Task[GoogleAccessToken]] = None
        self._schedule: Optional[asyncio.Task[None]] = None

    async def __aenter__(self) -> TokenManager:
        await self.ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def ensure_session(self) -> aiohttp.ClientSession:
        """Ensure an aiohttp session is available, creating one if needed."""
        if self._session is None or self._session.closed:
            self._session = build_session(self._settings)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Stop the schedule and close the session if this manager created it."""
        await self.stop()
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    def current_token(self) -> Optional[GoogleAccessToken]:
        """Return the latest successfully fetched token, or None if there never was one."""
        return self._token

    @property
    def is_running(self) -> bool:
        """True while the periodic refresh task is scheduled."""
        return self._schedule is not None and not self._schedule.done()

    async def refresh(self) -> GoogleAccessToken:
        """Fetch a new access token and make it the current one.

        If a refresh is already in flight, wait for that one instead of
        starting another. The exchange is shielded: cancelling this call does
        not cancel the exchange.

        Returns:
            GoogleAccessToken: The new token.

        Raises:
            InvalidPrivateKey: If the signing key can't be parsed.
            SigningFailure: If signing the assertion fails.
            TokenRefreshError: On transport errors, non-2xx replies or an unusable body.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.get_running_loop().create_task(self._exchange())
            self._inflight.add_done_callback(_consume_result)
        return await asyncio.shield(self._inflight)

    async def _exchange(self) -> GoogleAccessToken:
        """Sign one assertion and trade it for a token."""
        assertion = create_assertion(self._credentials, self._settings, self._clock)
        body = urlencode({"grant_type": GRANT_TYPE, "assertion": assertion})
        session = await self.ensure_session()
        url = self._settings.token_uri

        logger.debug("Requesting access token from %s", url)
        try:
            async with session.post(
                url,
                data=body,
                headers={"Content-Type": FORM_CONTENT_TYPE},
                ssl=self._settings.verify_ssl,
            ) as resp:
                status = resp.status
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TokenRefreshError(f"Token request to {url} failed: {exc!r}") from exc

        if not 200 <= status < 300:
            detail = raw[:200].decode("utf-8", errors="replace")
            raise TokenRefreshError(
                f"Token endpoint returned {status}: {detail}", status=status
            )

        try:
            token = validate_json(raw, GoogleAccessToken)
        except ValueError as exc:
            raise TokenRefreshError(
                f"Token endpoint returned an unusable body: {exc}", status=status
            ) from exc

        self._token = token
        logger.debug("Access token refreshed; expires in %ds", token.expires_in)
        return token

    def start(
        self,
        interval_seconds: Optional[float] = None,
        *,
        immediate: bool = True,
        on_error: Optional[RefreshErrorCallback] = None,
    ) -> None:
        """Begin refreshing in the background. No-op if already running.

        Args:
            interval_seconds (Optional[float]): Seconds between refreshes. Defaults to
                settings.refresh_interval_seconds.
            immediate (bool): Refresh right away before the first wait.
            on_error (Optional[RefreshErrorCallback]): Called with each failed refresh.

        Raises:
            ValueError: If the interval is not positive.
        """
        if self.is_running:
            return
        interval = (
            self._settings.refresh_interval_seconds
            if interval_seconds is None
            else interval_seconds
        )
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval}.")
        self._schedule = asyncio.get_running_loop().create_task(
            self._run_schedule(interval, immediate, on_error)
        )
        logger.debug("Token refresh scheduled every %ss", interval)

    async def stop(self) -> None:
        """Cancel future refreshes. A refresh already in flight still completes."""
        task, self._schedule = self._schedule, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run_schedule(
        self,
        interval: float,
        immediate: bool,
        on_error: Optional[RefreshErrorCallback],
    ) -> None:
        if not immediate:
            await asyncio.sleep(interval)
        while True:
            try:
                await self.refresh()
            except FirebaseError as exc:
                logger.warning("Scheduled token refresh failed: %s", exc)
                if on_error is not None:
                    try:
                        on_error(exc)
                    except Exception:
                        logger.exception("Refresh error callback raised")
            except Exception:
                logger.exception("Unexpected error during scheduled token refresh")
            await asyncio.sleep(interval)


def _consume_result(task: asyncio.Task[GoogleAccessToken]) -> None:
    # Every waiter may have been cancelled; retrieve the exception so asyncio doesn't warn.
    if not task.cancelled():
        task.exception()
