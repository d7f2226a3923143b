"""Single-flight cache for the API's short-lived bearer token.

Obtaining a token takes two unauthenticated calls: fetch a challenge from
``/auth/cert/key`` and trade it for a token at ``/auth/cert/``. Issuance is
slow and rate limited on the server side, so at most one refresh runs at a
time. Concurrent callers wait for it and share its outcome.

A failed refresh is sticky. Once it happens every later caller gets the
same AuthFailure straight away, without touching the network, until the
owning gateway starts a new epoch with a fresh cache.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional

from docgate.errors import (
    ApiFailure,
    AuthFailure,
    Cancelled,
    TransportFailure,
)
from docgate.executor import HttpMethod, RequestDescriptor, RequestExecutor

_logger = logging.getLogger("docgate")

AUTH_CHALLENGE_PATH = "/auth/cert/key"
AUTH_TOKEN_PATH = "/auth/cert/"

# Token validity documented by the API operator.
DEFAULT_TOKEN_LIFETIME = 10 * 60 * 60


class CredentialState(str, Enum):
    """Observable state of a CredentialCache."""

    EMPTY = "empty"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"


def challenge_descriptor() -> RequestDescriptor:
    return RequestDescriptor(
        path=AUTH_CHALLENGE_PATH,
        method=HttpMethod.GET,
        requires_auth=False,
    )


def token_descriptor(challenge: str) -> RequestDescriptor:
    return RequestDescriptor(
        path=AUTH_TOKEN_PATH,
        method=HttpMethod.POST,
        body=challenge,
        requires_auth=False,
        response_key="token",
    )


class CredentialCache:
    """Lazily fetched, expiring bearer token shared by all callers.

    ``token``, ``expires_at`` and the failure detail are only written while
    holding ``_lock``. Reads on the fast path need no lock because a single
    event loop never interleaves them with a write.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        token_lifetime: float = DEFAULT_TOKEN_LIFETIME,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._executor = executor
        self._token_lifetime = token_lifetime
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: Optional[str] = None
        self._expires_at: Optional[float] = None
        self._failure: Optional[str] = None
        self._fetching = False

    @property
    def state(self) -> CredentialState:
        if self._failure is not None:
            return CredentialState.FAILED
        if self._fetching:
            return CredentialState.FETCHING
        if self._token is not None:
            return CredentialState.READY
        return CredentialState.EMPTY

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at

    def _usable(self) -> bool:
        return (
            self._token is not None
            and self._expires_at is not None
            and self._clock() < self._expires_at
        )

    async def get_token(self, timeout: Optional[float] = None) -> str:
        """Return a valid bearer token, refreshing it at most once at a time.

        Args:
            timeout: Seconds to wait for an in-flight refresh. None waits
                without bound.

        Raises:
            AuthFailure: If this or an earlier refresh failed.
            Cancelled: If the timeout elapses while waiting for the refresh.
        """
        if self._failure is None and self._usable():
            return self._token
        if self._failure is not None:
            raise AuthFailure(self._failure)

        if self._lock.locked():
            try:
                await asyncio.wait_for(self._lock.acquire(), timeout)
            except asyncio.TimeoutError:
                raise Cancelled(
                    "Credential refresh did not finish within {}s.".format(timeout)
                ) from None
        else:
            await self._lock.acquire()
        try:
            if self._failure is None and not self._usable():
                await self._refresh()
        finally:
            self._lock.release()

        if self._failure is not None:
            raise AuthFailure(self._failure)
        return self._token

    async def _refresh(self) -> None:
        self._fetching = True
        _logger.info("Refreshing API bearer token")
        try:
            challenge = await self._executor.send(challenge_descriptor())
            token = None
            if challenge:
                token = await self._executor.send(token_descriptor(challenge))
        except (ApiFailure, TransportFailure) as exc:
            # GatewayStateError (shutdown mid-refresh) propagates without
            # marking the cache failed.
            self._fail("Token request failed: {}".format(exc.detail))
            return
        finally:
            self._fetching = False

        if not token:
            self._fail("Auth service did not return a token.")
            return

        self._token = token
        self._expires_at = self._clock() + self._token_lifetime
        _logger.info("Bearer token refreshed, valid for %ds", self._token_lifetime)

    def _fail(self, detail: str) -> None:
        self._failure = detail
        self._token = None
        self._expires_at = None
        _logger.error("Credential acquisition failed: %s", detail)
