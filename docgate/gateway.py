"""Gateway facade: the one entry point callers use to talk to the API.

A Gateway owns the shared rate limiter and, for each epoch, a request
executor and a credential cache. ``submit`` runs the full request flow:

1. Take a rate-limit permit (waits while the window is exhausted)
2. Get a bearer token if the request needs one (single-flight refresh)
3. Perform the HTTP exchange
4. Return a SubmitResult; classified failures never escape as exceptions

Construct one Gateway per target service and pass it to whoever needs it.
Closing and starting it again begins a new epoch: a fresh reset schedule
and a credential cache with no sticky failure.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from docgate.config import GatewayConfig
from docgate.credentials import CredentialCache
from docgate.documents import DocumentCreateBody, ProductDocument, ProductGroup
from docgate.errors import ApiFailure, GatewayError, GatewayStateError
from docgate.executor import RequestDescriptor, RequestExecutor
from docgate.limiter import RateLimiter
from docgate.telemetry import log_submit

_logger = logging.getLogger("docgate")


class GatewayState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass
class SubmitResult:
    """Outcome of Gateway.submit: a value or a classified error, never both."""

    value: Optional[str] = None
    error: Optional[GatewayError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[str]:
        """Return the value, raising the classified error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value


class Gateway:
    """Rate-limited, credential-managing client for the document API."""

    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        config.validate()
        self.config = config
        self.state = GatewayState.UNINITIALIZED
        self.epoch = 0
        self.limiter = RateLimiter(config.requests_per_window, config.window_seconds)
        self._transport = transport
        self._clock = clock
        self._executor: Optional[RequestExecutor] = None
        self._credentials: Optional[CredentialCache] = None

    @property
    def credentials(self) -> Optional[CredentialCache]:
        return self._credentials

    async def start(self) -> "Gateway":
        """Enter READY, beginning a new epoch.

        Raises:
            GatewayStateError: If the gateway is already READY.
        """
        if self.state is GatewayState.READY:
            raise GatewayStateError("Gateway is already started.")

        self._executor = RequestExecutor(
            self.config.base_url,
            timeout=self.config.request_timeout,
            transport=self._transport,
        )
        self._credentials = CredentialCache(
            self._executor,
            token_lifetime=self.config.token_lifetime_seconds,
            clock=self._clock,
        )
        self.limiter.start()
        self.epoch += 1
        self.state = GatewayState.READY
        _logger.info(
            "Gateway ready (epoch %d, base_url=%s)", self.epoch, self.config.base_url
        )
        return self

    async def close(self) -> None:
        """Stop the reset schedule and release the HTTP client."""
        if self.state is not GatewayState.READY:
            return
        self.state = GatewayState.CLOSED
        await self.limiter.stop()
        if self._executor is not None:
            await self._executor.aclose()
        _logger.info("Gateway closed (epoch %d)", self.epoch)

    async def __aenter__(self) -> "Gateway":
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def submit(
        self, descriptor: RequestDescriptor, timeout: Optional[float] = None
    ) -> SubmitResult:
        """Run one request through admission control and authentication.

        Args:
            descriptor: The prepared request.
            timeout: Overall deadline in seconds for the permit and credential
                waits. None waits without bound.

        Returns:
            A SubmitResult holding the response value or the classified error.

        Raises:
            GatewayStateError: If the gateway is not READY.
        """
        if self.state is not GatewayState.READY:
            raise GatewayStateError(
                "Cannot submit while gateway is {}.".format(self.state.value)
            )

        request_id = "sub-{}".format(uuid.uuid4().hex[:12])
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        def remaining() -> Optional[float]:
            if deadline is None:
                return None
            # A spent deadline still admits work that needs no waiting.
            return max(0.0, deadline - loop.time())

        try:
            await self.limiter.acquire(remaining())
            token = None
            if descriptor.requires_auth:
                token = await self._credentials.get_token(remaining())
            value = await self._executor.send(descriptor, token)
        except GatewayError as exc:
            log_submit(
                request_id=request_id,
                epoch=self.epoch,
                method=descriptor.method.value,
                path=descriptor.path,
                outcome=exc.kind,
                status_code=exc.status_code if isinstance(exc, ApiFailure) else None,
                error=exc.detail,
            )
            return SubmitResult(error=exc)

        log_submit(
            request_id=request_id,
            epoch=self.epoch,
            method=descriptor.method.value,
            path=descriptor.path,
            outcome="success",
        )
        return SubmitResult(value=value)

    async def create_document(
        self, body: DocumentCreateBody, timeout: Optional[float] = None
    ) -> SubmitResult:
        """Submit a document envelope; the result value is the new document ID."""
        return await self.submit(body.to_descriptor(), timeout)

    async def introduce_goods(
        self,
        product_group: ProductGroup,
        document: ProductDocument,
        signature: str,
        timeout: Optional[float] = None,
    ) -> SubmitResult:
        """Create an "introduce goods into circulation" document."""
        body = DocumentCreateBody.introduce_goods(product_group, document, signature)
        return await self.create_document(body, timeout)
