"""FastAPI application in front of the document gateway.

Exposes the gateway's "create document" capability over HTTP so several
producers can share one rate-limited, authenticated connection to the API.
The app owns a single Gateway: it is built lazily from the config file,
started on first use (or at startup) and closed on shutdown.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docgate.config import GatewayConfig, load_config
from docgate.errors import ApiFailure, GatewayError
from docgate.gateway import Gateway, GatewayState
from docgate.models import (
    DocumentCreatedResponse,
    ErrorDetail,
    ErrorResponse,
    GatewayStatus,
    IntroduceGoodsRequest,
)
from docgate.telemetry import setup_logging

CONFIG_PATH = os.getenv("DOCGATE_CONFIG", "config/example.config.json")

_config: Optional[GatewayConfig] = None
_gateway: Optional[Gateway] = None

# HTTP status returned to our callers for each failure kind.
_STATUS_BY_KIND: Dict[str, int] = {
    "auth_failure": 502,
    "api_failure": 502,
    "transport_failure": 504,
    "cancelled": 503,
    "gateway_state_error": 503,
}


def get_config() -> GatewayConfig:
    """Return the loaded gateway configuration (lazy-init)."""
    global _config
    if _config is None:
        _config = load_config(CONFIG_PATH)
    return _config


async def get_gateway() -> Gateway:
    """Return the gateway, building and starting it on first use."""
    global _gateway
    if _gateway is None:
        _gateway = Gateway(get_config())
    if _gateway.state is GatewayState.UNINITIALIZED:
        await _gateway.start()
    return _gateway


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Configure logging and start the gateway; close it on shutdown."""
    cfg = get_config()
    setup_logging(cfg.log_file, cfg.log_level.upper())
    gateway = await get_gateway()
    try:
        yield
    finally:
        await gateway.close()


app = FastAPI(title="Document Gateway", version="0.1.0", lifespan=lifespan)


def _error_response(status: int, error: ErrorDetail) -> JSONResponse:
    """Build a consistent JSON error response."""
    body = ErrorResponse(error=error)
    return JSONResponse(status_code=status, content=body.model_dump())


def _gateway_error_response(exc: GatewayError) -> JSONResponse:
    detail = ErrorDetail(type=exc.kind, message=exc.detail)
    if isinstance(exc, ApiFailure):
        detail.upstream_status = exc.status_code
        detail.upstream_body = exc.body
    return _error_response(_STATUS_BY_KIND.get(exc.kind, 500), detail)


@app.post("/v1/documents/introduce-goods", response_model=None)
async def introduce_goods(request: IntroduceGoodsRequest) -> JSONResponse:
    """Create an "introduce goods into circulation" document upstream."""
    gateway = await get_gateway()
    try:
        result = await gateway.introduce_goods(
            request.product_group,
            request.document,
            request.signature,
            timeout=gateway.config.submit_timeout,
        )
    except GatewayError as exc:
        return _gateway_error_response(exc)

    if not result.ok:
        return _gateway_error_response(result.error)

    response = DocumentCreatedResponse(id=result.value)
    return JSONResponse(status_code=200, content=response.model_dump())


@app.get("/v1/status", response_model=None)
async def status() -> JSONResponse:
    """Report the gateway's lifecycle, credential and limiter state."""
    gateway = await get_gateway()
    credentials = gateway.credentials
    body = GatewayStatus(
        state=gateway.state.value,
        epoch=gateway.epoch,
        credentials=credentials.state.value if credentials is not None else None,
        available_permits=gateway.limiter.available,
        capacity=gateway.limiter.capacity,
    )
    return JSONResponse(status_code=200, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI's validation errors into our error envelope format."""
    return _error_response(
        422,
        ErrorDetail(
            type="validation_error",
            message="Request validation failed: {}".format(exc.errors()),
        ),
    )
