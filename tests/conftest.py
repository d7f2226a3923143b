"""Shared test fixtures for the document gateway tests."""

import asyncio
import json
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from docgate.config import GatewayConfig, load_config

BASE_URL = "https://api.example.test/api/v3"


def _make_config(tmp_path: Path, overrides: Optional[Dict] = None) -> str:
    """Write a minimal test config and return its path."""
    config = {
        "base_url": BASE_URL,
        "rate_limit": {
            "window_seconds": 60.0,
            "requests_per_window": 5,
        },
        "token_lifetime_seconds": 3600,
        "request_timeout": 5.0,
        "log_file": str(tmp_path / "test.log"),
    }
    if overrides:
        config.update(overrides)

    path = tmp_path / "test_config.json"
    path.write_text(json.dumps(config))
    return str(path)


class FakeRemote:
    """Scripted stand-in for the document API behind an httpx.MockTransport.

    Each route maps a path suffix to (status, body). Every request is
    recorded so tests can count calls per endpoint.
    """

    CHALLENGE = '{"uuid":"c0ffee","data":"sign-me"}'

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Tuple[int, str]] = {
            "/auth/cert/key": (200, self.CHALLENGE),
            "/auth/cert/": (200, json.dumps({"token": "tok-1"})),
            "/lk/documents/create": (200, json.dumps({"value": "doc-1"})),
        }
        self.delay = 0.0
        self.error: Optional[Callable[[httpx.Request], Exception]] = None
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error(request)
        # Longest suffix first so "/auth/cert/key" wins over "/auth/cert/".
        for suffix in sorted(self.routes, key=len, reverse=True):
            if request.url.path.endswith(suffix):
                status, body = self.routes[suffix]
                return httpx.Response(status, text=body)
        return httpx.Response(404, text='{"error":"not found"}')

    def count(self, suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(suffix))

    def last(self, suffix: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path.endswith(suffix)][-1]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def test_config_path(tmp_path: Path) -> str:
    """Return the path to a temporary test config file."""
    return _make_config(tmp_path)


@pytest.fixture()
def test_config(test_config_path: str) -> GatewayConfig:
    """Return a loaded test GatewayConfig."""
    return load_config(test_config_path)


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
