"""Configuration loader for the document gateway.

Reads a JSON config file with the API base URL, the rate window and the
request capacity. Values are validated up front so a bad configuration
fails before any network activity.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from docgate.credentials import DEFAULT_TOKEN_LIFETIME
from docgate.errors import ConfigurationError


@dataclass
class GatewayConfig:
    """Construction parameters for a Gateway."""

    base_url: str
    window_seconds: float = 1.0
    requests_per_window: int = 10
    token_lifetime_seconds: float = DEFAULT_TOKEN_LIFETIME
    request_timeout: float = 30.0
    submit_timeout: Optional[float] = None
    log_file: str = "logs/gateway.log"
    log_level: str = "INFO"

    def validate(self) -> None:
        """Check every parameter.

        Raises:
            ConfigurationError: On the first invalid value.
        """
        capacity = self.requests_per_window
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ConfigurationError(
                "requests_per_window must be a positive integer, got {!r}.".format(
                    capacity
                )
            )
        for name in ("window_seconds", "token_lifetime_seconds", "request_timeout"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(
                    "{} must be positive, got {!r}.".format(name, value)
                )
        if self.submit_timeout is not None and self.submit_timeout <= 0:
            raise ConfigurationError(
                "submit_timeout must be positive when set, got {!r}.".format(
                    self.submit_timeout
                )
            )
        # getLevelName maps known names to ints and anything else to "Level X".
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigurationError(
                "Unknown log_level {!r}.".format(self.log_level)
            )
        _validate_base_url(self.base_url)


def _validate_base_url(base_url: Any) -> None:
    if not isinstance(base_url, str) or not base_url:
        raise ConfigurationError("base_url must be a non-empty string.")
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(
            "Invalid base_url {!r}: {}".format(base_url, exc)
        ) from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            "base_url must be an absolute http(s) URL, got {!r}.".format(base_url)
        )


def load_config(path: Union[str, Path]) -> GatewayConfig:
    """Load gateway configuration from a JSON file.

    Args:
        path: Path to the JSON config file.

    Returns:
        A validated GatewayConfig.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigurationError: If a value is missing or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        try:
            raw: Dict[str, Any] = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Config file is not valid JSON: {exc}") from exc

    if "base_url" not in raw:
        raise ConfigurationError(f"Config file {path} has no base_url.")

    rate_limit = raw.get("rate_limit", {})
    config = GatewayConfig(
        base_url=raw["base_url"],
        window_seconds=rate_limit.get("window_seconds", 1.0),
        requests_per_window=rate_limit.get("requests_per_window", 10),
        token_lifetime_seconds=raw.get(
            "token_lifetime_seconds", DEFAULT_TOKEN_LIFETIME
        ),
        request_timeout=raw.get("request_timeout", 30.0),
        submit_timeout=raw.get("submit_timeout"),
        log_file=raw.get("log_file", "logs/gateway.log"),
        log_level=raw.get("log_level", "INFO"),
    )
    config.validate()
    return config
