"""Classified failures raised by the document gateway.

Every failure path in the gateway ends in one of these classes. The
``kind`` attribute is a stable machine-readable label used in logs and in
the HTTP error envelope.
"""


class GatewayError(Exception):
    """Base class for all classified gateway failures."""

    kind = "gateway_error"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ConfigurationError(GatewayError):
    """Invalid construction parameters (capacity, window, base URL)."""

    kind = "configuration_error"


class AuthFailure(GatewayError):
    """The remote service did not issue a usable bearer token."""

    kind = "auth_failure"


class ApiFailure(GatewayError):
    """The remote service answered with a non-200 status."""

    kind = "api_failure"

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__("HTTP {} -> {}".format(status_code, body))


class TransportFailure(GatewayError):
    """Connection error, timeout or a malformed response body."""

    kind = "transport_failure"


class Cancelled(GatewayError):
    """A deadline passed while waiting for a permit or a credential."""

    kind = "cancelled"


class GatewayStateError(GatewayError):
    """The gateway was used outside its READY state."""

    kind = "gateway_state_error"
