"""Single HTTP exchange with the document API.

The executor knows nothing about rate limits or credential refresh. It
takes a prepared RequestDescriptor plus an optional bearer token, performs
exactly one request and classifies the outcome. No retries happen here.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Union
from urllib.parse import urlencode

import httpx

from docgate.errors import (
    ApiFailure,
    AuthFailure,
    GatewayStateError,
    TransportFailure,
)


class HttpMethod(str, Enum):
    """HTTP methods used by the document API."""

    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to perform one API call.

    ``body`` is already serialized; the executor forwards it untouched.
    ``response_key`` names a field to extract from a JSON object reply. When
    it is None the raw response body is returned.
    """

    path: str
    method: HttpMethod = HttpMethod.GET
    query: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    requires_auth: bool = True
    response_key: Optional[str] = None


class RequestExecutor:
    """Performs descriptor-driven requests over one pooled httpx client."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def build_url(self, descriptor: RequestDescriptor) -> str:
        """Join base URL, path and (only if non-empty) the encoded query."""
        url = self.base_url + descriptor.path
        if descriptor.query:
            url += "?" + urlencode(dict(descriptor.query))
        return url

    async def send(
        self, descriptor: RequestDescriptor, token: Optional[str] = None
    ) -> Optional[str]:
        """Perform the request described by ``descriptor``.

        Args:
            descriptor: The prepared request.
            token: Bearer token, required when ``descriptor.requires_auth``.

        Returns:
            The raw body, or the value at ``descriptor.response_key`` (None
            when the reply does not contain that key).

        Raises:
            AuthFailure: If auth is required but no token was supplied.
            ApiFailure: If the service answers with a non-200 status.
            TransportFailure: On network errors or an unparseable reply.
            GatewayStateError: If the executor was closed before or during the call.
        """
        headers = {}
        if descriptor.body is not None:
            headers["Content-Type"] = "application/json"
        if descriptor.requires_auth:
            if not token:
                raise AuthFailure(
                    "Request to {} requires a bearer token.".format(descriptor.path)
                )
            headers["Authorization"] = "Bearer {}".format(token)

        url = self.build_url(descriptor)
        if self._client.is_closed:
            raise GatewayStateError(
                "Executor is closed; {} {} was not sent.".format(
                    descriptor.method.value, url
                )
            )
        try:
            resp = await self._client.request(
                descriptor.method.value,
                url,
                content=descriptor.body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise TransportFailure(
                "{} {} failed: {}".format(descriptor.method.value, url, exc)
            ) from exc
        except RuntimeError as exc:
            # httpx raises a bare RuntimeError when the client closes under us.
            if not self._client.is_closed:
                raise
            raise GatewayStateError(
                "Executor closed while sending {} {}.".format(
                    descriptor.method.value, url
                )
            ) from exc

        if resp.status_code != 200:
            raise ApiFailure(resp.status_code, resp.text)

        if descriptor.response_key is None:
            return resp.text
        return _extract_field(resp.text, descriptor.response_key)

    async def aclose(self) -> None:
        await self._client.aclose()


def _extract_field(body: str, key: str) -> Optional[str]:
    """Pull ``key`` out of a flat JSON object body."""
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise TransportFailure("Response is not valid JSON: {}".format(exc)) from exc

    if not isinstance(payload, dict):
        raise TransportFailure(
            "Expected a JSON object response, got {}.".format(type(payload).__name__)
        )

    value = payload.get(key)
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        raise TransportFailure(
            "Field '{}' is not a scalar value.".format(key)
        )
    return json.dumps(value)
