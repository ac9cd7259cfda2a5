import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import ApiError, CredentialExpiredError

logger = logging.getLogger(__name__)


def build_http_client(
    base_url: str = "",
    proxy_url: str | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with no connection cap.

    Args:
        base_url: Base URL prepended to relative request paths
        proxy_url: Optional outbound proxy
        timeout: Request timeout in seconds, None for no timeout
        transport: Optional transport override (used by tests)
    """
    kwargs: dict[str, Any] = {
        "timeout": httpx.Timeout(timeout),
        "limits": httpx.Limits(max_connections=None, max_keepalive_connections=None),
    }
    if base_url:
        kwargs["base_url"] = base_url
    if transport is not None:
        kwargs["transport"] = transport
    elif proxy_url:
        kwargs["proxy"] = proxy_url
    return httpx.AsyncClient(**kwargs)


@dataclass(frozen=True, slots=True)
class ApiResponse:
    """Status and decoded body of an issuance API response."""

    status_code: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def describe(self) -> str:
        """Short human-readable form of the body for log lines."""
        if isinstance(self.data, (dict, list)):
            return json.dumps(self.data)
        return str(self.data)

    def raise_for_status(self, context: str = "request") -> None:
        """Raise a typed ApiError for any non-2xx status.

        Raises:
            CredentialExpiredError: On HTTP 401
            ApiError: On any other non-2xx status
        """
        if self.ok:
            return
        if self.status_code == 401:
            raise CredentialExpiredError(f"{context} rejected with HTTP 401", body=self.data)
        raise ApiError(
            f"{context} failed with HTTP {self.status_code}: {self.describe()}",
            status_code=self.status_code,
            body=self.data,
        )


class ApiClient:
    """JSON client for the issuance API.

    HTTP error statuses are returned as ``ApiResponse`` values so callers can
    branch on them; transport failures are raised as ``ApiError`` with kind
    ``TRANSPORT``.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize the API client.

        Args:
            client: AsyncClient configured with the API base URL
        """
        self.client = client

    async def post(self, path: str, payload: Any, bearer: str | None = None) -> ApiResponse:
        """Post a JSON payload to the issuance API.

        Args:
            path: API endpoint path
            payload: JSON payload to send
            bearer: Optional bearer credential for the Authorization header

        Returns:
            ApiResponse with the status and decoded body

        Raises:
            ApiError: If the request could not be sent or no response was received
        """
        headers = {"Authorization": f"Bearer {bearer}"} if bearer else None
        logger.debug(f"POST {path}")
        try:
            response: httpx.Response = await self.client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ApiError(f"POST {path} failed: {str(e) or type(e).__name__}") from e

        return ApiResponse(status_code=response.status_code, data=self._decode(response))

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text
