"""Tests for the issuance API client and error categories."""

import httpx
import pytest

from drip_claimer.errors import ApiError, CredentialExpiredError, ErrorKind
from drip_claimer.utils.api_client import ApiResponse, build_http_client


class TestErrorKind:
    """Tests for status code categorisation."""

    @pytest.mark.parametrize("status,kind", [
        (None, ErrorKind.TRANSPORT),
        (401, ErrorKind.UNAUTHORIZED),
        (402, ErrorKind.PAYMENT_REQUIRED),
        (404, ErrorKind.CLIENT_ERROR),
        (429, ErrorKind.CLIENT_ERROR),
        (500, ErrorKind.SERVER_ERROR),
        (503, ErrorKind.SERVER_ERROR),
    ])
    def test_from_status(self, status, kind):
        assert ErrorKind.from_status(status) is kind

    def test_credential_expired_is_unauthorized(self):
        error = CredentialExpiredError()
        assert isinstance(error, ApiError)
        assert error.status_code == 401
        assert error.kind is ErrorKind.UNAUTHORIZED


class TestApiResponse:
    """Tests for ApiResponse."""

    def test_ok_range(self):
        assert ApiResponse(200, {}).ok
        assert ApiResponse(204, None).ok
        assert not ApiResponse(302, "").ok
        assert not ApiResponse(402, {}).ok

    def test_describe(self):
        assert ApiResponse(500, {"error": "x"}).describe() == '{"error": "x"}'
        assert ApiResponse(500, "Bad Gateway").describe() == "Bad Gateway"

    def test_raise_for_status_401(self):
        with pytest.raises(CredentialExpiredError) as exc_info:
            ApiResponse(401, {"error": "expired"}).raise_for_status("Verify")
        assert exc_info.value.body == {"error": "expired"}

    def test_raise_for_status_other(self):
        with pytest.raises(ApiError) as exc_info:
            ApiResponse(429, {"error": "slow down"}).raise_for_status("Verify")
        assert not isinstance(exc_info.value, CredentialExpiredError)
        assert exc_info.value.kind is ErrorKind.CLIENT_ERROR
        assert "Verify failed with HTTP 429" in str(exc_info.value)

    def test_raise_for_status_ok(self):
        ApiResponse(200, {"jwt": "x"}).raise_for_status()


class TestApiClient:
    """Tests for ApiClient.post."""

    @pytest.mark.asyncio
    async def test_json_and_bearer(self, make_api):
        api, handler = make_api(lambda request: httpx.Response(200, json={"ok": True}))

        response = await api.post("/faucet/drip", {"a": 1}, bearer="tok")

        assert response.status_code == 200
        assert response.data == {"ok": True}
        assert str(handler.requests[0].url) == "https://api.test/faucet/drip"
        assert handler.requests[0].headers["Authorization"] == "Bearer tok"
        assert handler.bodies() == [{"a": 1}]

    @pytest.mark.asyncio
    async def test_error_status_is_returned(self, make_api):
        """Test that HTTP error statuses come back as values, not exceptions."""
        api, _ = make_api(lambda request: httpx.Response(502, text="Bad Gateway"))

        response = await api.post("/faucet/drip", {})

        assert response.status_code == 502
        assert response.data == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_transport_error(self, make_api):
        def respond(request):
            raise httpx.ConnectError("connection refused")

        api, _ = make_api(respond)

        with pytest.raises(ApiError) as exc_info:
            await api.post("/faucet/drip", {})
        assert exc_info.value.kind is ErrorKind.TRANSPORT
        assert "connection refused" in str(exc_info.value)


class TestBuildHttpClient:
    """Tests for the shared AsyncClient factory."""

    @pytest.mark.asyncio
    async def test_defaults(self):
        client = build_http_client(base_url="https://api.test")
        try:
            assert client.base_url.host == "api.test"
            assert client.timeout.connect is None
            assert client.timeout.read is None
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = build_http_client(timeout=12.5)
        try:
            assert client.timeout.read == 12.5
        finally:
            await client.aclose()
