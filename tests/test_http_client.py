"""
Tests for DataHTTPClient error mapping and request handling.
"""

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch

from alphdata.exceptions import NotFoundError, ParseError
from alphdata.utils.http_client import DataHTTPClient, HTTPClientError


def ok_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status = Mock()
    return response


def error_response(status_code: int, text: str = ""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.raise_for_status = Mock(side_effect=httpx.HTTPStatusError(
        f"HTTP {status_code}", request=Mock(), response=response
    ))
    return response


@pytest.fixture
def mock_httpx_client():
    """Patch httpx.AsyncClient so no request leaves the process."""
    with patch("alphdata.utils.http_client.httpx.AsyncClient") as mock_class:
        client = AsyncMock()
        mock_class.return_value = client
        yield client


class TestDataHTTPClient:

    @pytest.mark.asyncio
    async def test_get_returns_parsed_json(self, mock_httpx_client):
        mock_httpx_client.request.return_value = ok_response({"balance": "1000"})
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org/")

        result = await client.get("node", "/addresses/abc/balance")

        assert result == {"balance": "1000"}
        mock_httpx_client.request.assert_awaited_once()
        assert mock_httpx_client.request.call_args.kwargs["url"] == "/addresses/abc/balance"
        assert client.get_endpoints() == {"node": "https://node.example.org"}

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self, mock_httpx_client):
        mock_httpx_client.request.return_value = ok_response([])
        client = DataHTTPClient()
        await client.add_endpoint("backend", "https://backend.example.org")

        await client.post("backend", "/tokens", json_data=["abc"])

        call = mock_httpx_client.request.call_args
        assert call.kwargs["method"] == "POST"
        assert call.kwargs["json"] == ["abc"]

    @pytest.mark.asyncio
    async def test_404_maps_to_not_found(self, mock_httpx_client):
        mock_httpx_client.request.return_value = error_response(404, "Not Found")
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org")

        with pytest.raises(NotFoundError):
            await client.get("node", "/tokens/abc")

    @pytest.mark.asyncio
    async def test_4xx_with_not_found_body_maps_to_not_found(self, mock_httpx_client):
        mock_httpx_client.request.return_value = error_response(400, '{"detail": "Token abc not found"}')
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org")

        with pytest.raises(NotFoundError):
            await client.get("node", "/tokens/abc")

    @pytest.mark.asyncio
    async def test_server_error_maps_to_http_client_error(self, mock_httpx_client):
        mock_httpx_client.request.return_value = error_response(500, "boom")
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org")

        with pytest.raises(HTTPClientError) as exc_info:
            await client.get("node", "/infos/node")

        assert exc_info.value.status_code == 500
        assert mock_httpx_client.request.await_count == 1

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_when_configured(self, mock_httpx_client):
        mock_httpx_client.request.side_effect = [
            error_response(503),
            error_response(502),
            ok_response({"ok": True}),
        ]
        client = DataHTTPClient(max_retries=2, retry_delay=0)
        await client.add_endpoint("node", "https://node.example.org")

        assert await client.get("node", "/infos/node") == {"ok": True}
        assert mock_httpx_client.request.await_count == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, mock_httpx_client):
        mock_httpx_client.request.return_value = error_response(403, "Forbidden")
        client = DataHTTPClient(max_retries=2, retry_delay=0)
        await client.add_endpoint("node", "https://node.example.org")

        with pytest.raises(HTTPClientError) as exc_info:
            await client.get("node", "/infos/node")

        assert exc_info.value.status_code == 403
        assert mock_httpx_client.request.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_json_maps_to_parse_error(self, mock_httpx_client):
        response = ok_response(None)
        response.json.side_effect = ValueError("Expecting value")
        mock_httpx_client.request.return_value = response
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org")

        with pytest.raises(ParseError):
            await client.get("node", "/infos/node")

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_http_client_error(self, mock_httpx_client):
        mock_httpx_client.request.side_effect = httpx.ConnectError("connection refused")
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org")

        with pytest.raises(HTTPClientError) as exc_info:
            await client.get("node", "/infos/node")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_get_url_fetches_absolute_urls(self, mock_httpx_client):
        mock_httpx_client.request.return_value = ok_response({"name": "Punk"})
        client = DataHTTPClient()

        result = await client.get_url("https://ipfs.io/ipfs/QmDoc", timeout=15.0)

        assert result == {"name": "Punk"}
        call = mock_httpx_client.request.call_args
        assert call.kwargs["url"] == "https://ipfs.io/ipfs/QmDoc"
        assert call.kwargs["timeout"] == 15.0

    @pytest.mark.asyncio
    async def test_unknown_endpoint_raises(self, mock_httpx_client):
        client = DataHTTPClient()

        with pytest.raises(ValueError, match="not configured"):
            await client.get("missing", "/")

    @pytest.mark.asyncio
    async def test_aclose_closes_clients(self, mock_httpx_client):
        mock_httpx_client.request.return_value = ok_response({})
        client = DataHTTPClient()
        await client.add_endpoint("node", "https://node.example.org")
        await client.get("node", "/infos/node")

        await client.aclose()

        mock_httpx_client.aclose.assert_awaited_once()
        assert not client.has_endpoint("node")
