"""Tests for ScanServiceClient with mocked aiohttp sessions.

Tests cover:
- Request routing for each endpoint
- Error detail extraction from failed responses
- Transport failures mapped to TransportError
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from secure_engine.client.service import ScanServiceClient, extract_detail
from secure_engine.core.config import Config
from secure_engine.core.errors import EngineError, TransportError, ValidationError
from secure_engine.core.models import PendingFile


def _mock_session(status=200, body=None, json_error=None):
    """Build a mocked aiohttp.ClientSession returning one response."""
    mock_response = MagicMock()
    mock_response.status = status
    if json_error is not None:
        mock_response.json = AsyncMock(side_effect=json_error)
    else:
        mock_response.json = AsyncMock(return_value=body)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = MagicMock()
    mock_session.request = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


@pytest.fixture
def client():
    return ScanServiceClient("http://scanner.local/api/v1/", timeout_seconds=5)


def test_from_config():
    client = ScanServiceClient.from_config(Config(api_url="http://x/api", timeout_seconds=12))

    assert client.base_url == "http://x/api"
    assert client.timeout_seconds == 12


# Endpoint routing


@pytest.mark.asyncio
async def test_upload_file_posts_multipart(client, sast_payload):
    mock_session = _mock_session(body=sast_payload)
    file = PendingFile(filename="app.zip", content=b"PK", content_type="application/zip")

    with patch("aiohttp.ClientSession", return_value=mock_session):
        body = await client.upload_file(file)

    assert body == sast_payload
    args, kwargs = mock_session.request.call_args
    assert args == ("POST", "http://scanner.local/api/v1/scan/upload")
    assert isinstance(kwargs["data"], aiohttp.FormData)


@pytest.mark.asyncio
async def test_upload_empty_file_rejected(client):
    with patch("aiohttp.ClientSession") as session_cls:
        with pytest.raises(ValidationError):
            await client.upload_file(PendingFile(filename="x", content=b""))
    session_cls.assert_not_called()


@pytest.mark.asyncio
async def test_run_dast_posts_target_url(client, dast_payload):
    mock_session = _mock_session(body=dast_payload)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        await client.run_dast("https://example.com")

    mock_session.request.assert_called_once_with(
        "POST",
        "http://scanner.local/api/v1/scan/dast",
        json={"target_url": "https://example.com"},
    )


@pytest.mark.asyncio
async def test_get_scan(client, sast_payload):
    mock_session = _mock_session(body=sast_payload)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        body = await client.get_scan("sast-001")

    assert body["scan_id"] == "sast-001"
    mock_session.request.assert_called_once_with(
        "GET", "http://scanner.local/api/v1/scan/scan/sast-001"
    )


@pytest.mark.asyncio
async def test_get_history_passes_limit_and_offset(client):
    mock_session = _mock_session(body=[{"id": "a"}, {"id": "b"}])

    with patch("aiohttp.ClientSession", return_value=mock_session):
        rows = await client.get_history(limit=2, offset=4)

    assert rows == [{"id": "a"}, {"id": "b"}]
    mock_session.request.assert_called_once_with(
        "GET",
        "http://scanner.local/api/v1/scan/history",
        params={"limit": 2, "offset": 4},
    )


@pytest.mark.asyncio
async def test_get_history_non_list_body(client):
    mock_session = _mock_session(body={"unexpected": True})

    with patch("aiohttp.ClientSession", return_value=mock_session):
        rows = await client.get_history(limit=10, offset=0)

    assert rows == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body,expected",
    [({"total": 42}, 42), ({"count": 7}, 7), (3, 3), ({"other": 1}, None), ({"total": -1}, None)],
)
async def test_get_history_count(client, body, expected):
    mock_session = _mock_session(body=body)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        count = await client.get_history_count()

    assert count == expected


# Error mapping


@pytest.mark.asyncio
async def test_error_status_raises_engine_error_with_detail(client):
    mock_session = _mock_session(status=400, body={"detail": "Unsupported file type"})

    with patch("aiohttp.ClientSession", return_value=mock_session):
        with pytest.raises(EngineError) as exc_info:
            await client.get_scan("x")

    assert exc_info.value.status == 400
    assert exc_info.value.detail == "Unsupported file type"
    assert str(exc_info.value) == "Unsupported file type"


@pytest.mark.asyncio
async def test_error_status_without_json_body(client):
    mock_session = _mock_session(status=502, json_error=json.JSONDecodeError("x", "", 0))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        with pytest.raises(EngineError) as exc_info:
            await client.get_scan("x")

    assert exc_info.value.status == 502
    assert exc_info.value.detail is None


@pytest.mark.asyncio
async def test_success_with_non_json_body(client):
    mock_session = _mock_session(status=200, json_error=ValueError("not json"))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        with pytest.raises(EngineError):
            await client.get_scan("x")


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error(client):
    mock_session = MagicMock()
    mock_session.__aenter__ = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
    mock_session.__aexit__ = AsyncMock(return_value=None)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        with pytest.raises(TransportError, match="Connection error"):
            await client.run_dast("https://example.com")


@pytest.mark.asyncio
async def test_timeout_raises_transport_error(client):
    mock_session = MagicMock()
    mock_session.__aenter__ = AsyncMock(side_effect=asyncio.TimeoutError())
    mock_session.__aexit__ = AsyncMock(return_value=None)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        with pytest.raises(TransportError, match="timed out"):
            await client.get_scan("x")


# extract_detail Tests


def test_extract_detail():
    assert extract_detail({"detail": "nope"}) == "nope"
    assert extract_detail({"detail": [{"msg": "a"}, {"msg": "b"}]}) == "a; b"
    assert extract_detail({"detail": ""}) is None
    assert extract_detail("plain text") is None
    assert extract_detail(None) is None
