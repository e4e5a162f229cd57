"""Async HTTP client for the remote scan service.

Transport only: returns decoded JSON and maps failures onto the error
taxonomy. Normalization happens in ``secure_engine.core.normalizer``.

Endpoints (relative to the configured base URL):
- POST /scan/upload           multipart field ``file`` -> SAST result
- POST /scan/dast             JSON ``{"target_url": ...}`` -> DAST result
- GET  /scan/scan/{scan_id}   -> single result
- GET  /scan/history          ``limit``/``offset`` -> list of summaries
- GET  /scan/history/count    -> ``{"total": n}``

Provides:
- ScanServiceClient: aiohttp-backed client
"""

import asyncio
import json
from typing import Any

import aiohttp
import structlog

from secure_engine.core.config import Config
from secure_engine.core.errors import EngineError, TransportError, ValidationError
from secure_engine.core.models import PendingFile

logger = structlog.get_logger()


def extract_detail(body: Any) -> str | None:
    """Pull the human-readable message out of an error body.

    Accepts ``{"detail": "..."}`` and FastAPI-style
    ``{"detail": [{"msg": "..."}, ...]}``.
    """
    if not isinstance(body, dict):
        return None
    detail = body.get("detail")
    if isinstance(detail, str):
        return detail or None
    if isinstance(detail, list):
        messages = [
            str(item.get("msg")) for item in detail if isinstance(item, dict) and item.get("msg")
        ]
        return "; ".join(messages) or None
    return None


class ScanServiceClient:
    """Client for the scan service REST API.

    Each call opens a short-lived aiohttp session, so one client instance can
    be shared by the session controller and the history paginator.

    Attributes:
        base_url: Service root, e.g. ``http://localhost:8000/api/v1``
        timeout_seconds: Total timeout per request
    """

    def __init__(self, base_url: str, timeout_seconds: float = 300.0):
        """Initialize the client.

        Args:
            base_url: Service root URL (trailing slash optional)
            timeout_seconds: Total timeout per request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: Config) -> "ScanServiceClient":
        return cls(config.api_url, timeout_seconds=config.timeout_seconds)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            TransportError: Connection failure or timeout
            EngineError: Non-2xx status, or a 2xx body that is not JSON
        """
        url = f"{self.base_url}{path}"
        log = logger.bind(method=method, url=url)
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, **kwargs) as response:
                    status = response.status
                    try:
                        body = await response.json(content_type=None)
                    except (json.JSONDecodeError, ValueError):
                        body = None
                        decoded = False
                    else:
                        decoded = True

                    if not 200 <= status < 300:
                        detail = extract_detail(body)
                        log.warning("scan_service_error", status=status, detail=detail)
                        raise EngineError(status, detail)

                    if not decoded:
                        log.warning("scan_service_non_json", status=status)
                        raise EngineError(status, "Scan service returned a non-JSON response")

                    log.debug("scan_service_response", status=status)
                    return body

        except asyncio.TimeoutError as e:
            log.warning("scan_service_timeout", timeout=self.timeout_seconds)
            raise TransportError(f"Request to {url} timed out") from e
        except aiohttp.ClientError as e:
            log.warning("scan_service_unreachable", error=str(e))
            raise TransportError(f"Connection error: {e}") from e

    async def upload_file(self, file: PendingFile) -> dict[str, Any]:
        """Upload a file for SAST scanning and wait for the result.

        Args:
            file: File to upload as the ``file`` form field

        Returns:
            ScanResult-shaped JSON object
        """
        if not file.content:
            raise ValidationError("Cannot upload an empty file")

        form = aiohttp.FormData()
        form.add_field(
            "file",
            file.content,
            filename=file.filename,
            content_type=file.content_type,
        )
        return await self._request("POST", "/scan/upload", data=form)

    async def run_dast(self, target_url: str) -> dict[str, Any]:
        """Run a DAST scan against ``target_url`` and wait for the result."""
        if not target_url or not target_url.strip():
            raise ValidationError("Target URL is required")
        return await self._request("POST", "/scan/dast", json={"target_url": target_url.strip()})

    async def get_scan(self, scan_id: str) -> dict[str, Any]:
        """Fetch one past scan with its findings."""
        if not scan_id:
            raise ValidationError("Scan id is required")
        return await self._request("GET", f"/scan/scan/{scan_id}")

    async def get_history(self, limit: int, offset: int) -> list[dict[str, Any]]:
        """Fetch one page of scan summaries.

        Returns:
            Raw history rows; a non-list body yields an empty list
        """
        body = await self._request("GET", "/scan/history", params={"limit": limit, "offset": offset})
        if isinstance(body, dict):
            body = body.get("items", body.get("entries"))
        if not isinstance(body, list):
            logger.warning("history_not_a_list", type=type(body).__name__)
            return []
        return body

    async def get_history_count(self) -> int | None:
        """Fetch the true number of history rows.

        Returns:
            Total row count, or None if the body carries no usable count
        """
        body = await self._request("GET", "/scan/history/count")
        if isinstance(body, dict):
            for key in ("total", "count", "total_count"):
                if key in body:
                    body = body[key]
                    break
        if isinstance(body, bool):
            return None
        if isinstance(body, (int, float)) and body >= 0:
            return int(body)
        logger.warning("history_count_unusable", body=repr(body)[:100])
        return None
