"""
Meta Graph API HTTP 클라이언트

Graph API(버전 세그먼트 포함)와 OAuth 전용 호스트(버전 없음)를 모두 다루는
얇은 요청 실행기. 호스트/버전/타임아웃은 인스턴스마다 주입됩니다.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

import httpx
import structlog

from ..core.exceptions import MetaApiError
from .metrics import GRAPH_API_ERRORS, GRAPH_API_LATENCY, GRAPH_API_REQUESTS

logger = structlog.get_logger(__name__)

# 백오프 상한 (초)
MAX_RETRY_DELAY = 8.0


class GraphApiClient:
    """Request executor bound to one base URL and (optional) API version."""

    def __init__(
        self,
        base_url: str,
        version: str = "",
        timeout: float = 30.0,
        retry_attempts: int = 1,
        retry_base_delay: float = 0.5,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.version = (version or "").strip("/")
        self.timeout = timeout
        self.retry_attempts = max(1, int(retry_attempts))
        self.retry_base_delay = retry_base_delay
        self._http_client = http_client
        self._host = urlsplit(self.base_url).netloc or self.base_url

    def build_url(self, path: str) -> str:
        parts = [self.base_url]
        if self.version:
            parts.append(self.version)
        parts.append(path.lstrip("/"))
        return "/".join(parts)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        extra_params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """Execute one API call and return the parsed JSON body.

        ``json`` is sent as a JSON body, ``data`` as a form-encoded body
        (the OAuth token endpoints only accept the latter). Raises
        ``MetaApiError`` on any non-2xx response or transport failure.
        """
        if json is not None and data is not None:
            raise ValueError("json and data bodies are mutually exclusive")

        method = method.upper()
        url = self.build_url(path)
        query: dict[str, Any] = {}
        if params:
            query.update(params)
        if extra_params:
            query.update(extra_params)

        attempt = 1
        while True:
            try:
                return await self._send_once(method, url, query, json, data)
            except MetaApiError as e:
                if attempt >= self.retry_attempts or not e.retryable:
                    raise
                delay = self._retry_delay(attempt, e)
                logger.info(
                    "graph_api_retry",
                    host=self._host,
                    method=method,
                    attempt=attempt,
                    status_code=e.status_code,
                    delay=round(delay, 3),
                )
                await asyncio.sleep(delay)
                attempt += 1

    def _retry_delay(self, attempt: int, error: MetaApiError) -> float:
        """Retry-After if the host sent one, else capped exponential backoff with full jitter."""
        if error.retry_after_seconds:
            return min(float(error.retry_after_seconds), MAX_RETRY_DELAY)
        ceiling = min(self.retry_base_delay * (2 ** (attempt - 1)), MAX_RETRY_DELAY)
        return random.uniform(0, ceiling)

    async def _send_once(
        self,
        method: str,
        url: str,
        query: Mapping[str, Any],
        json: Any,
        data: Optional[Mapping[str, Any]],
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"params": query or None}
        if json is not None:
            kwargs["json"] = json
        if data is not None:
            kwargs["data"] = dict(data)

        started = time.perf_counter()
        try:
            if self._http_client is not None:
                response = await self._http_client.request(method, url, timeout=self.timeout, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            GRAPH_API_REQUESTS.labels(host=self._host, method=method, result="error").inc()
            GRAPH_API_ERRORS.labels(host=self._host, method=method, status="transport").inc()
            logger.warning("graph_api_transport_error", host=self._host, method=method, error=str(e))
            raise MetaApiError(message=f"Transport error calling {self._host}: {e}") from e
        finally:
            GRAPH_API_LATENCY.labels(host=self._host, method=method).observe(time.perf_counter() - started)

        body = _parse_body(response)
        if not response.is_success:
            GRAPH_API_REQUESTS.labels(host=self._host, method=method, result="error").inc()
            GRAPH_API_ERRORS.labels(host=self._host, method=method, status=str(response.status_code)).inc()
            logger.warning(
                "graph_api_error_response",
                host=self._host,
                method=method,
                status_code=response.status_code,
                error=_error_message(body),
            )
            raise MetaApiError(
                message=f"Graph API error {response.status_code}: {_error_message(body)}",
                status_code=response.status_code,
                body=body,
                retry_after_seconds=_retry_after(response),
            )

        GRAPH_API_REQUESTS.labels(host=self._host, method=method, result="success").inc()
        return body


def _parse_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        parsed = response.json()
    except ValueError:
        return {"body": response.text}
    if isinstance(parsed, dict):
        return parsed
    return {"data": parsed}


def _error_message(body: Mapping[str, Any]) -> str:
    error = body.get("error") if isinstance(body, Mapping) else None
    if isinstance(error, Mapping):
        return str(error.get("message") or error.get("type") or "unknown error")
    if error:
        return str(error)
    return str(body.get("error_message") or body.get("body") or "unknown error")


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
