from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from videogen.config import Settings
from videogen.domain.errors import ProviderError, ProviderTimeout
from videogen.domain.models import NormalizedParams, ProviderStatus
from videogen.services.providers.base import ProviderSubmitResult
from videogen.services.providers.runway.mapper import (
    build_generation_payload,
    extract_error_message,
    extract_outputs,
    extract_progress,
    extract_task_id,
    map_state,
)

logger = logging.getLogger("runway_client")


@dataclass(frozen=True)
class RunwayConfig:
    api_key: str
    base_url: str = "https://api.dev.runwayml.com"
    api_version: str = "2024-11-06"
    timeout_seconds: float = 30.0
    query_attempts: int = 2

    @classmethod
    def from_settings(cls, s: Settings) -> "RunwayConfig":
        return cls(
            api_key=s.RUNWAY_API_KEY,
            base_url=s.RUNWAY_BASE_URL,
            api_version=s.RUNWAY_API_VERSION,
            timeout_seconds=s.RUNWAY_TIMEOUT_SECONDS,
            query_attempts=s.RUNWAY_QUERY_ATTEMPTS,
        )


def _is_connection_error(e: BaseException) -> bool:
    # Timeouts already consumed the per-call budget; only retry fast failures.
    return isinstance(e, ProviderError) and e.is_transport and not isinstance(e, ProviderTimeout)


def _body_text(r: httpx.Response) -> str:
    try:
        return (r.text or "")[:4000]
    except Exception:
        return "<unreadable body>"


def _safe_json(r: httpx.Response, op: str) -> Dict[str, Any]:
    text = (r.text or "").strip()
    if not text:
        raise ProviderError(
            f"Runway {op} returned EMPTY_BODY",
            http_status=r.status_code,
            body="",
            code=ProviderError.MALFORMED_RESPONSE,
        )
    try:
        obj = r.json()
    except json.JSONDecodeError as e:
        raise ProviderError(
            f"Runway {op} returned INVALID_JSON: {str(e)}",
            http_status=r.status_code,
            body=text[:4000],
            code=ProviderError.MALFORMED_RESPONSE,
        ) from e
    if not isinstance(obj, dict):
        raise ProviderError(
            f"Runway {op} returned UNEXPECTED_JSON_TYPE: {type(obj).__name__}",
            http_status=r.status_code,
            body=text[:4000],
            code=ProviderError.MALFORMED_RESPONSE,
        )
    return obj


class RunwayClient:
    """
    Runway task API: submit a generation, read its task, cancel it.

    Every HTTP exchange is bounded by config.timeout_seconds as a whole
    (connect + send + read), so one slow call cannot stall a polling loop.
    """

    provider_name = "runway"

    def __init__(self, config: RunwayConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.config = config
        self.base = config.base_url.rstrip("/")
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.config.api_key:
            raise ProviderError("RUNWAY_API_KEY is not set.", code="MISSING_API_KEY")
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "X-Runway-Version": self.config.api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport)

    async def _request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        url = f"{self.base}{path}"
        headers = self._headers()
        try:
            async with self._client() as client:
                return await asyncio.wait_for(
                    client.request(method, url, headers=headers, json=json_body),
                    timeout=self.config.timeout_seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ProviderTimeout(f"Runway {method} {path} timed out after {self.config.timeout_seconds}s") from e
        except httpx.TransportError as e:
            raise ProviderError(f"Runway {method} {path} transport error: {type(e).__name__}: {e}") from e

    async def submit(self, params: NormalizedParams) -> ProviderSubmitResult:
        path = "/v1/image_to_video" if params.image_url else "/v1/text_to_video"
        payload = build_generation_payload(params)

        r = await self._request("POST", path, json_body=payload)

        if not r.is_success:
            body = _body_text(r)
            raise ProviderError(f"Runway submit failed {r.status_code}: {body}", http_status=r.status_code, body=body)

        data = _safe_json(r, "submit")
        provider_job_id = extract_task_id(data)
        if not provider_job_id:
            raise ProviderError(
                f"Runway submit missing task id. Response: {data}",
                http_status=r.status_code,
                body=_body_text(r),
                code=ProviderError.MALFORMED_RESPONSE,
            )

        logger.info("runway_submitted", extra={"provider_job_id": provider_job_id, "model": params.model_id})
        return ProviderSubmitResult(provider_job_id=provider_job_id, raw_response=data)

    async def query_status(self, provider_job_id: str) -> ProviderStatus:
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self.config.query_attempts)),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4.0),
            retry=retry_if_exception(_is_connection_error),
        ):
            with attempt:
                return await self._query_once(provider_job_id)

    async def _query_once(self, provider_job_id: str) -> ProviderStatus:
        r = await self._request("GET", f"/v1/tasks/{provider_job_id}")

        if not r.is_success:
            body = _body_text(r)
            raise ProviderError(
                f"Runway task status failed {r.status_code}: {body}", http_status=r.status_code, body=body
            )

        data = _safe_json(r, "task status")
        raw_state = data.get("status") or data.get("state")
        state = map_state(raw_state, provider_job_id)

        return ProviderStatus(
            state=state,
            raw_state=str(raw_state) if raw_state is not None else None,
            outputs=extract_outputs(data),
            progress_hint=extract_progress(data),
            error_message=extract_error_message(data),
            raw_response=data,
        )

    async def cancel(self, provider_job_id: str) -> None:
        r = await self._request("DELETE", f"/v1/tasks/{provider_job_id}")

        if r.status_code == 404:
            logger.info("runway_cancel_task_gone", extra={"provider_job_id": provider_job_id})
            return
        if not r.is_success:
            body = _body_text(r)
            raise ProviderError(f"Runway cancel failed {r.status_code}: {body}", http_status=r.status_code, body=body)
