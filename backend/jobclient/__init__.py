"""
Polling client for the InsightBoard job API.

Submit a transcript, poll the job at a fixed interval until it reaches a terminal
status, then complete tasks. Transport errors while polling are treated as
transient; polling gives up only after max_consecutive_errors failures in a row.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

TERMINAL_STATUSES = ("completed", "failed")
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_CONSECUTIVE_ERRORS = 5


class APIError(Exception):
    """Request rejected by the API (4xx) or unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class PollingAborted(Exception):
    """Polling stopped after repeated transport failures."""


class JobClient:
    """Async client for /api/transcripts and /api/jobs."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
        )

    async def __aenter__(self) -> "JobClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        """Send a request. 4xx -> APIError; transport errors and 5xx propagate as httpx errors."""
        response = await self._client.request(method, path, json=json)
        if 400 <= response.status_code < 500:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise APIError(
                body.get("error") or f"API request failed: {response.status_code}",
                status_code=response.status_code,
                code=body.get("code"),
            )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON response: {e}", status_code=response.status_code) from e

    async def submit(self, transcript: str) -> Dict[str, Any]:
        """{jobId, status, cached, data?}"""
        return await self._request("POST", "/api/transcripts", json={"transcript": transcript})

    async def get_status(self, job_id: str) -> Dict[str, Any]:
        """{status, data?, error?}"""
        return await self._request("GET", f"/api/jobs/{job_id}")

    async def complete_task(self, job_id: str, task_id: str) -> List[Dict[str, Any]]:
        body = await self._request("PUT", f"/api/jobs/{job_id}/tasks/{task_id}/complete")
        return body.get("updatedTasks") or []

    async def list_jobs(self) -> List[Dict[str, Any]]:
        body = await self._request("GET", "/api/jobs")
        return body.get("jobs") or []

    async def wait_for_job(
        self,
        job_id: str,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_ERRORS,
    ) -> Dict[str, Any]:
        """Poll get_status until completed/failed and return the last response.
        APIError (e.g. unknown job) is not retried."""
        errors = 0
        while True:
            try:
                response = await self.get_status(job_id)
            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                errors += 1
                logger.warning("Polling {} failed ({}/{}): {}", job_id, errors, max_consecutive_errors, e)
                if errors >= max_consecutive_errors:
                    raise PollingAborted(f"Gave up polling {job_id} after {errors} consecutive errors") from e
            else:
                errors = 0
                if response.get("status") in TERMINAL_STATUSES:
                    return response
            await asyncio.sleep(interval)

    async def submit_and_wait(self, transcript: str, interval: float = DEFAULT_POLL_INTERVAL) -> Dict[str, Any]:
        """Submit and, unless the result is already available, poll to a terminal status."""
        submitted = await self.submit(transcript)
        if submitted.get("data") is not None or submitted.get("status") in TERMINAL_STATUSES:
            return submitted
        return await self.wait_for_job(submitted["jobId"], interval=interval)
