"""HTTP client for the origin service's queue and application endpoints."""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

NEXT_JOB_PATH = "/queue/jobs/next"


class OriginError(Exception):
    """Base class for failures talking to the origin service."""


class OriginUnavailableError(OriginError):
    """Connection refused, reset or otherwise unreachable."""


class PollTimeoutError(OriginError):
    """The origin did not answer within the request timeout."""


class EndpointNotFoundError(OriginError):
    """The origin answered 404 for the requested path."""


class OriginResponseError(OriginError):
    """Any other unexpected HTTP status or undecodable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OriginClient:
    """Thin async wrapper over httpx that maps transport faults to OriginError."""

    def __init__(self, base_url: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise PollTimeoutError(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise OriginUnavailableError(f"Cannot reach {self.base_url}: {e}") from e
        except httpx.RequestError as e:
            raise OriginResponseError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise EndpointNotFoundError(f"{method} {path} returned 404")
        if response.status_code >= 400:
            raise OriginResponseError(
                f"{method} {path} returned {response.status_code}", response.status_code
            )
        return response

    async def fetch_next_job(self) -> Optional[Dict[str, Any]]:
        """Claim the next job, or None when the origin has nothing to hand out."""
        response = await self._request("GET", NEXT_JOB_PATH)
        if not response.content.strip():
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise OriginResponseError(f"Invalid JSON from {NEXT_JOB_PATH}: {e}", response.status_code) from e

        if not payload:
            return None
        if not isinstance(payload, dict):
            raise OriginResponseError(f"Unexpected job payload type: {type(payload).__name__}")
        return payload

    async def report_completion(self, application_id: str, body: Dict[str, Any]) -> None:
        """POST the outcome of an application to the origin."""
        await self._request("POST", f"/applications/{application_id}/complete", json=body)
        logger.debug(f"Reported {body.get('status')} for application {application_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
