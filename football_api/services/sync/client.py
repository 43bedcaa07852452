"""
Client for the third-party football data provider.

The provider exposes a single endpoint selected by ``action``
(``get_leagues``, ``get_teams``, ``get_events``, ...) with the API key passed
as the ``APIkey`` query parameter, and answers with a JSON array of records.

Failure policy:
- Transport errors, timeouts and 5xx answers are retried with exponential
  backoff, then surface as ConnectivityError.
- 4xx answers surface as ConnectivityError straight away (bad key, plan limits).
- A body that is not JSON, or not an array when records are expected,
  surfaces as InvalidUpstreamResponseError.
"""
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception, stop_after_attempt, wait_exponential

from football_api.core import metrics
from football_api.core.config import settings
from football_api.core.errors import ConnectivityError, InvalidUpstreamResponseError
from football_api.core.logging import get_logger

logger = get_logger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.RequestError)


class FootballDataClient:
    """
    Async client for the football data provider.

    Usage:
        async with FootballDataClient() as client:
            teams = await client.fetch_records("get_teams", {"league_id": "152"})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Provider URL (defaults to settings)
            api_key: Provider API key (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
            max_retries: Attempts per request, first one included (defaults to settings)
            backoff: Exponential backoff multiplier in seconds
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url or settings.FOOTBALL_API_BASE_URL
        self.api_key = api_key if api_key is not None else settings.FOOTBALL_API_KEY
        self.timeout = timeout or settings.FOOTBALL_API_TIMEOUT
        self.max_retries = max(1, max_retries or settings.FOOTBALL_API_MAX_RETRIES)
        self.backoff = backoff
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "FootballDataClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, params: Dict[str, Any]) -> httpx.Response:
        response = await self._get_client().get("", params=params)
        response.raise_for_status()
        return response

    async def fetch(self, action: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call one provider action and return the decoded JSON body.

        Raises:
            ConnectivityError: provider unreachable or answered with an error status
            InvalidUpstreamResponseError: body is not JSON
        """
        query = {"action": action, "APIkey": self.api_key}
        query.update({k: v for k, v in (params or {}).items() if v is not None})

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=self.backoff, min=0, max=10),
                retry=retry_if_exception(_is_retryable),
                reraise=False,
            ):
                with attempt:
                    response = await self._get(query)
        except RetryError as e:
            error = e.last_attempt.exception()
            self._record_failure(action, error)
            raise ConnectivityError(
                f"Failed to reach external football data API after {self.max_retries} attempts: {error}"
            ) from error
        except httpx.HTTPError as e:
            self._record_failure(action, e)
            raise ConnectivityError(f"External football data API request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            metrics.football_api_requests_failure_total.labels(action=action, error_type="invalid_json").inc()
            raise InvalidUpstreamResponseError("Invalid response from external API: body is not JSON") from e

        metrics.football_api_requests_success_total.labels(action=action).inc()
        return payload

    async def fetch_records(self, action: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Call one provider action and return its array of records.

        Raises:
            ConnectivityError: see ``fetch``
            InvalidUpstreamResponseError: body missing or not an array
        """
        payload = await self.fetch(action, params)

        if payload is None or not isinstance(payload, list):
            detail = payload.get("message") if isinstance(payload, dict) else None
            logger.warning(
                f"Provider returned a non-array body for {action}",
                extra={"action": action, "provider_message": detail},
            )
            message = "Invalid response from external API"
            if detail:
                message = f"{message}: {detail}"
            raise InvalidUpstreamResponseError(message)

        logger.info(f"Fetched {len(payload)} records for {action}", extra={"action": action})
        return payload

    def _record_failure(self, action: str, error: Optional[BaseException]) -> None:
        error_type = type(error).__name__ if error else "unknown"
        metrics.football_api_requests_failure_total.labels(action=action, error_type=error_type).inc()
        logger.error(f"Football data API {action} failed: {error}", extra={"action": action})
