"""Bulk-import submitters.

A submitter sends one BulkImportRequest to a remote store and returns its
BulkImportResponse. The coordinator depends only on the BulkImportSubmitter
protocol, so backends are swapped by passing a different submitter:

- HttpBulkImportSubmitter: JSON over HTTPS with bearer-token auth
- NoopBulkImportSubmitter: offline use, creates nothing remotely

Transport failures (connection errors, timeouts) are retried with exponential
backoff inside the HTTP submitter. HTTP error statuses are not retried.
"""

from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..config import RemoteConfig
from ..models.payloads import BulkImportRequest, BulkImportResponse
from ..utils.exceptions import RemoteAuthenticationError, RemoteSubmissionError

logger = structlog.get_logger(__name__)


@runtime_checkable
class BulkImportSubmitter(Protocol):
    """Capability to submit one bulk-import request."""

    async def submit(self, request: BulkImportRequest) -> BulkImportResponse: ...


class NoopBulkImportSubmitter:
    """Submitter that records requests and reports nothing created."""

    def __init__(self) -> None:
        self.requests: list[BulkImportRequest] = []

    async def submit(self, request: BulkImportRequest) -> BulkImportResponse:
        self.requests.append(request)
        logger.debug(
            "Skipping remote submission",
            friends=len(request.friends),
            groups=len(request.groups),
            expenses=len(request.expenses),
        )
        return BulkImportResponse()


class HttpBulkImportSubmitter:
    """
    Submit bulk-import requests to an HTTP endpoint.

    Features:
    - Lazy httpx.AsyncClient creation
    - Bearer token authentication
    - Retry with exponential backoff on transport errors only
    - Response validation with Pydantic
    """

    def __init__(self, config: RemoteConfig, wait: wait_base | None = None) -> None:
        """
        Initialize HTTP submitter.

        Args:
            config: Remote endpoint configuration
            wait: Backoff between transport retries (exponential by default)
        """
        self.config = config
        self.url = config.bulk_import_url
        self._wait = wait or wait_exponential(multiplier=1, min=2, max=10)
        self._client: httpx.AsyncClient | None = None  # Lazy-loaded

    async def __aenter__(self) -> "HttpBulkImportSubmitter":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created on first use."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.config.api_token:
                headers["Authorization"] = f"Bearer {self.config.api_token}"
            self._client = httpx.AsyncClient(
                verify=self.config.verify_ssl,
                timeout=self.config.timeout,
                headers=headers,
            )
        return self._client

    async def submit(self, request: BulkImportRequest) -> BulkImportResponse:
        """
        POST one request to the bulk-import endpoint.

        Args:
            request: Chunk to submit

        Returns:
            Validated response body

        Raises:
            RemoteAuthenticationError: On HTTP 401/403
            RemoteSubmissionError: On other HTTP errors, transport failures
                after all attempts, or an unreadable response body
        """
        logger.debug(
            "Submitting bulk import request",
            url=self.url,
            friends=len(request.friends),
            groups=len(request.groups),
            expenses=len(request.expenses),
        )

        try:
            response = await self._post_with_retry(request.to_wire())
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise RemoteSubmissionError(f"Bulk import request failed: {cause}") from cause
        except httpx.HTTPError as e:
            raise RemoteSubmissionError(f"Bulk import request failed: {e}") from e

        if response.status_code in (401, 403):
            logger.error("Bulk import rejected credentials", status=response.status_code)
            raise RemoteAuthenticationError(
                f"Authentication failed: {self._error_message(response)}",
                status_code=response.status_code,
            )
        if response.is_error:
            message = self._error_message(response)
            logger.error("Bulk import request failed", status=response.status_code, error=message)
            raise RemoteSubmissionError(
                f"API Error {response.status_code}: {message}",
                status_code=response.status_code,
            )

        try:
            return BulkImportResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteSubmissionError(
                f"Invalid bulk import response: {e}", status_code=response.status_code
            ) from e

    async def _post_with_retry(self, body: dict[str, Any]) -> httpx.Response:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            stop=stop_after_attempt(self.config.max_attempts),
            wait=self._wait,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "Retrying bulk import request",
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await self.client.post(self.url, json=body)
        raise RemoteSubmissionError("Bulk import request was never attempted")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Best-effort error text from a JSON or plain-text error body."""
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase

        if isinstance(data, dict):
            for key in ("message", "error", "detail"):
                if data.get(key):
                    return str(data[key])
            errors = data.get("errors")
            if isinstance(errors, list) and errors:
                return "; ".join(str(e) for e in errors)
        return response.text
