"""
Checkout API Client

Synchronous HTTP client for the multi-tenant checkout API with:
- A single-attempt, non-raising POST used by the credential probe
- Retry with exponential backoff for the diagnostics (429, 5xx, network)
- Status-code to exception mapping
- Request/response logging
"""

import logging
import threading
import time
from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from checkout_auth_probe.candidates import join_url
from checkout_auth_probe.models import ApiKeyValidation, HealthStatus

logger = structlog.get_logger(__name__)

USER_AGENT = "checkout-auth-probe/1.0"

VALIDATE_PATH = "api-keys/validate"
PUBLIC_VALIDATE_PATH = "api-keys/public/validate"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class CheckoutAPIError(Exception):
    """Base exception for checkout API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code:
            return f"{base} (HTTP {self.status_code})"
        return base


class CheckoutTransportError(CheckoutAPIError):
    """
    The request did not produce a usable response. Reported as status 0.

    Covers DNS, connect and timeout failures, header values httpx cannot
    encode, and bodies that fail Content-Encoding decoding.
    """

    def __init__(self, message: str):
        super().__init__(message, status_code=0)


class CheckoutHTTPStatusError(CheckoutAPIError):
    """Raised on any non-2xx response."""
    pass


class CheckoutAuthError(CheckoutHTTPStatusError):
    """Raised when authentication fails (401/403)."""
    pass


class CheckoutNotFoundError(CheckoutHTTPStatusError):
    """Raised when the endpoint does not exist (404)."""
    pass


class CheckoutValidationError(CheckoutHTTPStatusError):
    """Raised when the request body is rejected (422)."""
    pass


class CheckoutRateLimitError(CheckoutHTTPStatusError):
    """Raised when API rate limit is exceeded (429)."""
    pass


class CheckoutServerError(CheckoutHTTPStatusError):
    """Raised on server errors (5xx) - these are retryable."""
    pass


class CheckoutDecodeError(CheckoutAPIError):
    """Raised when a response body is not the expected JSON."""
    pass


# ---------------------------------------------------------------------------
# Retry Configuration
# ---------------------------------------------------------------------------

def is_retryable_error(exception: BaseException) -> bool:
    """Determine if an exception should trigger a retry."""
    if isinstance(exception, CheckoutRateLimitError):
        return True
    if isinstance(exception, CheckoutServerError):
        return True
    if isinstance(exception, CheckoutTransportError):
        return True
    return False


def raise_for_status(response: httpx.Response, path: str) -> None:
    """Map an error status onto the exception hierarchy."""
    status = response.status_code
    body = response.text[:500]

    if 200 <= status < 300:
        return
    if status == 429:
        raise CheckoutRateLimitError("Rate limit exceeded - will retry", status, body)
    if status in (401, 403):
        raise CheckoutAuthError("Authentication failed - check your API key", status, body)
    if status == 404:
        raise CheckoutNotFoundError(f"Resource not found: {path}", status, body)
    if status == 422:
        raise CheckoutValidationError(f"Validation error: {body[:200]}", status, body)
    if status >= 500:
        raise CheckoutServerError(f"Server error {status} - will retry", status, body)
    raise CheckoutHTTPStatusError(f"API error: {body[:200]}", status, body)


def header_value(value: str) -> str | bytes:
    """httpx encodes str header values as ASCII; send anything else as UTF-8 bytes."""
    return value if value.isascii() else value.encode("utf-8")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class CheckoutClient:
    """
    Checkout API client scoped to one tenant and API key.

    Example:
        client = CheckoutClient(
            base_url="https://checkout.example.com/api/v1",
            tenant_id="tenant-id",
            api_key="your-key",
        )

        with client:
            print(client.health_check().status)
    """

    def __init__(
        self,
        base_url: str,
        tenant_id: str = "",
        api_key: str = "",
        timeout: float = 10.0,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Absolute API base URL (trailing slash tolerated)
            tenant_id: Tenant identifier sent as X-Tenant-ID
            api_key: API key, sent only where an operation needs it
            timeout: Request timeout in seconds
            max_retries: Max attempts for the retrying diagnostics
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        if not base_url or not base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid base URL '{base_url}'. Must be an absolute http(s) URL."
            )

        self.base_url = base_url.rstrip("/")
        self.tenant_id = tenant_id
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport
        self._client: httpx.Client | None = None

        # Request counters for observability, shared by probe worker threads
        self._request_count = 0
        self._error_count = 0
        self._stats_lock = threading.Lock()

        self._log = logger.bind(base_url=self.base_url)

    def _build_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )

    def __enter__(self) -> "CheckoutClient":
        if self._client is None:
            self._client = self._build_client()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        """Get HTTP client, creating if needed."""
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def url_for(self, path: str) -> str:
        return join_url(self.base_url, path)

    def _send(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: dict[str, str | bytes] | None = None,
    ) -> httpx.Response:
        """
        Send one request, wrapping request failures as CheckoutTransportError.

        Anything that stops httpx from producing a readable response lands
        here: network errors, undecodable Content-Encoding, and header values
        that cannot be encoded.
        """
        url = self.url_for(path)

        with self._stats_lock:
            self._request_count += 1
            request_id = self._request_count
        log = self._log.bind(path=path, method=method, request_id=request_id)
        log.debug("API request")

        start_time = time.monotonic()
        try:
            response = self.client.request(method, url, json=json, headers=headers)
        except (httpx.RequestError, UnicodeEncodeError) as e:
            with self._stats_lock:
                self._error_count += 1
            log.debug("API request failed", error=str(e))
            raise CheckoutTransportError(f"{type(e).__name__}: {e}") from e
        elapsed = time.monotonic() - start_time

        if response.status_code >= 400:
            with self._stats_lock:
                self._error_count += 1

        log.debug(
            "API response",
            status_code=response.status_code,
            elapsed_ms=round(elapsed * 1000),
        )
        return response

    def send_once(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: dict[str, str | bytes] | None = None,
    ) -> httpx.Response:
        """
        Send one JSON request exactly once and return the raw response.

        No status handling and no retries: the caller inspects the status.
        Request failures raise CheckoutTransportError.
        """
        request_headers: dict[str, str | bytes] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)
        return self._send(method, path, json=json, headers=request_headers)

    def post_json(
        self,
        path: str,
        payload: dict[str, Any],
        headers: dict[str, str | bytes] | None = None,
    ) -> httpx.Response:
        """POST a JSON body exactly once. See send_once()."""
        return self.send_once("POST", path, json=payload, headers=headers)

    def _make_request(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: dict[str, str | bytes] | None = None,
    ) -> Any:
        """
        Make a retrying request and return the decoded JSON body.

        Raises the CheckoutAPIError hierarchy on failure.
        """
        log = self._log.bind(path=path, method=method)

        request_headers: dict[str, str | bytes] = {"Accept": "application/json"}
        if self.tenant_id:
            request_headers["X-Tenant-ID"] = header_value(self.tenant_id)
        if headers:
            request_headers.update(headers)

        @retry(
            retry=retry_if_exception(is_retryable_error),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            before_sleep=before_sleep_log(log, logging.INFO),
            reraise=True,
        )
        def _do_request() -> Any:
            response = self._send(method, path, json=json, headers=request_headers)
            raise_for_status(response, path)

            try:
                return response.json()
            except ValueError as e:
                raise CheckoutDecodeError(
                    f"Invalid JSON response: {e}",
                    status_code=response.status_code,
                    response_body=response.text[:500],
                ) from e

        return _do_request()

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def validate_api_key(
        self,
        endpoint: str = "/users",
        path: str = VALIDATE_PATH,
    ) -> ApiKeyValidation:
        """
        Ask the API whether the key is valid for an endpoint.

        This validates permissions only; it does not issue an access token.
        Pass path=PUBLIC_VALIDATE_PATH for the unauthenticated variant, which
        answers with a flat {"isValid": ...} body.
        """
        data = self._make_request(
            "POST",
            path,
            json={"apiKey": self.api_key, "endpoint": endpoint},
        )
        if not isinstance(data, dict):
            raise CheckoutDecodeError("Validation response is not a JSON object")
        return ApiKeyValidation.model_validate(data)

    def health_check(self) -> HealthStatus:
        """Verify API connectivity. Never raises."""
        try:
            self._make_request("GET", "health")
            return HealthStatus(status="healthy", status_code=200)
        except CheckoutAuthError as e:
            return HealthStatus(status="auth_error", status_code=e.status_code or 0, message=str(e))
        except CheckoutAPIError as e:
            return HealthStatus(status="error", status_code=e.status_code or 0, message=str(e))

    def get_stats(self) -> dict[str, Any]:
        """Get client statistics for monitoring."""
        return {
            "base_url": self.base_url,
            "request_count": self._request_count,
            "error_count": self._error_count,
            "error_rate": round(self._error_count / max(1, self._request_count), 4),
        }
