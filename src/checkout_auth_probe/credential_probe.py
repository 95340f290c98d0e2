"""
Credential Probe

Discovers which (endpoint, payload) combination a checkout API accepts for
API-key authentication, and surfaces the resulting access token.

Every combination is attempted exactly once, in nested order (endpoints
outer, payloads inner). Nothing inside the loop raises: transport errors,
error statuses and undecodable bodies are all recorded as results.
"""

import json
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import httpx
import structlog

from checkout_auth_probe.candidates import (
    CANDIDATE_ENDPOINTS,
    build_payloads,
    extract_token,
    tenant_header_value,
)
from checkout_auth_probe.client import CheckoutClient, CheckoutTransportError, header_value
from checkout_auth_probe.models import ProbeOutcome, ProbeResult, ProbeSummary

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0

ResultCallback = Callable[[ProbeResult], None]


def classify_status(status_code: int) -> ProbeOutcome:
    """Classify a non-2xx status. Status 0 means the request never completed."""
    if status_code == 0:
        return ProbeOutcome.TRANSPORT_ERROR
    if status_code == 404:
        return ProbeOutcome.NOT_FOUND
    if status_code == 401:
        return ProbeOutcome.UNAUTHORIZED
    if status_code == 422:
        return ProbeOutcome.VALIDATION_ERROR
    return ProbeOutcome.FAILED


def evaluate_response(status_code: int, body: str | None) -> tuple[ProbeOutcome, str | None, str | None, str | None]:
    """
    Classify a response.

    Returns (outcome, token_key, token, decode_error).
    """
    if not 200 <= status_code < 300:
        return classify_status(status_code), None, None, None

    try:
        data: Any = json.loads(body) if body else None
    except ValueError as e:
        return ProbeOutcome.NO_TOKEN, None, None, f"Invalid JSON: {e}"

    found = extract_token(data)
    if found is None:
        return ProbeOutcome.NO_TOKEN, None, None, None

    token_key, token = found
    return ProbeOutcome.TOKEN, token_key, token, None


class CredentialProbe:
    """
    Runs the full endpoint x payload scan against one API.

    Example:
        probe = CredentialProbe(
            base_url="https://checkout.example.com/api/v1",
            tenant_id="tenant-id",
            api_key="your-key",
        )
        summary = probe.run()
        for result in summary.successes:
            print(result.endpoint, result.token_key)
    """

    def __init__(
        self,
        base_url: str,
        tenant_id: str,
        api_key: str,
        endpoints: Sequence[str] = CANDIDATE_ENDPOINTS,
        payloads: Sequence[dict[str, Any]] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 1,
        client: CheckoutClient | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the probe.

        Args:
            base_url: Absolute API base URL (trailing slash tolerated)
            tenant_id: Tenant identifier placed in the candidate payloads
            api_key: API key placed in the candidate payloads
            endpoints: Candidate endpoint paths, in probe order
            payloads: Candidate bodies, in probe order (None = built-in shapes)
            timeout: Per-request timeout in seconds
            max_workers: >1 runs requests on a thread pool; order is preserved
            client: Pre-built client (takes precedence over timeout/transport)
            transport: Optional httpx transport for the internal client
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.base_url = base_url
        self.tenant_id = tenant_id
        self.endpoints = list(endpoints)
        self.payloads = (
            list(payloads) if payloads is not None else build_payloads(tenant_id, api_key)
        )
        self.max_workers = max_workers

        # Probe requests are never retried
        self._client = client or CheckoutClient(
            base_url=base_url,
            tenant_id=tenant_id,
            api_key=api_key,
            timeout=timeout,
            max_retries=1,
            transport=transport,
        )
        self._owns_client = client is None
        self._log = logger.bind(base_url=self._client.base_url, tenant_id=tenant_id)

    def combinations(self) -> list[tuple[str, int, dict[str, Any]]]:
        """All (endpoint, 1-based payload index, payload) triples in probe order."""
        return [
            (endpoint, index, payload)
            for endpoint in self.endpoints
            for index, payload in enumerate(self.payloads, start=1)
        ]

    def attempt(self, endpoint: str, payload_index: int, payload: dict[str, Any]) -> ProbeResult:
        """POST one candidate payload to one endpoint and classify the outcome."""
        url = self._client.url_for(endpoint)
        headers = {"X-Tenant-ID": header_value(tenant_header_value(payload))}

        status_code = 0
        body: str | None = None
        error: str | None = None

        start_time = time.monotonic()
        try:
            response = self._client.post_json(endpoint, payload, headers=headers)
            status_code = response.status_code
            body = response.text
        except CheckoutTransportError as e:
            error = str(e)
        elapsed = time.monotonic() - start_time

        outcome, token_key, token, decode_error = evaluate_response(status_code, body)

        self._log.debug(
            "Probe attempt",
            endpoint=endpoint,
            payload_index=payload_index,
            status_code=status_code,
            outcome=outcome.value,
            elapsed_ms=round(elapsed * 1000),
        )

        return ProbeResult(
            endpoint=endpoint,
            payload_index=payload_index,
            payload=dict(payload),
            url=url,
            status_code=status_code,
            body=body,
            outcome=outcome,
            token=token,
            token_key=token_key,
            error=error or decode_error,
        )

    def probe(self, on_result: ResultCallback | None = None) -> list[ProbeResult]:
        """
        Attempt every combination and return the results in probe order.

        Args:
            on_result: Called with each result in probe order as it becomes available
        """
        combos = self.combinations()
        self._log.info(
            "Starting credential probe",
            endpoints=len(self.endpoints),
            payloads=len(self.payloads),
            combinations=len(combos),
        )

        results: list[ProbeResult] = []
        try:
            if self.max_workers == 1:
                for endpoint, index, payload in combos:
                    result = self.attempt(endpoint, index, payload)
                    results.append(result)
                    if on_result:
                        on_result(result)
            else:
                # Create the shared httpx client before threads race for it
                self._client.client
                with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                    # map() yields in submission order
                    for result in pool.map(lambda c: self.attempt(*c), combos):
                        results.append(result)
                        if on_result:
                            on_result(result)
        finally:
            if self._owns_client:
                self._client.close()

        self._log.info(
            "Credential probe finished",
            successes=sum(1 for r in results if r.success),
            partials=sum(1 for r in results if r.partial),
        )
        return results

    def run(self, on_result: ResultCallback | None = None) -> ProbeSummary:
        """Run the probe and wrap the results in a summary."""
        results = self.probe(on_result=on_result)
        return ProbeSummary(
            base_url=self.base_url,
            tenant_id=self.tenant_id,
            results=results,
        )


def probe(
    base_url: str,
    tenant_id: str,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> list[ProbeResult]:
    """
    Probe every candidate endpoint with every candidate payload.

    Returns one ProbeResult per combination (50 for the built-in tables),
    endpoints in the outer loop and payloads in the inner loop.
    """
    return CredentialProbe(
        base_url=base_url,
        tenant_id=tenant_id,
        api_key=api_key,
        timeout=timeout,
        transport=transport,
    ).probe()
