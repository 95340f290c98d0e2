"""
Pydantic models for probe results and checkout API diagnostic responses.

Response bodies from the token endpoints are deliberately NOT modelled:
their shape is unknown ahead of time, so the probe decodes them into plain
JSON values and looks up known keys (see candidates.extract_token).
"""

from collections import Counter
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ProbeOutcome(str, Enum):
    """Classification of a single probe attempt."""

    TOKEN = "token"
    NO_TOKEN = "no_token"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    VALIDATION_ERROR = "validation_error"
    FAILED = "failed"
    TRANSPORT_ERROR = "transport_error"

    @property
    def category(self) -> str:
        """Three-way category: success, partial or failure."""
        if self is ProbeOutcome.TOKEN:
            return "success"
        if self is ProbeOutcome.NO_TOKEN:
            return "partial"
        return "failure"


class ProbeResult(BaseModel):
    """Outcome of one (endpoint, payload) attempt."""

    endpoint: str
    payload_index: int  # 1-based, matches report numbering
    payload: dict[str, Any]
    url: str
    status_code: int = 0
    body: str | None = None
    outcome: ProbeOutcome
    token: str | None = None
    token_key: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        """True only when a token was extracted from a 2xx response."""
        return self.outcome is ProbeOutcome.TOKEN

    @property
    def partial(self) -> bool:
        """HTTP-level success without a usable token."""
        return self.outcome is ProbeOutcome.NO_TOKEN

    @property
    def http_ok(self) -> bool:
        return 200 <= self.status_code < 300

    def body_preview(self, length: int = 100) -> str:
        """First `length` characters of the body, on a single line."""
        if not self.body:
            return ""
        text = self.body[:length].replace("\n", " ")
        return f"{text}..." if len(self.body) > length else text


class ProbeSummary(BaseModel):
    """Ordered results of a full probe run with derived views."""

    base_url: str
    tenant_id: str
    results: list[ProbeResult] = Field(default_factory=list)

    @property
    def successes(self) -> list[ProbeResult]:
        return [r for r in self.results if r.success]

    @property
    def partials(self) -> list[ProbeResult]:
        return [r for r in self.results if r.partial]

    @property
    def failures(self) -> list[ProbeResult]:
        return [r for r in self.results if r.outcome.category == "failure"]

    @property
    def counts(self) -> dict[str, int]:
        """Number of attempts per outcome value."""
        counter = Counter(r.outcome.value for r in self.results)
        return {outcome.value: counter.get(outcome.value, 0) for outcome in ProbeOutcome}

    @property
    def api_key_auth_supported(self) -> bool:
        """Whether any combination yielded a token."""
        return bool(self.successes)


class ApiKeyValidationData(BaseModel):
    """Nested `data` object of the validation response."""

    valid: bool = False


class ApiKeyValidation(BaseModel):
    """
    Response from the API key validation endpoint.

    Two shapes are seen in the wild:
        {"success": true, "data": {"valid": true}}
        {"isValid": true}
    """

    success: bool = False
    data: ApiKeyValidationData = Field(default_factory=ApiKeyValidationData)
    is_valid_flag: bool | None = Field(None, alias="isValid")
    message: str | None = None

    @field_validator("data", mode="before")
    @classmethod
    def normalize_data(cls, v: Any) -> Any:
        """Treat a null or non-object `data` as empty."""
        if not isinstance(v, dict):
            return {}
        return v

    @property
    def is_valid(self) -> bool:
        if self.is_valid_flag:
            return True
        return self.data.valid


class HealthStatus(BaseModel):
    """Result of a health check against the checkout API."""

    status: str  # "healthy", "auth_error" or "error"
    status_code: int = 0
    message: str | None = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"


class EndpointStatus(BaseModel):
    """Availability of one API route, as seen by an endpoint sweep."""

    method: str
    path: str
    auth: bool = False
    status_code: int = 0
    body: str | None = None
    error: str | None = None

    @property
    def label(self) -> str:
        if self.status_code == 0:
            return "connection_failed"
        if 200 <= self.status_code < 300:
            return "available"
        if self.status_code == 401:
            return "auth_required"
        if self.status_code == 404:
            return "not_found"
        if self.status_code == 400:
            return "bad_request"
        return "other"

    @property
    def exists(self) -> bool:
        """Anything but 404 or a failed connection means the route is served."""
        return self.label not in ("not_found", "connection_failed")
