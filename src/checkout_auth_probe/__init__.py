"""
Checkout Auth Probe

Diagnostic tool for a multi-tenant checkout API: discovers which
authentication endpoint and request-body shape exchange an API key for an
access token.

Features:
- Fixed, ordered scan of 10 candidate endpoints x 5 payload shapes
- Three-way classification (token / OK without token / failure)
- Network and HTTP errors recorded as data, never fatal
- API key validation and health check diagnostics

Quick Start:
    pip install checkout-auth-probe
    export CLUBIFY_CHECKOUT_API_KEY=your-api-key
    checkout-probe            # Run the probe
    checkout-probe validate   # Validate the key
"""

from checkout_auth_probe.credential_probe import CredentialProbe, probe
from checkout_auth_probe.endpoint_sweep import SWEEP_ENDPOINTS, sweep_endpoints
from checkout_auth_probe.client import (
    CheckoutClient,
    CheckoutAPIError,
    CheckoutAuthError,
    CheckoutDecodeError,
    CheckoutHTTPStatusError,
    CheckoutNotFoundError,
    CheckoutRateLimitError,
    CheckoutServerError,
    CheckoutTransportError,
    CheckoutValidationError,
)
from checkout_auth_probe.models import (
    ApiKeyValidation,
    EndpointStatus,
    HealthStatus,
    ProbeOutcome,
    ProbeResult,
    ProbeSummary,
)
from checkout_auth_probe.candidates import (
    CANDIDATE_ENDPOINTS,
    CANDIDATE_PAYLOADS,
    build_payloads,
    extract_token,
    tenant_header_value,
)
from checkout_auth_probe.config import ProbeSettings, load_settings

__version__ = "1.0.0"
__all__ = [
    # Probe
    "CredentialProbe",
    "probe",

    # API client
    "CheckoutClient",
    "CheckoutAPIError",
    "CheckoutAuthError",
    "CheckoutDecodeError",
    "CheckoutHTTPStatusError",
    "CheckoutNotFoundError",
    "CheckoutRateLimitError",
    "CheckoutServerError",
    "CheckoutTransportError",
    "CheckoutValidationError",

    # Models
    "ApiKeyValidation",
    "HealthStatus",
    "ProbeOutcome",
    "ProbeResult",
    "ProbeSummary",

    # Candidates
    "CANDIDATE_ENDPOINTS",
    "CANDIDATE_PAYLOADS",
    "build_payloads",
    "extract_token",
    "tenant_header_value",

    # Configuration
    "ProbeSettings",
    "load_settings",
]
