"""
Candidate endpoints and payload shapes for API-key authentication.

The tables are ordered: the probe walks endpoints in the outer loop and
payloads in the inner loop, so the order here is the order of the report.
"""

from typing import Any, Callable

# Relative to the API base URL
CANDIDATE_ENDPOINTS: tuple[str, ...] = (
    "auth/api-key/token",
    "auth/token",
    "api-keys/authenticate",
    "auth/api-key",
    "oauth/token",
    "auth/authenticate",
    "token",
    "api/auth/token",
    "v1/auth/token",
    "authenticate",
)

# Each builder takes (tenant_id, api_key) and returns one guess at the body shape
PayloadBuilder = Callable[[str, str], dict[str, str]]

CANDIDATE_PAYLOADS: tuple[PayloadBuilder, ...] = (
    lambda tenant_id, api_key: {
        "api_key": api_key,
        "tenant_id": tenant_id,
        "grant_type": "api_key",
    },
    lambda tenant_id, api_key: {
        "apiKey": api_key,
        "tenantId": tenant_id,
        "grantType": "api_key",
    },
    lambda tenant_id, api_key: {
        "api_key": api_key,
        "tenant_id": tenant_id,
    },
    lambda tenant_id, api_key: {
        "key": api_key,
        "tenant": tenant_id,
        "type": "api_key",
    },
    lambda tenant_id, api_key: {
        "client_id": api_key,
        "tenant_id": tenant_id,
        "grant_type": "client_credentials",
    },
)

# Lookup order matters: the first key present wins
TENANT_FIELDS: tuple[str, ...] = ("tenant_id", "tenantId", "tenant")
TOKEN_FIELDS: tuple[str, ...] = ("access_token", "accessToken", "token")

# Payload fields that carry the API key (masked in reports)
SECRET_FIELDS: frozenset[str] = frozenset({"api_key", "apiKey", "key", "client_id"})


def build_payloads(tenant_id: str, api_key: str) -> list[dict[str, str]]:
    """Fill every candidate payload shape with the caller's credentials."""
    return [builder(tenant_id, api_key) for builder in CANDIDATE_PAYLOADS]


def tenant_header_value(payload: dict[str, Any]) -> str:
    """
    Pick the X-Tenant-ID header value from a payload.

    Checks tenant_id, then tenantId, then tenant. A field holding None counts
    as absent. Returns an empty string when none is present.
    """
    for field in TENANT_FIELDS:
        value = payload.get(field)
        if value is not None:
            return str(value)
    return ""


def extract_token(data: Any) -> tuple[str, str] | None:
    """
    Find an access token at the top level of a decoded response body.

    Returns (token_key, token) for the highest-priority field present,
    or None if the body is not a mapping or carries no token field.
    """
    if not isinstance(data, dict):
        return None

    for field in TOKEN_FIELDS:
        value = data.get(field)
        if value is not None:
            return field, (value if isinstance(value, str) else str(value))
    return None


def join_url(base_url: str, path: str) -> str:
    """Join base URL and relative path, tolerating slashes on either side."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def mask_secret(value: str, visible: int = 8) -> str:
    """Mask a secret for display, keeping a short prefix and suffix."""
    if len(value) > visible + 4:
        return f"{value[:visible]}...{value[-4:]}"
    return "***" if value else "(not set)"


def mask_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy of a payload with API-key-bearing fields masked."""
    return {
        key: mask_secret(str(value)) if key in SECRET_FIELDS else value
        for key, value in payload.items()
    }
