"""
Endpoint Sweep

Checks which routes the checkout API actually serves, with the API key sent
as a bearer token where a route needs auth. Complements the credential
probe: a 401 here means the route exists but the key alone is not enough.
"""

from typing import Any

import structlog

from checkout_auth_probe.client import (
    CheckoutClient,
    CheckoutTransportError,
    VALIDATE_PATH,
    header_value,
)
from checkout_auth_probe.models import EndpointStatus

logger = structlog.get_logger(__name__)

# (method, path, needs auth)
SWEEP_ENDPOINTS: tuple[tuple[str, str, bool], ...] = (
    ("GET", "health", False),
    ("GET", "products", True),
    ("GET", "orders", True),
    ("GET", "customers", True),
    ("GET", "users", True),
    ("GET", "users/stats", True),
    ("POST", "users", True),
    ("POST", "auth/login", False),
    ("POST", VALIDATE_PATH, False),
    ("GET", "auth/profile", True),
    ("GET", "user-management/users", True),
    ("GET", "user-management/health", False),
)


def sweep_body(method: str, path: str, api_key: str) -> dict[str, Any] | None:
    """Minimal body a POST route needs to get past routing."""
    if method != "POST":
        return None
    if path == "auth/login":
        return {"email": "test@test.com", "password": "test"}
    if path == VALIDATE_PATH:
        return {"apiKey": api_key, "endpoint": "/users"}
    if path == "users":
        return {"email": "test@test.com", "firstName": "Test"}
    return {}


def sweep_endpoints(
    client: CheckoutClient,
    endpoints: tuple[tuple[str, str, bool], ...] = SWEEP_ENDPOINTS,
) -> list[EndpointStatus]:
    """Hit each route once and record its status. Never raises per route."""
    results = []
    for method, path, auth in endpoints:
        headers: dict[str, str | bytes] = {}
        if auth:
            headers["Authorization"] = header_value(f"Bearer {client.api_key}")
        if (auth or path == "auth/login") and client.tenant_id:
            headers["X-Tenant-ID"] = header_value(client.tenant_id)

        try:
            response = client.send_once(
                method,
                path,
                json=sweep_body(method, path, client.api_key),
                headers=headers,
            )
        except CheckoutTransportError as e:
            status = EndpointStatus(method=method, path=path, auth=auth, error=str(e))
        else:
            status = EndpointStatus(
                method=method,
                path=path,
                auth=auth,
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug("Endpoint checked", method=method, path=path, label=status.label)
        results.append(status)
    return results
