"""
Pytest configuration and fixtures for checkout auth probe tests.
"""

import json

import httpx
import pytest

from checkout_auth_probe.candidates import build_payloads

BASE_URL = "https://checkout.test/api/v1"
TENANT_ID = "68c05e15ad23f0f6aaa1ae51"
API_KEY = "clb_test_4f8b2c1d6e9a7f3b5c8e2a1d4f7b9e3c"


@pytest.fixture
def base_url():
    return BASE_URL


@pytest.fixture
def tenant_id():
    return TENANT_ID


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def payloads():
    """Candidate payloads filled with the test credentials."""
    return build_payloads(TENANT_ID, API_KEY)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temp dir and clear credential env vars."""
    config_path = tmp_path / "config.json"
    monkeypatch.setattr(
        "checkout_auth_probe.config.get_config_path", lambda: config_path
    )
    for var in (
        "CLUBIFY_CHECKOUT_TENANT_ID",
        "CLUBIFY_CHECKOUT_API_KEY",
        "CLUBIFY_CHECKOUT_API_URL",
        "CHECKOUT_PROBE_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    return config_path


class RecordingTransport(httpx.MockTransport):
    """
    Mock transport that records every request it sees.

    `routes` maps (path relative to base URL, 1-based payload index) to an
    httpx.Response, an exception instance to raise, or a callable that builds
    the response from the request. Anything unrouted gets `default` (404 by
    default).
    """

    def __init__(self, routes=None, default=None):
        self.routes = routes or {}
        self.default = default or httpx.Response(404, json={"message": "Not Found"})
        self.requests: list[httpx.Request] = []
        self._payloads = build_payloads(TENANT_ID, API_KEY)
        super().__init__(self._handle)

    def key_for(self, request: httpx.Request) -> tuple[str, int | None]:
        path = request.url.path.removeprefix("/api/v1/")
        body = json.loads(request.content) if request.content else None
        index = None
        for i, payload in enumerate(self._payloads, start=1):
            if payload == body:
                index = i
                break
        return path, index

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(self.key_for(request), self.default)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        # Fresh response per request; httpx attaches request state to it
        return httpx.Response(route.status_code, content=route.content, headers=route.headers)


@pytest.fixture
def make_transport():
    """Factory for RecordingTransport instances."""
    return RecordingTransport
