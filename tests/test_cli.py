"""
Tests for the CLI and console report.
"""

import io
import json

import httpx
import pytest

from checkout_auth_probe import cli
from checkout_auth_probe.client import CheckoutClient
from checkout_auth_probe.credential_probe import CredentialProbe
from checkout_auth_probe.models import ProbeOutcome, ProbeResult, ProbeSummary
from checkout_auth_probe.report import ProgressPrinter, print_summary, summary_to_json

from conftest import API_KEY, BASE_URL, RecordingTransport


@pytest.fixture
def stub_network(monkeypatch, isolated_config):
    """Route CLI-created probes and clients through a mock transport."""
    state = {"transport": RecordingTransport()}

    def probe_factory(**kwargs):
        return CredentialProbe(transport=state["transport"], **kwargs)

    def client_factory(**kwargs):
        return CheckoutClient(transport=state["transport"], max_retries=1, **kwargs)

    monkeypatch.setattr(cli, "CredentialProbe", probe_factory)
    monkeypatch.setattr(cli, "CheckoutClient", client_factory)
    return state


def summary_with(*results):
    return ProbeSummary(base_url=BASE_URL, tenant_id="t", results=list(results))


def result(outcome, status_code, **kwargs):
    return ProbeResult(
        endpoint=kwargs.pop("endpoint", "auth/token"),
        payload_index=kwargs.pop("payload_index", 1),
        payload={"api_key": API_KEY, "tenant_id": "t", "grant_type": "api_key"},
        url=f"{BASE_URL}/auth/token",
        status_code=status_code,
        outcome=outcome,
        **kwargs,
    )


class TestReport:
    """Console rendering."""

    def test_summary_with_success_masks_secrets(self):
        out = io.StringIO()
        token = "eyJhbGciOiJIUzI1NiJ9.payload.signature"
        summary = summary_with(
            result(ProbeOutcome.TOKEN, 200, token=token, token_key="access_token", body="{}")
        )

        print_summary(summary, out=out)

        text = out.getvalue()
        assert "Found 1 combination(s)" in text
        assert "Endpoint: auth/token" in text
        assert "Token (access_token): eyJhbGciOiJIUzI1NiJ9..." in text
        assert token not in text
        assert API_KEY not in text

    def test_summary_without_success_recommends_alternatives(self):
        out = io.StringIO()
        summary = summary_with(
            result(ProbeOutcome.NO_TOKEN, 200, body='{"ok": true}'),
            result(ProbeOutcome.NOT_FOUND, 404, payload_index=2),
        )

        print_summary(summary, out=out)

        text = out.getvalue()
        assert "No endpoint returned a usable access token" in text
        assert "1 combination(s) answered 2xx without a token field" in text
        assert "user/password" in text
        assert "service account" in text

    def test_progress_groups_by_endpoint(self):
        out = io.StringIO()
        printer = ProgressPrinter(out=out)

        printer(result(ProbeOutcome.VALIDATION_ERROR, 422, body='{"error": "api_key required"}'))
        printer(result(ProbeOutcome.FAILED, 500, payload_index=2, body="boom"))
        printer(result(ProbeOutcome.TRANSPORT_ERROR, 0, endpoint="token", error="ConnectError: refused"))

        text = out.getvalue()
        assert text.count("Endpoint: auth/token") == 1
        assert "Payload 1: HTTP 422" in text
        assert "api_key required" in text
        assert "Error 500" in text
        assert "Endpoint: token" in text
        assert "ConnectError: refused" in text

    def test_json_output(self):
        summary = summary_with(
            result(ProbeOutcome.TOKEN, 200, token="abcdefghijklmnopqrstuvwxyz", token_key="token")
        )

        data = json.loads(summary_to_json(summary))

        assert data["api_key_auth_supported"] is True
        assert data["counts"]["token"] == 1
        entry = data["results"][0]
        assert entry["success"] is True
        assert entry["category"] == "success"
        assert entry["outcome"] == "token"
        assert entry["token"] == "abcdefgh...wxyz"
        assert entry["payload"]["api_key"] != API_KEY

    def test_json_output_show_secrets(self):
        summary = summary_with(result(ProbeOutcome.TOKEN, 200, token="abcdefghijklmnop", token_key="token"))

        entry = json.loads(summary_to_json(summary, show_secrets=True))["results"][0]

        assert entry["token"] == "abcdefghijklmnop"
        assert entry["payload"]["api_key"] == API_KEY

    def test_token_masked_in_response_body(self):
        token = "SECRETTOKEN-0123456789abcdef"
        body = json.dumps({"access_token": token, "expires_in": 3600})
        summary = summary_with(
            result(ProbeOutcome.TOKEN, 200, token=token, token_key="access_token", body=body)
        )
        out = io.StringIO()

        ProgressPrinter(out=out)(summary.results[0])
        text = summary_to_json(summary)

        assert token not in out.getvalue()
        assert "SECRETTO...cdef" in out.getvalue()
        assert token not in text
        assert json.loads(json.loads(text)["results"][0]["body"])["access_token"] == "SECRETTO...cdef"

    def test_escaped_token_masked_in_response_body(self):
        token = "abc/def+ghi/jkl=="
        summary = summary_with(
            result(ProbeOutcome.TOKEN, 200, token=token, token_key="token", body='{"token": "abc\\/def+ghi\\/jkl=="}')
        )

        body = json.loads(summary_to_json(summary))["results"][0]["body"]

        assert body == '{"token": "abc/def+...kl=="}'

    def test_response_body_kept_with_show_secrets(self):
        token = "SECRETTOKEN-0123456789abcdef"
        body = json.dumps({"access_token": token})
        summary = summary_with(result(ProbeOutcome.TOKEN, 200, token=token, token_key="access_token", body=body))
        out = io.StringIO()

        ProgressPrinter(out=out, show_secrets=True)(summary.results[0])

        assert token in out.getvalue()
        assert json.loads(summary_to_json(summary, show_secrets=True))["results"][0]["body"] == body


class TestCli:
    """Command dispatch and exit codes."""

    def test_probe_is_default_command(self, stub_network, capsys):
        exit_code = cli.main(["--base-url", BASE_URL])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert len(stub_network["transport"].requests) == 50
        assert "Endpoint: auth/api-key/token" in out
        assert "No endpoint returned a usable access token" in out

    def test_probe_finds_token(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(
            routes={("auth/token", 1): httpx.Response(200, json={"access_token": "abc"})}
        )

        exit_code = cli.main(["probe", "--base-url", BASE_URL])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Found 1 combination(s)" in out
        assert API_KEY not in out

    def test_probe_json(self, stub_network, capsys):
        exit_code = cli.main(["probe", "--base-url", BASE_URL, "--json"])

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert len(data["results"]) == 50
        assert data["counts"]["not_found"] == 50

    def test_validate(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(
            default=httpx.Response(200, json={"success": True, "data": {"valid": True}})
        )

        exit_code = cli.main(["validate", "--base-url", BASE_URL])

        assert exit_code == 0
        assert "API key is valid" in capsys.readouterr().out

    def test_validate_error(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(default=httpx.Response(401))

        exit_code = cli.main(["validate", "--base-url", BASE_URL])

        assert exit_code == 1
        assert "Validation request failed" in capsys.readouterr().out

    def test_health(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(default=httpx.Response(200, json={"status": "ok"}))

        assert cli.main(["health", "--base-url", BASE_URL]) == 0
        assert "API is reachable" in capsys.readouterr().out

    def test_config_save(self, isolated_config, capsys):
        exit_code = cli.main(["config", "--tenant-id", "cli-tenant", "--save"])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "tenant_id: cli-tenant" in out
        assert json.loads(isolated_config.read_text())["tenant_id"] == "cli-tenant"

    def test_invalid_base_url(self, stub_network, capsys):
        exit_code = cli.main(["probe", "--base-url", "not-a-url"])

        assert exit_code == 2
        assert "Invalid configuration" in capsys.readouterr().out

    def test_flags_before_subcommand_are_kept(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(default=httpx.Response(200, json={"status": "ok"}))

        exit_code = cli.main(["--base-url", BASE_URL, "--tenant-id", "early-tenant", "health"])

        assert exit_code == 0
        assert str(stub_network["transport"].requests[0].url) == f"{BASE_URL}/health"
        assert stub_network["transport"].requests[0].headers["X-Tenant-ID"] == "early-tenant"

    def test_flags_after_subcommand_win(self, isolated_config, capsys):
        exit_code = cli.main(["--tenant-id", "early", "config", "--tenant-id", "late"])

        assert exit_code == 0
        assert "tenant_id: late" in capsys.readouterr().out

    def test_probe_options_before_subcommand(self, stub_network, capsys):
        exit_code = cli.main(["--json", "probe", "--base-url", BASE_URL])

        assert exit_code == 1
        assert len(json.loads(capsys.readouterr().out)["results"]) == 50

    def test_validate_public(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(default=httpx.Response(200, json={"isValid": True}))

        exit_code = cli.main(["validate", "--public", "--base-url", BASE_URL])

        assert exit_code == 0
        assert stub_network["transport"].requests[0].url.path == "/api/v1/api-keys/public/validate"

    def test_endpoints(self, stub_network, capsys):
        stub_network["transport"] = RecordingTransport(
            routes={
                ("health", None): httpx.Response(200, json={"status": "ok"}),
                ("users", None): httpx.Response(401),
            }
        )

        exit_code = cli.main(["endpoints", "--base-url", BASE_URL])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "health" in out
        assert "auth required" in out
        # GET and POST users both answer 401
        assert "3 of 12 routes exist" in out
