"""
Console rendering for probe runs.
"""

import json
from typing import Any, TextIO

from colorama import Fore, Style

from checkout_auth_probe.candidates import mask_payload, mask_secret
from checkout_auth_probe.models import ProbeOutcome, ProbeResult, ProbeSummary

GREEN = Fore.GREEN
RED = Fore.RED
YELLOW = Fore.YELLOW
BLUE = Fore.CYAN
RESET = Style.RESET_ALL
BOLD = Style.BRIGHT

OUTCOME_LABELS = {
    ProbeOutcome.TOKEN: f"{GREEN}✓ SUCCESS{RESET}",
    ProbeOutcome.NO_TOKEN: f"{YELLOW}✓ OK (no token){RESET}",
    ProbeOutcome.NOT_FOUND: f"{RED}✗ 404 Not Found{RESET}",
    ProbeOutcome.UNAUTHORIZED: f"{YELLOW}🔒 401 Unauthorized{RESET}",
    ProbeOutcome.VALIDATION_ERROR: f"{YELLOW}⚠ 422 Validation Error{RESET}",
    ProbeOutcome.FAILED: f"{RED}✗ Error{RESET}",
    ProbeOutcome.TRANSPORT_ERROR: f"{RED}✗ Connection failed{RESET}",
}

ENDPOINT_LABELS = {
    "available": f"{GREEN}✓ available{RESET}",
    "auth_required": f"{YELLOW}🔒 auth required{RESET}",
    "bad_request": f"{YELLOW}⚠ bad request{RESET}",
    "not_found": f"{RED}✗ not found{RESET}",
    "other": f"{YELLOW}? other{RESET}",
    "connection_failed": f"{RED}✗ connection failed{RESET}",
}

# Outcomes whose body is worth showing for diagnosis
SHOW_BODY = {ProbeOutcome.NO_TOKEN, ProbeOutcome.VALIDATION_ERROR, ProbeOutcome.FAILED}


def print_banner(out: TextIO | None = None):
    """Print the banner."""
    print(f"""
{BLUE}╔══════════════════════════════════════════════════════════════╗
║     {BOLD}Checkout API-Key Auth Probe{RESET}{BLUE}                              ║
║     Finds the endpoint/payload pair that issues a token        ║
╚══════════════════════════════════════════════════════════════╝{RESET}
""", file=out)


def print_success(msg: str, out: TextIO | None = None):
    print(f"{GREEN}✓ {msg}{RESET}", file=out)


def print_error(msg: str, out: TextIO | None = None):
    print(f"{RED}✗ {msg}{RESET}", file=out)


def print_warning(msg: str, out: TextIO | None = None):
    print(f"{YELLOW}⚠ {msg}{RESET}", file=out)


def print_info(msg: str, out: TextIO | None = None):
    print(f"{BLUE}ℹ {msg}{RESET}", file=out)


def token_preview(token: str | None, show_secrets: bool = False) -> str:
    if not token:
        return ""
    if show_secrets:
        return token
    return f"{token[:20]}..." if len(token) > 20 else token


def redact_body(result: ProbeResult, show_secrets: bool = False) -> str | None:
    """Response body with the extracted token masked wherever it appears."""
    if show_secrets or not result.token or not result.body:
        return result.body
    body = result.body
    # The token may appear JSON-escaped in the raw body, slashes included
    escaped = json.dumps(result.token)[1:-1]
    for form in (result.token, escaped, escaped.replace("/", "\\/")):
        body = body.replace(form, mask_secret(result.token))
    return body


class ProgressPrinter:
    """
    Per-attempt progress lines, grouped under an endpoint header.

    Pass an instance as the probe's on_result callback.
    """

    def __init__(self, out: TextIO | None = None, show_secrets: bool = False):
        self.out = out
        self.show_secrets = show_secrets
        self._current_endpoint: str | None = None

    def __call__(self, result: ProbeResult) -> None:
        if result.endpoint != self._current_endpoint:
            if self._current_endpoint is not None:
                print(file=self.out)
            print(f"{BOLD}Endpoint: {result.endpoint}{RESET}", file=self.out)
            self._current_endpoint = result.endpoint

        label = OUTCOME_LABELS[result.outcome]
        if result.outcome is ProbeOutcome.FAILED:
            label = f"{RED}✗ Error {result.status_code}{RESET}"
        print(f"  Payload {result.payload_index}: HTTP {result.status_code} {label}", file=self.out)

        if result.success:
            print(f"    {GREEN}Token found ({result.token_key}){RESET}", file=self.out)
            print(f"    - Payload: {json.dumps(self._payload(result))}", file=self.out)
            redacted = result.model_copy(update={"body": redact_body(result, self.show_secrets)})
            print(f"    - Response: {redacted.body_preview(200)}", file=self.out)
        elif result.outcome is ProbeOutcome.TRANSPORT_ERROR and result.error:
            print(f"    - {result.error}", file=self.out)
        elif result.outcome in SHOW_BODY and result.body:
            print(f"    - Response: {result.body_preview(100)}", file=self.out)

    def _payload(self, result: ProbeResult) -> dict[str, Any]:
        return result.payload if self.show_secrets else mask_payload(result.payload)


def print_summary(summary: ProbeSummary, out: TextIO | None = None, show_secrets: bool = False) -> None:
    """Print the final summary and recommendation."""
    print(f"\n{BOLD}=== SUMMARY ==={RESET}", file=out)
    print(
        f"  Combinations tried: {len(summary.results)} | "
        f"Tokens: {len(summary.successes)} | "
        f"OK without token: {len(summary.partials)} | "
        f"Failed: {len(summary.failures)}",
        file=out,
    )
    print(file=out)

    if summary.api_key_auth_supported:
        print_success(f"Found {len(summary.successes)} combination(s) that return a token:", out)
        print(file=out)
        for result in summary.successes:
            payload = result.payload if show_secrets else mask_payload(result.payload)
            print(f"  Endpoint: {result.endpoint}", file=out)
            print(f"  Payload: {json.dumps(payload)}", file=out)
            print(f"  Token ({result.token_key}): {token_preview(result.token, show_secrets)}", file=out)
            print(file=out)
        print_info("Update the SDK's authentication configuration to use a working endpoint.", out)
        return

    print_error("No endpoint returned a usable access token.", out)
    if summary.partials:
        print_warning(
            f"{len(summary.partials)} combination(s) answered 2xx without a token field.", out
        )
    print(f"\n{BOLD}This suggests:{RESET}", file=out)
    print("  1. The API may not support exchanging an API key for an access token", file=out)
    print("  2. Protected endpoints may require a user/password login", file=out)
    print("  3. The API key may only be usable for permission validation", file=out)
    print(f"\n{BOLD}Alternatives:{RESET}", file=out)
    print("  - Use the API key only to validate permissions", file=out)
    print("  - Log in with user/password for protected endpoints", file=out)
    print("  - Configure a dedicated service account for the SDK", file=out)


def summary_to_json(summary: ProbeSummary, show_secrets: bool = False) -> str:
    """Serialize a summary for machine consumption."""
    results = []
    for result in summary.results:
        data = result.model_dump(mode="json")
        data["success"] = result.success
        data["category"] = result.outcome.category
        if not show_secrets:
            data["payload"] = mask_payload(result.payload)
            data["body"] = redact_body(result)
            if result.token:
                data["token"] = mask_secret(result.token)
        results.append(data)

    return json.dumps(
        {
            "base_url": summary.base_url,
            "tenant_id": summary.tenant_id,
            "api_key_auth_supported": summary.api_key_auth_supported,
            "counts": summary.counts,
            "results": results,
        },
        indent=2,
    )
