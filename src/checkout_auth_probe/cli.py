#!/usr/bin/env python3
"""
Checkout Auth Probe CLI

Usage:
    checkout-probe                 # Probe every endpoint/payload combination
    checkout-probe probe --json    # Same, machine-readable output
    checkout-probe validate        # Ask the API whether the key is valid
    checkout-probe endpoints       # Check which API routes exist
    checkout-probe health          # Check API connectivity
    checkout-probe config          # Show effective configuration
"""

import argparse
import logging
import sys

import structlog
from colorama import init

from checkout_auth_probe.candidates import mask_secret
from checkout_auth_probe.client import (
    PUBLIC_VALIDATE_PATH,
    VALIDATE_PATH,
    CheckoutAPIError,
    CheckoutClient,
)
from checkout_auth_probe.config import get_config_path, load_settings, save_settings
from checkout_auth_probe.credential_probe import CredentialProbe
from checkout_auth_probe.endpoint_sweep import sweep_endpoints
from checkout_auth_probe.report import (
    BOLD,
    ENDPOINT_LABELS,
    RESET,
    ProgressPrinter,
    print_banner,
    print_error,
    print_info,
    print_success,
    print_summary,
    print_warning,
    summary_to_json,
)

init()


def configure_logging(verbose: bool = False) -> None:
    """Send structured logs to stderr so stdout stays clean for reports."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def settings_from_args(args):
    """Resolve settings with CLI flags taking precedence."""
    return load_settings(
        overrides={
            "base_url": args.base_url,
            "tenant_id": args.tenant_id,
            "api_key": args.api_key,
            "timeout": args.timeout,
        }
    )


def cmd_probe(args) -> int:
    """Run the full endpoint x payload scan."""
    settings = settings_from_args(args)

    if not args.json:
        print_banner()
        print(f"{BOLD}Configuration{RESET}")
        print(f"  Tenant ID: {settings.tenant_id}")
        print(f"  API Key: {mask_secret(settings.api_key)}")
        print(f"  Base URL: {settings.base_url}")
        print()

    probe = CredentialProbe(
        base_url=settings.base_url,
        tenant_id=settings.tenant_id,
        api_key=settings.api_key,
        timeout=settings.timeout,
        max_workers=args.workers,
    )

    on_result = None if args.json else ProgressPrinter(show_secrets=args.show_secrets)
    summary = probe.run(on_result=on_result)

    if args.json:
        print(summary_to_json(summary, show_secrets=args.show_secrets))
    else:
        print_summary(summary, show_secrets=args.show_secrets)

    return 0 if summary.api_key_auth_supported else 1


def cmd_validate(args) -> int:
    """Validate the API key against the validation endpoint."""
    settings = settings_from_args(args)
    print_info(f"Validating API key {mask_secret(settings.api_key)} for {args.endpoint}...")

    try:
        with CheckoutClient(
            base_url=settings.base_url,
            tenant_id=settings.tenant_id,
            api_key=settings.api_key,
            timeout=settings.timeout,
        ) as client:
            path = PUBLIC_VALIDATE_PATH if args.public else VALIDATE_PATH
            result = client.validate_api_key(endpoint=args.endpoint, path=path)
    except CheckoutAPIError as e:
        print_error(f"Validation request failed: {e}")
        return 1

    if result.is_valid:
        print_success("API key is valid")
        print_warning("A valid key does not imply it can be exchanged for an access token.")
        return 0

    print_error(f"API key is not valid{': ' + result.message if result.message else ''}")
    return 1


def cmd_endpoints(args) -> int:
    """Sweep the known API routes and report which exist."""
    settings = settings_from_args(args)
    print_info(f"Checking routes under {settings.base_url}...")

    with CheckoutClient(
        base_url=settings.base_url,
        tenant_id=settings.tenant_id,
        api_key=settings.api_key,
        timeout=settings.timeout,
    ) as client:
        statuses = sweep_endpoints(client)

    for status in statuses:
        label = ENDPOINT_LABELS[status.label]
        code = f"HTTP {status.status_code}" if status.status_code else status.error
        print(f"  {status.method:<4} {status.path:<24} {label} ({code})")

    found = [s for s in statuses if s.exists]
    print()
    print_info(f"{len(found)} of {len(statuses)} routes exist")
    return 0 if found else 1


def cmd_health(args) -> int:
    """Check API connectivity."""
    settings = settings_from_args(args)
    print_info(f"Connecting to {settings.base_url}...")

    with CheckoutClient(
        base_url=settings.base_url,
        tenant_id=settings.tenant_id,
        api_key=settings.api_key,
        timeout=settings.timeout,
    ) as client:
        status = client.health_check()

    if status.healthy:
        print_success("API is reachable")
        return 0

    print_error(f"Health check failed: {status.message or status.status}")
    return 1


def cmd_config(args) -> int:
    """Show (and optionally save) the effective configuration."""
    settings = settings_from_args(args)

    print(f"{BOLD}Effective configuration{RESET}")
    for key, value in settings.masked().items():
        print(f"  {key}: {value}")

    if args.save:
        path = save_settings(settings)
        print_success(f"Configuration saved to {path}")
    else:
        print_info(f"Config file: {get_config_path()}")
    return 0


def common_options(suppress: bool = False) -> argparse.ArgumentParser:
    """
    Connection options shared by every command.

    Subcommand copies use SUPPRESS defaults so they don't clobber values
    given before the subcommand name.
    """
    default = argparse.SUPPRESS if suppress else None
    flag_default = argparse.SUPPRESS if suppress else False

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--base-url", default=default, help="API base URL (env: CLUBIFY_CHECKOUT_API_URL)")
    common.add_argument("--tenant-id", default=default, help="Tenant ID (env: CLUBIFY_CHECKOUT_TENANT_ID)")
    common.add_argument("--api-key", default=default, help="API key (env: CLUBIFY_CHECKOUT_API_KEY)")
    common.add_argument("--timeout", type=float, default=default, help="Request timeout in seconds (default 10)")
    common.add_argument("-v", "--verbose", action="store_true", default=flag_default, help="Debug logging to stderr")
    return common


def probe_options(suppress: bool = False) -> argparse.ArgumentParser:
    flag_default = argparse.SUPPRESS if suppress else False

    probe_opts = argparse.ArgumentParser(add_help=False)
    probe_opts.add_argument(
        "--workers",
        type=int,
        default=argparse.SUPPRESS if suppress else 1,
        help="Parallel requests (order is preserved)",
    )
    probe_opts.add_argument("--json", action="store_true", default=flag_default, help="Print results as JSON")
    probe_opts.add_argument(
        "--show-secrets", action="store_true", default=flag_default, help="Don't mask API keys and tokens"
    )
    return probe_opts


def build_parser() -> argparse.ArgumentParser:
    common = common_options(suppress=True)

    parser = argparse.ArgumentParser(
        description="Discover which auth endpoint/payload a checkout API accepts for an API key",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[common_options(), probe_options()],
        epilog="""
Examples:
  checkout-probe                      Probe all combinations
  checkout-probe probe --workers 5    Probe with 5 parallel requests
  checkout-probe validate --public    Validate the key via the public endpoint
  checkout-probe endpoints            List which API routes exist
  checkout-probe health               Check connectivity
  checkout-probe config --save        Save effective settings to the config file

Probing sends real requests with your API key. Avoid repeated runs against
production credentials.
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser(
        "probe",
        parents=[common, probe_options(suppress=True)],
        help="Probe all endpoint/payload combinations",
    )

    validate_parser = subparsers.add_parser("validate", parents=[common], help="Validate the API key")
    validate_parser.add_argument("--endpoint", default="/users", help="Endpoint to validate permissions for")
    validate_parser.add_argument(
        "--public",
        action="store_true",
        help=f"Use {PUBLIC_VALIDATE_PATH} instead of {VALIDATE_PATH}",
    )

    subparsers.add_parser("endpoints", parents=[common], help="Check which API routes exist")

    subparsers.add_parser("health", parents=[common], help="Check API connectivity")

    config_parser = subparsers.add_parser("config", parents=[common], help="Show effective configuration")
    config_parser.add_argument("--save", action="store_true", help=f"Write settings to {get_config_path()}")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args = parser.parse_args(["probe", *argv])
    configure_logging(args.verbose)

    commands = {
        "probe": cmd_probe,
        "validate": cmd_validate,
        "endpoints": cmd_endpoints,
        "health": cmd_health,
        "config": cmd_config,
    }

    try:
        return commands[args.command](args)
    except ValueError as e:
        print_error(f"Invalid configuration: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
