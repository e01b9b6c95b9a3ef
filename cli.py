#!/usr/bin/env python3
"""CLI entry point for the CareHQ API client.

Supports three modes:

1. **Request** — send a signed request and print the result:
       python cli.py request GET residents -p per_page=10

2. **Sign** — build the signed request without sending it:
       python cli.py sign POST residents -d first_name=Ada --show-signature

3. **Interactive** — launch a guided prompt wizard:
       python cli.py interactive
"""

from __future__ import annotations

import argparse
import json
import os
import sys

import requests
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from carehq.client import API_BASE_URL, APIClient, BuiltRequest
from carehq.exceptions import APIException
from carehq.logging_config import setup_logging
from carehq.validators import (
    VALID_METHODS,
    ValidationError,
    parse_params,
    validate_method,
    validate_path,
)

# ---------------------------------------------------------------------------
# Initialisation
# ---------------------------------------------------------------------------

load_dotenv()
logger = setup_logging()
console = Console()

BANNER = r"""
  ____               _   _  ___
 / ___|__ _ _ __ ___| | | |/ _ \
| |   / _` | '__/ _ \ |_| | | | |
| |__| (_| | | |  __/  _  | |_| |
 \____\__,_|_|  \___|_| |_|\__\_\
        Signed API client  v1.0.0
"""


def _get_client() -> APIClient:
    """Build an authenticated ``APIClient`` from environment variables."""
    account_id = os.getenv("CAREHQ_ACCOUNT_ID", "")
    api_key = os.getenv("CAREHQ_API_KEY", "")
    api_secret = os.getenv("CAREHQ_API_SECRET", "")
    if not account_id or not api_key or not api_secret:
        console.print(
            "[bold red]Error:[/] API credentials not found. Set CAREHQ_ACCOUNT_ID, "
            "CAREHQ_API_KEY and CAREHQ_API_SECRET.\n"
            "Copy .env.example to .env and fill in your account credentials."
        )
        sys.exit(1)

    timeout = None
    raw_timeout = os.getenv("CAREHQ_TIMEOUT")
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            console.print(f"[bold red]Error:[/] CAREHQ_TIMEOUT must be a number of seconds, got '{escape(raw_timeout)}'.")
            sys.exit(1)

    return APIClient(
        account_id,
        api_key,
        api_secret,
        api_base_url=os.getenv("CAREHQ_API_BASE_URL") or API_BASE_URL,
        timeout=timeout,
    )


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_built_request(built: BuiltRequest, show_signature: bool = False) -> None:
    """Pretty-print a signed request and its signing inputs."""
    table = Table(title="Signed Request", show_header=False, border_style="cyan")
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Method", escape(built.method))
    table.add_row("URL", escape(built.url))
    for name, value in built.headers.items():
        if name == "X-CareHQ-Signature" and not show_signature:
            table.add_row(name, "[dim]<redacted>[/]")
        else:
            table.add_row(name, escape(value))
    if built.body is not None:
        table.add_row("Body", escape(built.body) if built.body else "[dim]<empty>[/]")
    console.print()
    console.print(table)

    canonical = escape(built.canonical_str) if built.canonical_str else "[dim]<empty>[/]"
    console.print(Panel(canonical, title="Canonical string", border_style="dim"))
    console.print(Panel(escape(built.string_to_sign), title="String to sign", border_style="dim"))


def _print_rate_limit(client: APIClient) -> None:
    info = client.rate_limit_info
    if info.limit is None:
        return
    console.print(
        f"[dim]Rate limit: {info.remaining}/{info.limit} remaining, resets at {info.reset}[/]"
    )


def _print_api_error(exc: APIException) -> None:
    """Pretty-print a translated API error and any field errors."""
    table = Table(title="API Error", show_header=False, border_style="red")
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    table.add_row("Kind", exc.kind.value)
    table.add_row("Status", str(exc.status_code))
    table.add_row("Hint", escape(exc.hint or ""))
    for field, errors in (exc.arg_errors or {}).items():
        if isinstance(errors, str):
            errors = [errors]
        table.add_row(f"[red]{escape(str(field))}[/]", escape("; ".join(str(e) for e in errors)))
    console.print()
    console.print(table)


# ---------------------------------------------------------------------------
# Core request flow
# ---------------------------------------------------------------------------


def _validate(method: str, path: str, params, data):
    try:
        return validate_method(method), validate_path(path), parse_params(params), parse_params(data)
    except ValidationError as exc:
        console.print(f"[bold red]Validation error:[/] {escape(str(exc))}")
        logger.error("Validation failed: %s", exc)
        sys.exit(1)


def _execute_request(method: str, path: str, params=None, data=None, confirm: bool = False) -> None:
    """Validate, optionally confirm, send, and display a request."""
    method, path, params, data = _validate(method, path, params, data)

    if confirm and method != "GET":
        if not Confirm.ask(f"\n[bold]Send {method} /v1/{escape(path)}?[/]", default=False):
            console.print("[yellow]Request cancelled by user.[/]")
            return

    client = _get_client()

    try:
        result = client.request(method, path, params=params, data=data)
    except APIException as exc:
        _print_api_error(exc)
        _print_rate_limit(client)
        logger.error("API error calling %s /v1/%s: %s", method, path, exc.kind.value)
        sys.exit(1)
    except requests.Timeout:
        console.print("\n[bold red]Request timed out.[/]")
        logger.error("Timeout calling %s /v1/%s", method, path)
        sys.exit(1)
    except requests.RequestException as exc:
        console.print(f"\n[bold red]Network error:[/] {escape(str(exc))}")
        logger.error("Network error calling %s /v1/%s: %s", method, path, exc)
        sys.exit(1)

    if result is None:
        console.print(Panel("[bold green]Request succeeded (no content).[/]", border_style="green"))
    else:
        console.print_json(json.dumps(result))
    _print_rate_limit(client)


# ---------------------------------------------------------------------------
# CLI sub-commands
# ---------------------------------------------------------------------------


def cmd_request(args: argparse.Namespace) -> None:
    """Handle the ``request`` sub-command."""
    _execute_request(args.method, args.path, params=args.param, data=args.data)


def cmd_sign(args: argparse.Namespace) -> None:
    """Handle the ``sign`` sub-command — build without sending."""
    method, path, params, data = _validate(args.method, args.path, args.param, args.data)
    built = _get_client().build_request(method, path, params=params, data=data)
    _print_built_request(built, show_signature=args.show_signature)


def cmd_interactive(_args: argparse.Namespace) -> None:
    """Handle the ``interactive`` sub-command — guided prompt wizard."""
    console.print(Panel(BANNER, border_style="bright_blue", expand=False))

    method = Prompt.ask("[bold]Method[/]", choices=list(VALID_METHODS), default="GET")
    path = Prompt.ask("[bold]Path[/] (without /v1/)")

    items = []
    label = "Query parameter" if method == "GET" else "Form field"
    while True:
        item = Prompt.ask(f"[bold]{label}[/] key=value (blank to finish)", default="")
        if not item:
            break
        items.append(item)

    if method == "GET":
        _execute_request(method, path, params=items, confirm=True)
    else:
        _execute_request(method, path, data=items, confirm=True)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_request_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("method", choices=VALID_METHODS, type=str.upper, help="HTTP method")
    parser.add_argument("path", help="API path without the /v1/ prefix (e.g. residents)")
    parser.add_argument(
        "--param", "-p", action="append", default=[], metavar="KEY=VALUE",
        help="Query parameter for GET requests (repeat a key to send a list)",
    )
    parser.add_argument(
        "--data", "-d", action="append", default=[], metavar="KEY=VALUE",
        help="Form field for non-GET requests (repeat a key to send a list)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="carehq",
        description="CareHQ API client — send and inspect signed requests.",
    )
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # --- request ---
    p_request = sub.add_parser("request", help="Send a signed request")
    _add_request_arguments(p_request)
    p_request.set_defaults(func=cmd_request)

    # --- sign ---
    p_sign = sub.add_parser("sign", help="Build and show a signed request without sending it")
    _add_request_arguments(p_sign)
    p_sign.add_argument("--show-signature", action="store_true", help="Print the signature header unredacted")
    p_sign.set_defaults(func=cmd_sign)

    # --- interactive ---
    p_inter = sub.add_parser("interactive", help="Launch guided interactive prompt")
    p_inter.set_defaults(func=cmd_interactive)

    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    args.func(args)


if __name__ == "__main__":
    main()
