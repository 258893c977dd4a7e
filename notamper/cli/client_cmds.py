from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace

from notamper.client import NoTamperClient
from notamper.config import ClientSettings, PropertiesStore
from notamper.core.canonical import is_digest_hex


def _print_json(obj: object) -> None:
    """Print JSON to stdout."""
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _client(args: argparse.Namespace) -> NoTamperClient:
    """Build a client from env, the stored token and command-line overrides.

    Security notes:
    - The token is never printed.

    """
    settings = ClientSettings.from_env()
    if args.endpoint:
        settings = replace(settings, api_endpoint=args.endpoint.rstrip("/"))
    token = args.token or settings.access_token or PropertiesStore(args.properties).access_token()
    return NoTamperClient(settings.with_token(token))


def cmd_client_health(args: argparse.Namespace) -> int:
    """Call GET /health.

    Security notes:
    - Treat server response as untrusted.

    """
    status = _client(args).test_connection()
    _print_json(
        {
            "success": status.success,
            "message": status.message,
            "token_validated": status.token_validated,
        }
    )
    return 0 if status.success else 2


def cmd_client_token_status(args: argparse.Namespace) -> int:
    """Call GET /access-token-status."""
    _print_json(_client(args).access_token_status())
    return 0


def cmd_client_submit(args: argparse.Namespace) -> int:
    """Submit an already computed digest to POST /storehash."""
    if not is_digest_hex(args.digest):
        print("error: digest must be 64 lowercase hex characters", file=sys.stderr)
        return 2
    metadata = {"formId": args.form_id, "responseId": args.response_id}
    _print_json(_client(args).submit_hash(args.digest, metadata))
    return 0


def register_client_commands(sub: argparse._SubParsersAction) -> None:
    """Register the `client` command."""

    client = sub.add_parser("client", help="NoTamperData API client")
    client.add_argument("--endpoint", default=None, help="API endpoint (default: env or public API)")
    client.add_argument("--token", default=None, help="Access token (default: env or stored)")
    client.add_argument("--properties", default=None, help="Properties file holding the stored token")
    csub = client.add_subparsers(dest="client_cmd", required=True)

    h = csub.add_parser("health", help="Check API connectivity and token validity")
    h.set_defaults(func=cmd_client_health)

    ts = csub.add_parser("token-status", help="Show access token status")
    ts.set_defaults(func=cmd_client_token_status)

    sm = csub.add_parser("submit", help="Submit a digest")
    sm.add_argument("digest", help="64-character hex digest")
    sm.add_argument("--form-id", default="unknown", help="Source (form) id")
    sm.add_argument("--response-id", default="unknown", help="Response or batch id")
    sm.set_defaults(func=cmd_client_submit)
