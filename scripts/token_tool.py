"""Operator utility for the mail OAuth token.

Subcommands:

``thumbprint``
    Print the certificate's base64url SHA-1 thumbprint (the ``x5t`` value) to
    compare against the application registration.
``verify-keypair``
    Confirm the configured private key belongs to the certificate.
``status``
    Load the token file and report whether it is valid, expiring or expired,
    without contacting the identity provider.
``refresh``
    Run one check-and-maybe-refresh cycle, exactly as the worker does.

Example usages::

    python -m scripts.token_tool thumbprint --certificate certs/pens-cert.pem
    python -m scripts.token_tool status --token-file config/oauth_token.json
    python -m scripts.token_tool refresh
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from pens.clients.token_store import TokenStore
from pens.core.config import OAuthSettings
from pens.core.errors import TokenLifecycleError
from pens.core.logging import configure_logging
from pens.dependencies import build_token_manager
from pens.services.assertion_signer import AssertionSigner

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_TOKEN_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _load_settings(args: argparse.Namespace) -> OAuthSettings:
    """Build settings from the env file, with command-line paths taking priority."""
    overrides = {}
    for field_name in ("certificate_path", "private_key_path", "token_file"):
        value = getattr(args, field_name, None)
        if value:
            overrides[field_name] = str(value)
    return OAuthSettings(_env_file=str(args.env_file), **overrides)


def _thumbprint(settings: OAuthSettings) -> int:
    if not settings.certificate_path:
        print("No certificate configured. Pass --certificate or set PENS_OAUTH_CERTIFICATE_PATH.", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    print(AssertionSigner().thumbprint(settings.certificate_path))
    return EXIT_OK


def _verify_keypair(settings: OAuthSettings) -> int:
    if not settings.has_certificate:
        print("Both a certificate and a private key are required.", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    if AssertionSigner().verify_key_pair(settings.certificate_path or "", settings.private_key_path or ""):
        print("Certificate and private key MATCH.")
        return EXIT_OK
    print(
        "Certificate and private key DO NOT MATCH.\n"
        "They come from different key pairs; regenerate the pair and re-upload the certificate.",
        file=sys.stderr,
    )
    return EXIT_TOKEN_ERROR


def _status(settings: OAuthSettings, now: float) -> int:
    record = TokenStore(settings.token_file).load()
    if not record.access_token:
        print("Token file has an empty access_token.", file=sys.stderr)
        return EXIT_TOKEN_ERROR

    refresh_note = "present" if record.refresh_token else "absent"
    if record.is_non_expiring:
        print(f"Access token has no recorded expiry (refresh token {refresh_note}).")
        return EXIT_OK

    remaining = int(record.expires_at - now)
    if remaining <= 0:
        print(f"Access token EXPIRED {-remaining} seconds ago (refresh token {refresh_note}).")
        return EXIT_OK if record.refresh_token else EXIT_TOKEN_ERROR
    if record.needs_refresh(now, settings.refresh_buffer_seconds):
        print(f"Access token expires in {remaining} seconds; due for refresh (refresh token {refresh_note}).")
        return EXIT_OK
    print(f"Access token valid for {remaining} more seconds (refresh token {refresh_note}).")
    return EXIT_OK


def _refresh(settings: OAuthSettings) -> int:
    manager = build_token_manager(settings)
    if asyncio.run(manager.ensure_valid_token()):
        print("OAuth token is valid.")
        return EXIT_OK

    failure = manager.last_failure
    if failure is not None:
        category = f" [{failure.category.value}]" if failure.category else ""
        print(f"OAuth token unavailable: {failure.error}{category}: {failure.message}", file=sys.stderr)
        for hint in failure.remediation:
            print(f"  - {hint}", file=sys.stderr)
    return EXIT_TOKEN_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect and refresh the mail OAuth token.")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_argument(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the working directory).",
        )

    thumbprint_parser = subparsers.add_parser("thumbprint", help="Print the certificate x5t thumbprint.")
    add_env_argument(thumbprint_parser)
    thumbprint_parser.add_argument("--certificate", dest="certificate_path", type=Path)

    verify_parser = subparsers.add_parser("verify-keypair", help="Check the certificate and key match.")
    add_env_argument(verify_parser)
    verify_parser.add_argument("--certificate", dest="certificate_path", type=Path)
    verify_parser.add_argument("--private-key", dest="private_key_path", type=Path)

    status_parser = subparsers.add_parser("status", help="Report token expiry without refreshing.")
    add_env_argument(status_parser)
    status_parser.add_argument("--token-file", dest="token_file", type=Path)

    refresh_parser = subparsers.add_parser("refresh", help="Refresh the token if it is due.")
    add_env_argument(refresh_parser)
    refresh_parser.add_argument("--token-file", dest="token_file", type=Path)

    return parser


def main(argv: Optional[list[str]] = None, *, clock: Callable[[], float] = time.time) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.debug else "WARNING")

    try:
        settings = _load_settings(args)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "thumbprint": lambda: _thumbprint(settings),
        "verify-keypair": lambda: _verify_keypair(settings),
        "status": lambda: _status(settings, clock()),
        "refresh": lambda: _refresh(settings),
    }
    try:
        return handlers[command]()
    except TokenLifecycleError as exc:
        print(f"{type(exc).__name__}: {exc.message}", file=sys.stderr)
        return EXIT_TOKEN_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
