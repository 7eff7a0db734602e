#!/usr/bin/env python3
"""
firedb/cli/database.py

CLI for basic Realtime Database operations:
  - get
  - put
  - post
  - patch
  - delete

Credentials come from --service-account-file + --database-url, or from the
FIREBASE_* environment variables (see ServiceAccountCredentials.from_env).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Callable, Coroutine, Dict, List, Optional

from pydantic import ValidationError

from firedb.database.client import AsyncFirebaseClient
from firedb.errors import FirebaseError, TransportError
from firedb.models.firebase import (
    DEFAULT_TOKEN_URI,
    FirebaseSettings,
    ServiceAccountCredentials,
)
from firedb.models.validator import validate_type
from firedb.models.value import ValueType
from firedb.utils.async_retry import async_retry

WRITE_COMMANDS = ("put", "post", "patch")


#
# Subcommand handler
#
async def run_operation(args: argparse.Namespace) -> None:
    """
    Run a single CRUD operation and print the decoded value as JSON.

    Raises SystemExit on error.
    """
    credentials = _build_credentials(args)
    settings = FirebaseSettings(token_uri=args.token_uri, verify_ssl=not args.no_verify_ssl)
    payload = _load_payload(args) if args.command in WRITE_COMMANDS else None

    async with AsyncFirebaseClient(credentials, settings) as client:
        try:
            await client.setup(auto_refresh=False)
        except FirebaseError as exc:
            print(f"Error: authentication failed: {exc}", file=sys.stderr)
            sys.exit(1)

        # Only transport failures are worth retrying; status errors are final.
        @async_retry(retries=args.retries, delay=args.retry_delay, retry_on=(TransportError,))
        async def _call() -> ValueType:
            if payload is None:
                return await getattr(client, args.command)(args.path)
            return await getattr(client, args.command)(args.path, payload)

        try:
            value = await _call()
        except FirebaseError as exc:
            print(
                f"Error: {args.command} '{args.path}' failed: {exc}", file=sys.stderr
            )
            sys.exit(1)

    print(json.dumps(value.to_python(), indent=2))


#
# Helpers
#
def _build_credentials(args: argparse.Namespace) -> ServiceAccountCredentials:
    """
    Construct ServiceAccountCredentials from CLI arguments, or the environment.

    Exits with error if the key file is unusable or configuration is missing.
    """
    try:
        if args.service_account_file:
            if not args.database_url:
                print(
                    "Error: --database-url is required with --service-account-file.",
                    file=sys.stderr,
                )
                sys.exit(1)
            return ServiceAccountCredentials.from_service_account_file(
                args.service_account_file, args.database_url
            )
        return ServiceAccountCredentials.from_env()
    except (OSError, ValidationError, FirebaseError) as exc:
        print(f"Error loading credentials: {exc}", file=sys.stderr)
        sys.exit(1)


def _load_payload(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Load the JSON object to write from --json, --json-file or stdin.

    Exits with error if it can't be read or isn't a JSON object.
    """
    try:
        if args.json is not None:
            raw_data = json.loads(args.json)
        elif args.json_file:
            with open(args.json_file, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        else:
            raw_data = json.load(sys.stdin)
    except (OSError, ValueError) as exc:
        print(f"Error reading/parsing JSON payload: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        return validate_type(raw_data, Dict[str, Any])
    except ValueError:
        print("Error: payload must be a JSON object.", file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per HTTP verb."""
    parser = argparse.ArgumentParser(
        prog="firedb",
        description="CLI for basic Realtime Database operations (get, put, post, patch, delete).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="Sub-command to run. Use -h/--help after a subcommand for more usage details.",
    )

    helps = {
        "get": "Read the data at a path.",
        "put": "Overwrite the data at a path.",
        "post": "Append data under a generated child key.",
        "patch": "Update only the given top-level keys at a path.",
        "delete": "Delete the data at a path.",
    }
    for command, help_text in helps.items():
        sub = subparsers.add_parser(command, help=help_text)
        _add_common_args(sub)
        if command in WRITE_COMMANDS:
            source = sub.add_mutually_exclusive_group()
            source.add_argument("--json", help="JSON object to write.")
            source.add_argument("--json-file", help="JSON file to load instead of stdin.")
        sub.set_defaults(func=run_operation)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point for Realtime Database operations.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # The `args.func` is an async function, so we run it via asyncio
    func: Callable[[argparse.Namespace], Coroutine[Any, Any, None]] = args.func
    asyncio.run(func(args))


def _add_common_args(subparser: argparse.ArgumentParser) -> None:
    """
    Add path, credential and transport arguments to each subcommand parser.
    """
    subparser.add_argument("--path", required=True, help="Database path, e.g. 'users/42'.")
    subparser.add_argument(
        "--service-account-file",
        help="Service account JSON key file (default: FIREBASE_* environment variables).",
    )
    subparser.add_argument(
        "--database-url",
        help="Database URL, e.g. https://<db>.firebaseio.com (required with a key file).",
    )
    subparser.add_argument(
        "--token-uri",
        default=DEFAULT_TOKEN_URI,
        help=f"OAuth2 token endpoint (default: {DEFAULT_TOKEN_URI}).",
    )
    subparser.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Total attempts on transport errors (default: 1, no retry).",
    )
    subparser.add_argument(
        "--retry-delay",
        type=float,
        default=1.0,
        help="Seconds between attempts (default: 1.0).",
    )
    subparser.add_argument(
        "--no-verify-ssl",
        action="store_true",
        default=False,
        help="Disable SSL certificate verification (default: verify SSL).",
    )
    subparser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )


if __name__ == "__main__":
    main()
