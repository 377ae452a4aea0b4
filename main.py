#!/usr/bin/env python3
"""
DevOps API -- health checks, token authentication and request metrics.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 3000
  python main.py serve --reload
  python main.py issue-token admin
  python main.py issue-token user --ttl 60
  python main.py decode-token <token>

Environment variables (see core/config.py for the full list):
  TOKEN_CODEC        base64 (default, unsigned) or signed (HS256 JWT)
  SECRET_KEY         required when TOKEN_CODEC=signed, at least 32 chars
  TOKEN_TTL_SECONDS  token lifetime, default 3600
"""

import argparse
import json
import sys
from datetime import datetime, timezone

from auth.errors import TokenDecodeError
from auth.models import DEFAULT_USERS
from auth.store import InMemoryCredentialStore
from auth.tokens import build_token_codec, now_ms
from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _issue_token(args: argparse.Namespace) -> int:
    """Print a token for one of the seeded users. Development helper only."""
    settings = get_settings()
    store = InMemoryCredentialStore(DEFAULT_USERS)
    user = store.find_by_username(args.username)
    if user is None:
        print(f"  [!] Unknown user '{args.username}'.", file=sys.stderr)
        return 1
    ttl_seconds = args.ttl if args.ttl is not None else settings.token_ttl_seconds
    if ttl_seconds <= 0:
        print("  [!] --ttl must be a positive number of seconds.", file=sys.stderr)
        return 1
    codec = build_token_codec(settings.token_codec, settings.secret_key)
    print(codec.encode(user, ttl_seconds * 1000))
    return 0


def _decode_token(args: argparse.Namespace) -> int:
    settings = get_settings()
    codec = build_token_codec(settings.token_codec, settings.secret_key)
    try:
        session = codec.decode(args.token)
    except TokenDecodeError as e:
        print(f"  [!] Could not decode token: {e}", file=sys.stderr)
        return 1
    try:
        expires_at = datetime.fromtimestamp(session.expires_at_ms / 1000, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        # exp is a valid integer but outside what the platform can represent
        expires_at = None
    print(
        json.dumps(
            {
                "id": session.user_id,
                "username": session.username,
                "role": session.role.value,
                "exp": session.expires_at_ms,
                "expires_at": expires_at,
                "expired": session.expires_at_ms < now_ms(),
            },
            indent=2,
        )
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devops-api",
        description="DevOps API server and token utilities.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    serve.set_defaults(func=_serve)

    issue = sub.add_parser("issue-token", help="Print a token for a seeded user")
    issue.add_argument("username")
    issue.add_argument("--ttl", type=int, default=None, metavar="SECONDS")
    issue.set_defaults(func=_issue_token)

    decode = sub.add_parser("decode-token", help="Decode a token and report whether it has expired")
    decode.add_argument("token")
    decode.set_defaults(func=_decode_token)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
