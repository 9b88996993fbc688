"""
DAO Core command line.

    python -m daocore                      # serve the API
    python -m daocore serve --port 9000
    python -m daocore issue-token ST1ADMIN --minutes 60
"""

from __future__ import annotations

import argparse
import sys

from daocore.config import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daocore",
        description="Token-weighted governance API",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the governance API (default)")
    serve.add_argument("--host", help="Override DAO_API_HOST")
    serve.add_argument("--port", type=int, help="Override DAO_API_PORT")

    issue = subparsers.add_parser(
        "issue-token", help="Print a signed caller token for an identity"
    )
    issue.add_argument("caller", help="Identity the token vouches for")
    issue.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime (defaults to DAO_JWT_ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.command == "issue-token":
        from daocore.security.tokens import TokenError, create_access_token

        try:
            token = create_access_token(args.caller, settings, expires_minutes=args.minutes)
        except (TokenError, ValueError) as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(token)
        return 0

    from daocore.api.app import run_server

    overrides = {}
    if getattr(args, "host", None):
        overrides["api_host"] = args.host
    if getattr(args, "port", None):
        overrides["api_port"] = args.port
    run_server(settings.model_copy(update=overrides) if overrides else settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
