"""
agentgate CLI.

Usage:
    agentgate serve [--host HOST] [--port PORT]   # Start the HTTP gateway
    agentgate mint-token <api_key>               # Mint a token with TOKEN_SECRET
    agentgate generate-secret                    # Print a value for TOKEN_SECRET
"""

from __future__ import annotations

import argparse
import secrets
import sys

from .config import get_settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="agentgate",
        description="Gateway for the background coding agent API.",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP gateway")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: SERVICE_PORT)")

    mint_parser = subparsers.add_parser("mint-token", help="Mint a connection token for an API key")
    mint_parser.add_argument("api_key", help="Upstream agent API key")

    subparsers.add_parser("generate-secret", help="Print a random value for TOKEN_SECRET")

    args = parser.parse_args(argv)

    if args.command == "serve":
        return _cmd_serve(args)
    if args.command == "mint-token":
        return _cmd_mint_token(args)
    if args.command == "generate-secret":
        print(secrets.token_urlsafe(32))
        return 0

    parser.print_help()
    return 1


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "agentgate.main:build_default_app",
        factory=True,
        host=args.host,
        port=args.port or settings.SERVICE_PORT,
    )
    return 0


def _cmd_mint_token(args: argparse.Namespace) -> int:
    from .auth.resolver import KeyShape
    from .services.crypto import KeyProvider, TokenCodec

    settings = get_settings()
    provider = KeyProvider.from_settings(settings)
    if not provider.is_configured:
        # A token minted under an ephemeral secret would die with this process
        print("TOKEN_SECRET must be set to mint tokens from the CLI", file=sys.stderr)
        return 2

    if not KeyShape.from_settings(settings).matches(args.api_key):
        print(
            f"Invalid API key format: must start with \"{settings.API_KEY_PREFIX}\" "
            f"and be at least {settings.API_KEY_MIN_LENGTH} characters",
            file=sys.stderr,
        )
        return 2

    secret = provider.get_secret()
    print(TokenCodec.from_settings(secret, settings).mint(args.api_key))
    return 0


if __name__ == "__main__":
    sys.exit(main())
