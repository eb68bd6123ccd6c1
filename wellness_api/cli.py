"""Command line entry point.

Usage:
    wellness-api serve [--host 0.0.0.0] [--port 3001] [--reload]
    wellness-api issue-token --user-id u1 --username alice --role admin
    wellness-api generate-secret
"""

import argparse
import secrets
import sys

from wellness_api.core.config import get_settings
from wellness_api.core.logging import setup_logging
from wellness_api.core.security import build_security_config
from wellness_api.schemas.auth import Role, TokenPayload
from wellness_api.services.auth import TokenService


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "wellness_api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="warning",
    )
    return 0


def _issue_token(args: argparse.Namespace) -> int:
    settings = get_settings()
    setup_logging(level="WARNING", format_type="dev", environment=settings.environment)

    service = TokenService(build_security_config(settings))
    token = service.issue(TokenPayload(id=args.user_id, username=args.username, role=args.role))
    print(token)
    print(f"Expires in {service.expires_in}", file=sys.stderr)
    return 0


def _generate_secret(args: argparse.Namespace) -> int:
    print(secrets.token_urlsafe(args.bytes))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wellness-api", description="Wellness API server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3001)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (dev only)")
    serve.set_defaults(func=_serve)

    issue = subparsers.add_parser("issue-token", help="Sign an identity token with JWT_SECRET")
    issue.add_argument("--user-id", required=True)
    issue.add_argument("--username", required=True)
    issue.add_argument("--role", required=True, choices=[role.value for role in Role])
    issue.set_defaults(func=_issue_token)

    generate = subparsers.add_parser(
        "generate-secret", help="Print a random value suitable for JWT_SECRET or CSRF_SECRET"
    )
    generate.add_argument("--bytes", type=int, default=48)
    generate.set_defaults(func=_generate_secret)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
