#!/usr/bin/env python3
"""
Issue a long‑lived bearer token for an existing user.

Useful for scripts and integrations that call the Service Orders API
without going through ``/users/login``.  The user must already exist in
the database pointed to by ``DATABASE_URL``.

Usage:
    python create_token.py --email admin@example.com --days 365
"""

import argparse
import asyncio
import sys

from service_orders_api.app.core.db import init_db
from service_orders_api.app.core.errors import NotFoundError
from service_orders_api.app.core.security import create_access_token
from service_orders_api.app.services.user_service import UserService


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Issue an API token for a user.")
    parser.add_argument("--email", required=True, help="E‑mail of the user the token is issued for")
    parser.add_argument("--days", type=int, default=365, help="Token lifetime in days (default: 365)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.days <= 0:
        print("--days must be positive", file=sys.stderr)
        return 2
    init_db()
    try:
        user = asyncio.run(UserService.get_user_by_email(args.email))
    except NotFoundError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(create_access_token({"sub": user.email}, expires_delta=args.days * 24 * 60 * 60))
    return 0


if __name__ == "__main__":
    sys.exit(main())
