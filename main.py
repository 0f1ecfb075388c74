#!/usr/bin/env python3
"""
unidir -- University user directory backend.

Usage:
  python main.py seed
  python main.py seed --reset
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 3000 --reload

Environment variables (or .env):
  JWT_SECRET           Access-token signing secret, at least 32 characters. Required.
  JWT_REFRESH_SECRET   Refresh-token signing secret, at least 32 characters, different
                       from JWT_SECRET. Required.
  DATABASE_URL         SQLAlchemy URL (default: sqlite:///unidir.db next to this file).
  GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_CALLBACK_URL
                       Enable Google login when all three are set.
"""

import argparse
import logging
import sys

from core.config import get_settings
from core.errors import ConfigurationError

logger = logging.getLogger("unidir.cli")


def _seed(reset: bool) -> int:
    from auth.store import AccountStore
    from directory.seed import DEMO_ACCOUNTS, seed_directory
    from directory.service import DirectoryService

    settings = get_settings()
    store = AccountStore(settings.database_url)
    try:
        directory = DirectoryService(store, bcrypt_rounds=settings.bcrypt_rounds)
        created = seed_directory(directory, reset=reset)
    finally:
        store.close()

    print(f"\nSeeded {len(created)} of {len(DEMO_ACCOUNTS)} demo account(s).")
    for profile in created:
        print(f"  {profile.role.value:<15} {profile.status.value:<8} {profile.email}")
    if created:
        print("\nDefault passwords: Admin@123, President@123, VicePresident@123, Director@123, OfficeHead@123")
        print("Change them before exposing this server to anyone.\n")
    return 0


def _serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    # Fail fast with a readable message instead of a traceback from the import of asgi:app.
    get_settings()
    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="unidir",
        description="University user directory: account management with JWT and Google authentication.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed
  python main.py seed --reset
  python main.py serve --port 3000
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="Create the demo accounts (admin, president, VP, director, office heads)")
    seed.add_argument(
        "--reset",
        action="store_true",
        help="Delete every existing account before seeding",
    )

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        if args.command == "seed":
            code = _seed(args.reset)
        else:
            code = _serve(args.host, args.port, args.reload)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
