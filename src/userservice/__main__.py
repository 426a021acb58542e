"""
=============================================================================
USER SERVICE CLI ENTRY POINT
=============================================================================

    # Run with DATABASE_URL from the environment
    DATABASE_URL=sqlite:///users.db python -m userservice

    # Or pass everything on the command line
    python -m userservice --database-url sqlite:///users.db --port 3000

    # Installed console script, DATABASE_URL read from ./.env
    userservice --host 127.0.0.1 --log-level DEBUG

Command-line flags override environment variables, which override a .env
file, which overrides the ServiceConfig defaults.

=============================================================================
STARTUP ORDER
=============================================================================

1. Load .env (if present), then read environment + CLI into a ServiceConfig
2. Validate it (no DATABASE_URL → exit 1)
3. Create the users table if needed (failure → exit 1)
4. Bind and serve until Ctrl+C / SIGTERM

=============================================================================
"""

import argparse
import sys

from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import ServiceConfig, LOG_FORMATS
from .db import StorageError
from .server import UserServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userservice",
        description="Minimal user-record service over raw TCP sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  DATABASE_URL=sqlite:///users.db python -m userservice
  python -m userservice -d sqlite:///users.db --port 3000
  python -m userservice -d /var/lib/users.db --host 127.0.0.1
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: $USERS_HOST or 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $USERS_PORT or 8080)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--database-url", "-d",
        default=None,
        help="SQLite connection string, e.g. sqlite:///users.db (default: $DATABASE_URL)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: $USERS_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=list(LOG_FORMATS),
        default=None,
        help="Access log format (default: $USERS_LOG_FORMAT or text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userservice {__version__}"
    )

    return parser


def load_environment() -> bool:
    """
    Load a .env file from the working directory or one of its parents.

    Variables already set in the process environment win over the file.

    Returns:
        True if a .env file was found and loaded.
    """
    env_path = find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path)


def build_config(args: argparse.Namespace) -> ServiceConfig:
    """Environment first, then any flag that was actually given."""
    config = ServiceConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "database_url": args.database_url,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    load_environment()

    try:
        config = build_config(args)
        server = UserServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except StorageError as e:
        print(f"Error setting up database: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
