"""CardDAV server command-line tool."""

import argparse
import sys
from pathlib import Path


def parse_users(values: list[str]) -> dict[str, str] | None:
    """Parse NAME:PASSWORD arguments into a user map."""
    if not values:
        return None

    users: dict[str, str] = {}
    for value in values:
        name, sep, password = value.partition(":")
        if not sep or not name:
            raise ValueError(f"invalid user {value!r}, expected NAME:PASSWORD")
        users[name] = password
    return users


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="CardDAV server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve address books from the current directory
  py-carddav-server

  # Require authentication
  py-carddav-server --user alice:secret --port 8080 /path/to/data

Data layout:
  DIRECTORY/addressbooks/<principal>/<addressbook>/<card>.vcf

Endpoints:
  - Principals:     http://localhost:PORT/principals/<principal>/
  - Address books:  http://localhost:PORT/addressbooks/<principal>/<addressbook>/
  - Discovery:      http://localhost:PORT/.well-known/carddav
        """,
    )
    parser.add_argument(
        "--addr",
        default="127.0.0.1",
        help="listening address (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="listening port (default: 8080)",
    )
    parser.add_argument(
        "--user",
        action="append",
        default=[],
        metavar="NAME:PASSWORD",
        help="accept these Basic credentials (repeatable); without it no authentication is required",
    )
    parser.add_argument(
        "--realm",
        default="py-carddav",
        help="authentication realm (default: py-carddav)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging (logs request/response bodies with formatted XML)",
    )
    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="data directory (default: current directory)",
    )
    return parser


def main() -> None:
    """Main entry point for the CardDAV server."""
    parser = build_parser()
    args = parser.parse_args()

    directory = Path(args.directory).resolve()
    if not directory.is_dir():
        print(f"Error: not a directory: {directory}", file=sys.stderr)
        sys.exit(1)

    try:
        users = parse_users(args.user)
    except ValueError as e:
        parser.error(str(e))

    if args.debug:
        from py_carddav.debug import setup_debug_logging

        setup_debug_logging()

    import uvicorn

    from py_carddav.server import create_app

    app = create_app(directory, users=users, realm=args.realm, debug=args.debug)

    print(f"CardDAV server listening on {args.addr}:{args.port}")
    print(f"Serving address books from: {directory}/addressbooks/")
    if users is None:
        print("Authentication disabled")

    uvicorn.run(
        app,
        host=args.addr,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
