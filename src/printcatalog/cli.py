"""Command line entry point: serve the API, create the schema, delete entries."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .catalog.models import CATALOG_KINDS
from .catalog.service import build_backends
from .config import configure

__all__ = ["main"]

logger = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="printcatalog",
        description="Catalog backend for the print shop dashboard.",
    )
    parser.add_argument(
        "--data-path",
        type=Path,
        default=None,
        help="Directory holding the database and object buckets.",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL. Defaults to a SQLite file in the data path.",
    )
    parser.add_argument(
        "--public-url",
        default=None,
        help="Base URL used when building public object URLs.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    commands.add_parser("init-db", help="Create tables and sentinel categories.")

    delete = commands.add_parser("delete", help="Delete an entry and its stored assets.")
    delete.add_argument("kind", choices=CATALOG_KINDS)
    delete.add_argument("entry_id")
    delete.add_argument(
        "--keep-assets",
        action="store_true",
        help="Delete the rows but leave stored blobs in place.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )
    config = configure(
        data_root=args.data_path,
        database_url=args.database_url,
        public_base_url=args.public_url,
    )

    if args.command == "serve":
        import uvicorn

        from .api import create_app

        uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=args.log_level.lower())
        return 0

    backends = build_backends(config)

    if args.command == "init-db":
        print(f"Catalog schema ready at {config.resolved_database_url}")
        return 0

    result = backends[args.kind].delete_entry(args.entry_id, delete_assets=not args.keep_assets)
    print(f"{args.kind} {args.entry_id}: {result.status.value}")
    for locator in result.partial_cleanup_failure:
        print(f"  not removed: {locator.bucket}/{locator.path}")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
