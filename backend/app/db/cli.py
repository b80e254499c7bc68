from __future__ import annotations

import argparse
from collections.abc import Sequence
from uuid import UUID

from app.db.bootstrap import create_project, initialize_database
from app.db.migrations import downgrade_to_base, upgrade_to_head


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="delegate-board-db",
        description="Delegate Board database management commands.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Create database directory and apply migrations.",
    )
    init_parser.add_argument("--database-url", default=None)

    migrate_parser = subparsers.add_parser(
        "migrate",
        help="Apply database migrations to latest revision.",
    )
    migrate_parser.add_argument("--database-url", default=None)

    reset_parser = subparsers.add_parser(
        "reset",
        help="Downgrade to an empty schema, then migrate back to latest revision.",
    )
    reset_parser.add_argument("--database-url", default=None)

    project_parser = subparsers.add_parser(
        "create-project",
        help="Create a project owned by a user and print its API key once.",
    )
    project_parser.add_argument("--user-id", required=True, type=UUID)
    project_parser.add_argument("--name", required=True)
    project_parser.add_argument("--description", default=None)
    project_parser.add_argument("--database-url", default=None)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "init":
        initialize_database(database_url=args.database_url)
        print("Database initialized.")
        return 0

    if args.command == "migrate":
        upgrade_to_head(args.database_url)
        print("Database migrations applied.")
        return 0

    if args.command == "reset":
        downgrade_to_base(args.database_url)
        upgrade_to_head(args.database_url)
        print("Database reset.")
        return 0

    if args.command == "create-project":
        project = create_project(
            user_id=args.user_id,
            name=args.name,
            description=args.description,
            database_url=args.database_url,
        )
        print(f"project_id={project.id}")
        print(f"api_key={project.api_key}")
        return 0

    parser.error(f"Unsupported command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
