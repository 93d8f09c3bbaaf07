import argparse
import logging
import os
import sys
from pathlib import Path
from uuid import UUID

from single_invites.adapters.sqlite.migrator import SchemaGuard
from single_invites.app_shell.context import ServiceContext
from single_invites.rules.loader import load_rules

logger = logging.getLogger("single_invites.cli")


def _default_db_path() -> str:
    return f"{os.environ.get('SINGLES_DATA_DIR', './data')}/singles.db"


def get_context(args: argparse.Namespace) -> ServiceContext:
    rules_path = Path(args.rules)
    if not rules_path.exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)

    rules = load_rules(rules_path)
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    return ServiceContext.create(args.db, rules, args.migrations)


def handle_migrate(args: argparse.Namespace) -> None:
    Path(args.db).parent.mkdir(parents=True, exist_ok=True)
    guard = SchemaGuard(args.db, args.migrations)
    guard.ensure()
    print(f"Schema ready: {args.db}")


def handle_expire(ctx: ServiceContext, args: argparse.Namespace) -> None:
    count = ctx.registry.expire_lapsed()
    print(f"Expired {count} invites.")


def handle_create_invite(ctx: ServiceContext, args: argparse.Namespace) -> None:
    created, errors = ctx.registry.create_invite(
        UUID(args.inviter_id), args.email, args.role, ttl_hours=args.ttl_hours
    )
    if created is None:
        for error in errors:
            logger.error("%s: %s", error.code, error.message)
        sys.exit(1)

    print(f"Invite {created.invite.id} created ({created.role_label}).")
    print(f"Expires: {created.invite.expires_at.isoformat()}")
    print(f"Link: {created.link}")


def handle_history(ctx: ServiceContext, args: argparse.Namespace) -> None:
    for event in ctx.registry.history(UUID(args.invite_id)):
        actor = event.actor_account_id or "system"
        print(f"{event.occurred_at.isoformat()}  {event.event_type:<34} {actor}  {event.metadata}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Single-member invite administration")
    parser.add_argument("--db", default=_default_db_path(), help="SQLite database path")
    parser.add_argument(
        "--rules", default=os.environ.get("SINGLES_RULES_PATH", "rules.yaml"), help="Rules file"
    )
    parser.add_argument(
        "--migrations",
        default=os.environ.get("SINGLES_MIGRATIONS_DIR", "migrations"),
        help="Directory of .sql migrations",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply pending migrations")
    subparsers.add_parser("expire-invites", help="Expire lapsed invites")

    create_parser = subparsers.add_parser("create-invite", help="Create a single invite")
    create_parser.add_argument("--inviter-id", required=True, help="Inviting couple account id")
    create_parser.add_argument("email", help="Invitee email")
    create_parser.add_argument("role", help="single_male or single_female")
    create_parser.add_argument("--ttl-hours", type=int, default=None)

    history_parser = subparsers.add_parser("history", help="Show an invite's event history")
    history_parser.add_argument("invite_id")

    return parser


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args)
        return

    ctx = get_context(args)
    if args.command == "expire-invites":
        handle_expire(ctx, args)
    elif args.command == "create-invite":
        handle_create_invite(ctx, args)
    elif args.command == "history":
        handle_history(ctx, args)


if __name__ == "__main__":
    main()
