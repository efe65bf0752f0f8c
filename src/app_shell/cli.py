import argparse
import json
import logging
import os
import random
import sys
import uuid
from datetime import timedelta
from pathlib import Path

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.schemas import dashboard_response
from src.app_shell.config import ConfigurationError, validate_ops_rules
from src.app_shell.context import ServiceContext
from src.core.entities import AcquisitionContext, ArticleMeta, GuestReader, RegisteredReader
from src.rules.loader import load_rules

logger = logging.getLogger("cli")

DATA_DIR = os.environ.get("ANALYTICS_DATA_DIR", "./data")
DB_PATH = os.path.join(DATA_DIR, "analytics.db")
RULES_PATH = os.environ.get("ANALYTICS_RULES_PATH", "rules.yaml")

DEMO_ARTICLES = [
    ("demo-budget", "Budget night explained", "politics"),
    ("demo-derby", "Derby day report", "sport"),
    ("demo-rates", "What the rate rise means", "business"),
    ("demo-letters", "Letters to the editor", None),
]
DEMO_CHANNELS = ["whatsapp", "facebook", "x", "email", "copy_link"]


def get_context(db_path: str = DB_PATH, rules_path: str = RULES_PATH) -> ServiceContext:
    if not Path(rules_path).exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)

    rules = load_rules(Path(rules_path))
    try:
        validate_ops_rules(rules, Path(db_path).parent)
    except ConfigurationError:
        sys.exit(1)
    return ServiceContext.create(db_path, rules)


def handle_migrate(db_path: str) -> None:
    applied = SQLiteMigrator(db_path).run_migrations()
    print(f"Applied {len(applied)} migration(s) to {db_path}.")


def handle_dashboard(ctx: ServiceContext, args: argparse.Namespace) -> None:
    output = ctx.dashboard(args.window_days)
    if not output.success or output.stats is None:
        for error in output.errors:
            logger.error("%s: %s", error.code, error.message)
        sys.exit(2)
    print(dashboard_response(output.stats).model_dump_json(indent=2))


def handle_seed_demo(ctx: ServiceContext, args: argparse.Namespace) -> None:
    """Write a small deterministic demo data set through the tracking API."""
    rng = random.Random(args.seed)
    now = ctx.time.now_utc()

    for i, (article_id, title, section) in enumerate(DEMO_ARTICLES):
        ctx.articles.save(
            ArticleMeta(
                id=article_id,
                title=title,
                section=section,
                published_at=now - timedelta(days=i + 1),
                view_count=0,
            )
        )

    tracking = ctx.tracking
    for n in range(args.sessions):
        article_id = rng.choice(DEMO_ARTICLES)[0]
        if rng.random() < 0.3:
            reader = RegisteredReader(f"demo-user-{rng.randint(1, 5)}")
        else:
            reader = GuestReader(f"demo-visitor-{n}")
        token = uuid.uuid4().hex
        context = AcquisitionContext(
            utm_source=rng.choice([None, "newsletter", "social"]),
            device_type=rng.choice(["mobile", "desktop"]),
        )
        tracking.record_article_view(article_id, reader, session_token=token, context=context)
        tracking.heartbeat(token, progress_percent=rng.uniform(10, 100))
        if rng.random() < 0.6:
            tracking.complete_reading_session(token)
        if rng.random() < 0.2:
            tracking.record_share_event(
                article_id,
                rng.choice(DEMO_CHANNELS),
                reader,
                context="article_footer",
                session_token=token,
            )

    print(f"Seeded {len(DEMO_ARTICLES)} articles and {args.sessions} sessions.")


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Reading Analytics CLI")
    parser.add_argument("--db", default=DB_PATH, help="SQLite database path")
    parser.add_argument("--rules", default=RULES_PATH, help="Rules file path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # dashboard
    dashboard_parser = subparsers.add_parser("dashboard", help="Print dashboard statistics")
    dashboard_parser.add_argument(
        "--window-days", type=int, default=None, help="Rolling window size in days"
    )

    # seed-demo
    seed_parser = subparsers.add_parser("seed-demo", help="Write demo tracking data")
    seed_parser.add_argument("--sessions", type=int, default=40, help="Sessions to create")
    seed_parser.add_argument("--seed", type=int, default=7, help="Random seed")

    args = parser.parse_args(argv)

    if args.command == "migrate":
        handle_migrate(args.db)
        return

    ctx = get_context(args.db, args.rules)

    if args.command == "dashboard":
        handle_dashboard(ctx, args)
    elif args.command == "seed-demo":
        handle_seed_demo(ctx, args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
