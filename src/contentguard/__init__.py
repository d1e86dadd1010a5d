"""
contentguard - content moderation for community wiki and comment workflows.

This package scores submitted text and emits one actionable decision:
- Spam detection (links, shouting, repetition, keywords, markup tricks)
- Policy filtering (profanity, hate speech, personal information, blocked domains)
- User reputation from account and submission history
- A fixed reject > flag > approve > monitor decision table
"""

from __future__ import annotations

from contentguard.config import Config, ModerationConfig, load_config
from contentguard.moderation import (
    ModerationAction,
    ModerationResult,
    Moderator,
    ReputationService,
)

__version__ = "1.0.0"
__all__ = [
    "Config",
    "ModerationConfig",
    "load_config",
    "ModerationAction",
    "ModerationResult",
    "Moderator",
    "ReputationService",
    "main",
]

EXIT_CODES = {
    ModerationAction.APPROVE: 0,
    ModerationAction.MONITOR: 0,
    ModerationAction.FLAG: 1,
    ModerationAction.REJECT: 2,
}


def _build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="contentguard",
        description="Moderate content from the command line.",
    )
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--db", help="SQLite database path (overrides DATABASE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Moderate a piece of content")
    check.add_argument("file", nargs="?", default="-", help="File to read, '-' for stdin")
    check.add_argument("--user", required=True, help="Submitting user ID")
    check.add_argument("--title", help="Title inspected together with the content")
    check.add_argument(
        "--type",
        dest="content_type",
        default="wiki",
        choices=["wiki", "comment", "user", "person"],
    )

    reputation = sub.add_parser("reputation", help="Show a user's reputation")
    reputation.add_argument("user", help="User ID")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the contentguard command."""
    import asyncio
    import json
    import sys

    from contentguard.utils.database import get_database
    from contentguard.utils.logging import get_logger, setup_logging

    args = _build_parser().parse_args(argv)

    try:
        config = load_config(args.env_file)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)
    logger = get_logger(__name__)
    logger.debug("contentguard v%s", __version__)

    store = get_database(args.db or config.database_path)
    service = ReputationService(
        store,
        config.moderation,
        enabled=config.reputation_enabled,
        timeout=config.reputation_timeout,
    )

    try:
        if args.command == "reputation":
            reputation = asyncio.run(service.get_user_reputation(args.user))
            print(json.dumps(reputation.to_dict(), indent=2))
            return 0

        if args.file == "-":
            content = sys.stdin.read()
        else:
            with open(args.file, encoding="utf-8") as f:
                content = f.read()

        moderator = Moderator(service, config.moderation)
        result = asyncio.run(
            moderator.moderate_content(
                content,
                args.user,
                title=args.title,
                content_type=args.content_type,
            )
        )
        print(json.dumps(result.to_dict(), indent=2))
        return EXIT_CODES[result.action]
    finally:
        service.close()
