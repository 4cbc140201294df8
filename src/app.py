"""Application entry point for spanscope."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.formatting import format_annotations, format_rule_option
from adapters.records import load_conversation, load_rules
from client import build_store, build_store_config
from core.errors import SpanscopeError
from core.rules import rules_for_domain
from core.session import AnnotationSession
from identity import build_review_config

NAME = "SPANSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(console: bool = True) -> None:
    """Configure handlers from config.json.

    The TUI owns the terminal, so it runs with ``console=False`` and only the
    file handler is attached.
    """

    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if console and config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/spanscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_store():
    return build_store(
        build_store_config(
            settings.STORE_BACKEND,
            settings.DB_PATH,
            settings.API_BASE_URL,
            settings.API_TIMEOUT_SECONDS,
        )
    )


async def _close_store(store) -> None:
    close = getattr(store, "aclose", None)
    if close is not None:
        await close()


def _review(conversation_path: str) -> None:
    _configure_logging(console=False)
    logger = logging.getLogger(__name__)

    conversation = load_conversation(conversation_path)
    review_config = build_review_config(settings.ANNOTATOR)
    store = _build_store()
    session = AnnotationSession(
        rule_catalog=store,
        annotation_store=store,
        annotator=review_config.annotator,
    )
    logger.info(
        "Starting review of %s (%s messages) as %s",
        conversation.id,
        conversation.length,
        review_config.annotator,
    )

    from frontend.app import ReviewApp

    # The store is closed on the app's own event loop, where its client lives.
    ReviewApp(session, conversation, on_exit=lambda: _close_store(store)).run()


def _list_rules(domain: Optional[str]) -> None:
    store = _build_store()

    async def _fetch():
        try:
            return await store.get_all()
        finally:
            await _close_store(store)

    rules = asyncio.run(_fetch())
    if domain:
        rules = rules_for_domain(rules, domain)
    if not rules:
        print("No rules found.")
        return
    for rule in rules:
        print(f"[{rule.domain}] {format_rule_option(rule, limit=100)}")


def _import_rules(path: str) -> None:
    rules = load_rules(path)
    store = build_store(
        build_store_config("sqlite", settings.DB_PATH, None, settings.API_TIMEOUT_SECONDS)
    )
    written = store.upsert_rules(rules)
    logging.getLogger(__name__).info("Imported %s rules from %s", written, path)
    print(f"Imported {written} rules into {settings.DB_PATH}")


def _list_annotations(conversation_id: str, conversation_path: Optional[str]) -> None:
    conversation = load_conversation(conversation_path) if conversation_path else None
    store = _build_store()

    async def _fetch():
        try:
            return await store.get_by_conversation(conversation_id)
        finally:
            await _close_store(store)

    print(format_annotations(asyncio.run(_fetch()), conversation))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="spanscope")
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", help="Open a conversation in the review TUI")
    review.add_argument("conversation", help="Path to a conversation JSON file")

    rules = subparsers.add_parser("rules", help="Print the rule catalog")
    rules.add_argument("--domain", help="Only show rules for this domain")

    import_rules = subparsers.add_parser("import-rules", help="Load rules into the SQLite store")
    import_rules.add_argument("path", help="Path to a JSON list of rules")

    annotations = subparsers.add_parser("annotations", help="Print committed annotations")
    annotations.add_argument("conversation_id")
    annotations.add_argument(
        "--conversation",
        help="Conversation JSON file, used to show the annotated text",
    )

    args = parser.parse_args(argv)
    if args.command != "review":
        _print_banner()
        _configure_logging()
    try:
        if args.command == "review":
            _review(args.conversation)
        elif args.command == "rules":
            _list_rules(args.domain)
        elif args.command == "import-rules":
            _import_rules(args.path)
        elif args.command == "annotations":
            _list_annotations(args.conversation_id, args.conversation)
    except SpanscopeError as exc:
        logging.getLogger(__name__).error("%s", exc)
        if args.command == "review":
            # The TUI only logs to file, so report on stderr as well.
            print(f"spanscope: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
