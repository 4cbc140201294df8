"""SQLite store adapter.

Implements the core RuleCatalogPort and AnnotationStorePort using a simple
SQLite database. The blocking sqlite3 calls run in a worker thread so the
event loop (and the UI) stays responsive.
"""

from __future__ import annotations

import asyncio
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Iterable

from adapters.records import parse_timestamp
from core.errors import StoreError
from core.models import Annotation, AnnotationPayload, Rule, Selection


class SQLiteStore:
    """Thin SQLite wrapper that satisfies both store ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - rules: the shared rule catalog
        - annotations: one row per committed annotation
        - selections: spans of an annotation, in submission order
        """

        with self._connect() as conn:
            # rules is reference data, imported in bulk from JSON.
            # Fields:
            # - id: catalog identifier (PRIMARY KEY)
            # - domain: tag matched against conversation.domain
            # - content: rule description shown to the reviewer
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS rules (
                    id TEXT PRIMARY KEY,
                    domain TEXT NOT NULL,
                    content TEXT NOT NULL
                )
                """
            )
            # annotations holds the judgment envelope. Fields:
            # - id: generated uuid4 hex
            # - conversation_id: transcript the spans belong to
            # - annotator: reviewer identity at commit time
            # - created_at: UTC timestamp assigned on insert
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS annotations (
                    id TEXT PRIMARY KEY,
                    conversation_id TEXT NOT NULL,
                    annotator TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_annotations_conversation
                ON annotations (conversation_id)
                """
            )
            # selections stores each span. position keeps submission order.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS selections (
                    annotation_id TEXT NOT NULL REFERENCES annotations(id) ON DELETE CASCADE,
                    position INTEGER NOT NULL,
                    message_index INTEGER NOT NULL,
                    start_offset INTEGER NOT NULL,
                    end_offset INTEGER NOT NULL,
                    rule_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    comment TEXT NOT NULL,
                    PRIMARY KEY (annotation_id, position)
                )
                """
            )

    def upsert_rules(self, rules: Iterable[Rule]) -> int:
        """Insert or replace catalog rules and return how many were written."""

        rows = [(rule.id, rule.domain, rule.content) for rule in rules]
        try:
            with self._connect() as conn:
                conn.executemany(
                    """
                    INSERT INTO rules (id, domain, content)
                    VALUES (?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        domain = excluded.domain,
                        content = excluded.content
                    """,
                    rows,
                )
        except sqlite3.Error as exc:
            raise StoreError(f"sqlite error: {exc}") from exc
        return len(rows)

    def list_rules(self) -> list[Rule]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id, domain, content FROM rules ORDER BY id").fetchall()
        return [Rule(id=row["id"], domain=row["domain"], content=row["content"]) for row in rows]

    def list_annotations(self, conversation_id: str) -> list[Annotation]:
        """Return the annotations of a conversation, oldest first."""

        with self._connect() as conn:
            headers = conn.execute(
                """
                SELECT id, conversation_id, annotator, created_at
                FROM annotations
                WHERE conversation_id = ?
                ORDER BY created_at, rowid
                """,
                (conversation_id,),
            ).fetchall()
            annotations = []
            for header in headers:
                spans = conn.execute(
                    """
                    SELECT message_index, start_offset, end_offset, rule_id, type, comment
                    FROM selections
                    WHERE annotation_id = ?
                    ORDER BY position
                    """,
                    (header["id"],),
                ).fetchall()
                annotations.append(
                    Annotation(
                        conversation_id=header["conversation_id"],
                        selections=tuple(
                            Selection(
                                message_index=span["message_index"],
                                start_offset=span["start_offset"],
                                end_offset=span["end_offset"],
                                rule_id=span["rule_id"],
                                type=span["type"],
                                comment=span["comment"],
                            )
                            for span in spans
                        ),
                        annotator=header["annotator"],
                        id=header["id"],
                        created_at=parse_timestamp(header["created_at"]),
                    )
                )
        return annotations

    def save_annotation(self, payload: AnnotationPayload) -> Annotation:
        """Persist an annotation and all its spans in one transaction."""

        if not payload.selections:
            raise StoreError("annotation needs at least one selection")

        annotation_id = uuid.uuid4().hex
        created_at = datetime.now(timezone.utc)
        # The connection context manager commits on success and rolls back if
        # any insert fails, so a partial annotation is never visible.
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO annotations (id, conversation_id, annotator, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (annotation_id, payload.conversation_id, payload.annotator, created_at.isoformat()),
            )
            conn.executemany(
                """
                INSERT INTO selections (
                    annotation_id,
                    position,
                    message_index,
                    start_offset,
                    end_offset,
                    rule_id,
                    type,
                    comment
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        annotation_id,
                        position,
                        selection.message_index,
                        selection.start_offset,
                        selection.end_offset,
                        selection.rule_id,
                        selection.type,
                        selection.comment,
                    )
                    for position, selection in enumerate(payload.selections)
                ],
            )
        return Annotation(
            conversation_id=payload.conversation_id,
            selections=payload.selections,
            annotator=payload.annotator,
            id=annotation_id,
            created_at=created_at,
        )

    async def get_all(self) -> list[Rule]:
        return await self._run(self.list_rules)

    async def get_by_conversation(self, conversation_id: str) -> list[Annotation]:
        return await self._run(self.list_annotations, conversation_id)

    async def create(self, payload: AnnotationPayload) -> Annotation:
        return await self._run(self.save_annotation, payload)

    @staticmethod
    async def _run(func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as exc:
            raise StoreError(f"sqlite error: {exc}") from exc
