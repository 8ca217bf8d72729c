"""Report ledger: reports plus the singleton ordering index.

The index record in the meta collection is the only authority for report
order and chapter numbering. It is never rebuilt from timestamps.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Optional

from src.ledger.database import CaseDatabase
from src.ledger.errors import ImmutableReportError, ReportNotFoundError
from src.schema import Report, ReportDraft, ReportIndex

logger = logging.getLogger(__name__)

INDEX_KEY = "reports_index"

# Fields a structural edit may not touch
FIXED_REPORT_FIELDS = (
    "chapter_index",
    "created_at",
    "jurisdiction",
    "timezone",
    "evidence_refs",
    "findings",
    "contradictions",
)


class ReportLedger:
    """Append-only, chapter-numbered report collection."""

    def __init__(self, database: CaseDatabase):
        self.database = database

    def append_report(self, draft: ReportDraft) -> Report:
        """Append a report at the next chapter position.

        The report row is written before the index is advanced, and both
        writes share one transaction: either the report exists and is
        indexed, or neither change is visible.

        Args:
            draft: Caller-supplied report content

        Returns:
            The stored Report with id, timestamps and chapter index

        Raises:
            StorageError: If either write fails (nothing is committed)
        """
        with self.database.write_transaction() as conn:
            index = self.load_index(conn)
            next_chapter = index.last_chapter_index + 1
            now = datetime.now(timezone.utc)

            report = Report(
                **draft.model_dump(include=set(ReportDraft.model_fields)),
                id=str(uuid.uuid4()),
                chapter_index=next_chapter,
                created_at=now,
                updated_at=now,
            )

            conn.execute(
                "INSERT INTO reports (id, chapter_index, payload_json) VALUES (?, ?, ?)",
                (report.id, report.chapter_index, report.model_dump_json()),
            )

            index.order.append(report.id)
            index.last_chapter_index = next_chapter
            self._save_index(conn, index)

        logger.info(f"Appended report '{report.title}' as chapter {report.chapter_index}")
        return report

    def update_report(self, report: Report) -> Report:
        """Apply a structural edit (title, timeline, export digest, html, highlights).

        Refreshes ``updated_at``.

        Raises:
            ReportNotFoundError: If the report is not in the ledger
            ImmutableReportError: If a fixed field differs from the stored report
            StorageError: If the write fails
        """
        with self.database.write_transaction() as conn:
            current = self._fetch_indexed(conn, report.id)
            if current is None:
                raise ReportNotFoundError(f"Report not found: {report.id}")

            changed = [f for f in FIXED_REPORT_FIELDS if getattr(current, f) != getattr(report, f)]
            if changed:
                raise ImmutableReportError(
                    f"Report {report.id} fields are immutable: {', '.join(changed)}"
                )

            updated = report.model_copy(update={"updated_at": datetime.now(timezone.utc)})
            conn.execute(
                "UPDATE reports SET payload_json = ? WHERE id = ?",
                (updated.model_dump_json(), updated.id),
            )

        return updated

    def get_report(self, report_id: str) -> Optional[Report]:
        """Return an indexed report, or None."""
        with self.database.read_transaction() as conn:
            return self._fetch_indexed(conn, report_id)

    def read_index(self) -> ReportIndex:
        """Current ordering index (empty if no report was ever appended)."""
        with self.database.read_transaction() as conn:
            return self.load_index(conn)

    def indexed_reports(self, conn: sqlite3.Connection) -> list[Report]:
        """Reports in index order, inside an open transaction.

        Index entries without a report row are skipped; report rows that the
        index does not list are never returned.
        """
        index = self.load_index(conn)
        rows = conn.execute("SELECT id, payload_json FROM reports").fetchall()
        by_id = {row["id"]: row["payload_json"] for row in rows}

        reports = []
        for report_id in index.order:
            payload = by_id.get(report_id)
            if payload is None:
                logger.warning(f"Ledger index references missing report {report_id}")
                continue
            reports.append(Report.model_validate_json(payload))
        return reports

    # ------------------------------------------------------------------#
    # Index record
    # ------------------------------------------------------------------#
    @staticmethod
    def load_index(conn: sqlite3.Connection) -> ReportIndex:
        row = conn.execute(
            "SELECT value_json FROM meta WHERE key = ?", (INDEX_KEY,)
        ).fetchone()
        if row is None:
            return ReportIndex()
        return ReportIndex.model_validate(json.loads(row["value_json"]))

    @staticmethod
    def _save_index(conn: sqlite3.Connection, index: ReportIndex) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO meta (key, value_json) VALUES (?, ?)",
            (INDEX_KEY, json.dumps(index.to_record())),
        )

    def _fetch_indexed(self, conn: sqlite3.Connection, report_id: str) -> Optional[Report]:
        if report_id not in self.load_index(conn).order:
            return None
        row = conn.execute(
            "SELECT payload_json FROM reports WHERE id = ?", (report_id,)
        ).fetchone()
        return Report.model_validate_json(row["payload_json"]) if row else None
