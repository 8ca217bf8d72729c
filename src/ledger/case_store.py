"""Case store: evidence, report ledger and ordering index in one place."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from src.config_loader import Jurisdiction, Settings, get_settings
from src.evidence.fingerprint import sha512_hex
from src.ledger.database import CaseDatabase
from src.ledger.evidence_store import EvidenceStore
from src.ledger.report_ledger import INDEX_KEY, ReportLedger
from src.schema import Evidence, Report, ReportDraft

logger = logging.getLogger(__name__)


@dataclass
class IntegrityReport:
    """Result of an integrity audit of the case store.

    Attributes:
        tampered_evidence: Evidence ids whose content no longer matches the digest
        dangling_index_ids: Index entries with no report row
        orphan_report_ids: Report rows the index does not list
        chapter_gaps: Missing chapter numbers among indexed reports
    """

    tampered_evidence: list[str] = field(default_factory=list)
    dangling_index_ids: list[str] = field(default_factory=list)
    orphan_report_ids: list[str] = field(default_factory=list)
    chapter_gaps: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            self.tampered_evidence
            or self.dangling_index_ids
            or self.orphan_report_ids
            or self.chapter_gaps
        )


class CaseStore:
    """Single-device forensic record store.

    Owns the evidence collection, the report collection and the ordering
    index. Single writer: every mutation is serialized; readers see either
    the state before or after a mutation.
    """

    def __init__(
        self,
        db_path: Optional[str | Path] = None,
        settings: Optional[Settings] = None,
    ):
        """Open (or create) a case store.

        Args:
            db_path: SQLite file. If None, uses path from config.
            settings: Settings instance. If None, loads from config.
        """
        self.settings = settings or get_settings()
        self.database = CaseDatabase(db_path, settings=self.settings)
        self.evidence = EvidenceStore(self.database)
        self.ledger = ReportLedger(self.database)

    # ------------------------------------------------------------------#
    # Evidence
    # ------------------------------------------------------------------#
    def put_evidence(
        self,
        content: bytes,
        name: str,
        declared_type: str,
        jurisdiction: Optional[Jurisdiction] = None,
        timezone_name: Optional[str] = None,
        meta: Optional[dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> Evidence:
        """Fingerprint and store evidence, defaulting jurisdiction/timezone from config."""
        return self.evidence.put_evidence(
            content,
            name,
            declared_type,
            jurisdiction=jurisdiction or self.settings.case.jurisdiction,
            timezone_name=timezone_name or self.settings.case.timezone,
            meta=meta,
            created_at=created_at,
        )

    def update_evidence(self, evidence: Evidence) -> Evidence:
        return self.evidence.update_evidence(evidence)

    def attach_extracted_text(self, evidence_id: str, text: str) -> Evidence:
        return self.evidence.attach_extracted_text(evidence_id, text)

    def get_evidence(self, evidence_id: str) -> Optional[Evidence]:
        return self.evidence.get_evidence(evidence_id)

    def list_evidence(self) -> list[Evidence]:
        return self.evidence.list_evidence()

    # ------------------------------------------------------------------#
    # Reports
    # ------------------------------------------------------------------#
    def append_report(self, draft: ReportDraft) -> Report:
        return self.ledger.append_report(draft)

    def update_report(self, report: Report) -> Report:
        return self.ledger.update_report(report)

    def get_report(self, report_id: str) -> Optional[Report]:
        return self.ledger.get_report(report_id)

    def get_all_indexed(self) -> tuple[list[Report], list[Evidence]]:
        """Indexed reports in ledger order and the evidence they reference.

        Runs in one snapshot. Evidence that no returned report references is
        never included; references to missing evidence are dropped silently.
        """
        with self.database.read_transaction() as conn:
            reports = self.ledger.indexed_reports(conn)
            referenced: list[str] = []
            seen: set[str] = set()
            for report in reports:
                for ref in report.evidence_refs:
                    if ref.id not in seen:
                        seen.add(ref.id)
                        referenced.append(ref.id)
            evidence = self.evidence.fetch_many(conn, referenced)
        return reports, evidence

    # ------------------------------------------------------------------#
    # Maintenance
    # ------------------------------------------------------------------#
    def clear_all(self, also_delete_merged: bool = False) -> None:
        """Empty evidence, reports and the index in one transaction.

        Args:
            also_delete_merged: Also remove merged case files from the exports
                                directory. Does not affect the store itself.
        """
        with self.database.write_transaction() as conn:
            conn.execute("DELETE FROM evidence")
            conn.execute("DELETE FROM reports")
            conn.execute("DELETE FROM meta WHERE key = ?", (INDEX_KEY,))
        logger.info(f"Cleared case store {self.database.db_path}")

        if also_delete_merged:
            from src.export.case_file import delete_case_files

            removed = delete_case_files(self.settings.paths.exports)
            logger.info(f"Deleted {removed} merged case file(s)")

    def verify_integrity(self) -> IntegrityReport:
        """Audit digests, index/report pairing and chapter continuity."""
        result = IntegrityReport()
        with self.database.read_transaction() as conn:
            for row in conn.execute("SELECT id, content, sha512 FROM evidence ORDER BY seq"):
                if sha512_hex(bytes(row["content"])) != row["sha512"]:
                    result.tampered_evidence.append(row["id"])

            index = self.ledger.load_index(conn)
            chapters = {
                row["id"]: row["chapter_index"]
                for row in conn.execute("SELECT id, chapter_index FROM reports")
            }

        indexed = set(index.order)
        result.dangling_index_ids = [rid for rid in index.order if rid not in chapters]
        result.orphan_report_ids = sorted(rid for rid in chapters if rid not in indexed)

        present = {chapters[rid] for rid in index.order if rid in chapters}
        result.chapter_gaps = [
            n for n in range(1, index.last_chapter_index + 1) if n not in present
        ]

        if not result.ok:
            logger.warning(f"Integrity audit found problems: {result}")
        return result

    def close(self) -> None:
        self.database.close()
