"""Immutable, content-addressed evidence records."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from src.config_loader import Jurisdiction
from src.evidence.fingerprint import sha512_hex
from src.ledger.database import CaseDatabase
from src.ledger.errors import EvidenceNotFoundError, ImmutableEvidenceError
from src.schema import Evidence

logger = logging.getLogger(__name__)

# Fields that never change after ingest
FIXED_FIELDS = (
    "name",
    "size",
    "type",
    "content",
    "sha512",
    "created_at",
    "jurisdiction",
    "timezone",
)

EVIDENCE_COLUMNS = (
    "id, name, size, type, content, sha512, created_at, "
    "jurisdiction, timezone, meta_json, extracted_text"
)


class EvidenceStore:
    """Evidence collection of the case store.

    Records are keyed by a generated id and carry the SHA-512 digest of their
    content. The only post-ingest mutation is attaching extracted text, once.
    """

    def __init__(self, database: CaseDatabase):
        self.database = database

    def put_evidence(
        self,
        content: bytes,
        name: str,
        declared_type: str,
        jurisdiction: Jurisdiction = "Global",
        timezone_name: str = "UTC",
        meta: Optional[dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> Evidence:
        """Fingerprint and persist new evidence.

        Args:
            content: Raw artifact bytes
            name: Original file name
            declared_type: MIME type reported by the caller
            jurisdiction: Jurisdiction tag
            timezone_name: IANA timezone of the ingesting session
            meta: Optional free-form metadata
            created_at: Override ingest timestamp (must be timezone-aware)

        Returns:
            The stored Evidence

        Raises:
            StorageError: If the write fails
        """
        evidence = Evidence(
            id=str(uuid.uuid4()),
            name=name,
            size=len(content),
            type=declared_type,
            content=content,
            sha512=sha512_hex(content),
            created_at=created_at or datetime.now(timezone.utc),
            jurisdiction=jurisdiction,
            timezone=timezone_name,
            meta=meta or {},
        )

        with self.database.write_transaction() as conn:
            conn.execute(
                f"INSERT INTO evidence ({EVIDENCE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._to_row(evidence),
            )

        logger.info(f"Stored evidence {evidence.name} ({evidence.size} bytes) as {evidence.id}")
        return evidence

    def update_evidence(self, evidence: Evidence) -> Evidence:
        """Overwrite an evidence record, keyed by id.

        Only ``extracted_text`` (once) and ``meta`` may differ from the
        stored record.

        Raises:
            EvidenceNotFoundError: If the id is unknown
            ImmutableEvidenceError: If a fixed field or already-set text changes
            StorageError: If the write fails
        """
        with self.database.write_transaction() as conn:
            current = self._fetch(conn, evidence.id)
            if current is None:
                raise EvidenceNotFoundError(f"Evidence not found: {evidence.id}")

            changed = [f for f in FIXED_FIELDS if getattr(current, f) != getattr(evidence, f)]
            if changed:
                raise ImmutableEvidenceError(
                    f"Evidence {evidence.id} fields are immutable: {', '.join(changed)}"
                )
            if (
                current.extracted_text is not None
                and evidence.extracted_text != current.extracted_text
            ):
                raise ImmutableEvidenceError(
                    f"Extracted text of evidence {evidence.id} is already set"
                )

            conn.execute(
                "UPDATE evidence SET meta_json = ?, extracted_text = ? WHERE id = ?",
                (json.dumps(evidence.meta), evidence.extracted_text, evidence.id),
            )

        return evidence

    def attach_extracted_text(self, evidence_id: str, text: str) -> Evidence:
        """Record OCR or PDF-extracted text for stored evidence."""
        current = self.get_evidence(evidence_id)
        if current is None:
            raise EvidenceNotFoundError(f"Evidence not found: {evidence_id}")
        updated = self.update_evidence(current.model_copy(update={"extracted_text": text}))
        logger.info(f"Attached {len(text)} chars of extracted text to {evidence_id}")
        return updated

    def get_evidence(self, evidence_id: str) -> Optional[Evidence]:
        """Return evidence by id, or None if absent."""
        with self.database.read_transaction() as conn:
            return self._fetch(conn, evidence_id)

    def list_evidence(self) -> list[Evidence]:
        """All evidence in ingest order."""
        with self.database.read_transaction() as conn:
            rows = conn.execute(
                f"SELECT {EVIDENCE_COLUMNS} FROM evidence ORDER BY seq"
            ).fetchall()
        return [self._from_row(row) for row in rows]

    def fetch_many(self, conn: sqlite3.Connection, evidence_ids: list[str]) -> list[Evidence]:
        """Load the given ids inside an open transaction, skipping missing ones."""
        if not evidence_ids:
            return []
        rows = conn.execute(
            f"SELECT {EVIDENCE_COLUMNS} FROM evidence "
            "WHERE id IN (SELECT value FROM json_each(?)) ORDER BY seq",
            (json.dumps(evidence_ids),),
        ).fetchall()
        return [self._from_row(row) for row in rows]

    # ------------------------------------------------------------------#
    # Row mapping
    # ------------------------------------------------------------------#
    def _fetch(self, conn: sqlite3.Connection, evidence_id: str) -> Optional[Evidence]:
        row = conn.execute(
            f"SELECT {EVIDENCE_COLUMNS} FROM evidence WHERE id = ?", (evidence_id,)
        ).fetchone()
        return self._from_row(row) if row else None

    @staticmethod
    def _to_row(evidence: Evidence) -> tuple:
        return (
            evidence.id,
            evidence.name,
            evidence.size,
            evidence.type,
            evidence.content,
            evidence.sha512,
            evidence.created_at.isoformat(),
            evidence.jurisdiction,
            evidence.timezone,
            json.dumps(evidence.meta),
            evidence.extracted_text,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Evidence:
        return Evidence(
            id=row["id"],
            name=row["name"],
            size=row["size"],
            type=row["type"],
            content=bytes(row["content"]),
            sha512=row["sha512"],
            created_at=datetime.fromisoformat(row["created_at"]),
            jurisdiction=row["jurisdiction"],
            timezone=row["timezone"],
            meta=json.loads(row["meta_json"] or "{}"),
            extracted_text=row["extracted_text"],
        )
