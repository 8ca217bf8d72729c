"""Local evidentiary record store: evidence, report ledger, ordering index."""

from src.ledger.case_store import CaseStore, IntegrityReport
from src.ledger.database import CaseDatabase
from src.ledger.errors import (
    CaseStoreError,
    EvidenceNotFoundError,
    ImmutableEvidenceError,
    ImmutableReportError,
    ReportNotFoundError,
    StorageError,
)
from src.ledger.evidence_store import EvidenceStore
from src.ledger.report_ledger import ReportLedger

__all__ = [
    "CaseStore",
    "CaseDatabase",
    "EvidenceStore",
    "ReportLedger",
    "IntegrityReport",
    "CaseStoreError",
    "StorageError",
    "EvidenceNotFoundError",
    "ReportNotFoundError",
    "ImmutableEvidenceError",
    "ImmutableReportError",
]
