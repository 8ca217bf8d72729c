"""Merged case file: every indexed report as a chapter, plus appendices and certification."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from src.evidence.fingerprint import master_digest
from src.export.pdf_writer import FONT_BOLD, FONT_MONO, PdfWriter
from src.export.sealed_report import PRODUCER
from src.schema import Evidence, Report

logger = logging.getLogger(__name__)

CASE_FILE_GLOB = "case_file_*.pdf"


def certification_payload(
    reports: Sequence[Report],
    evidence: Sequence[Evidence],
    timestamp: Optional[datetime] = None,
) -> dict:
    """Master case hash over all evidence digests, with counts and a timestamp."""
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "masterHash": master_digest(e.sha512 for e in evidence),
        "reportCount": len(reports),
        "evidenceCount": len(evidence),
        "timestamp": timestamp.isoformat(),
    }


def render_case_file(
    reports: Sequence[Report],
    evidence: Sequence[Evidence],
    summary: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> bytes:
    """Render the merged case file.

    Args:
        reports: Reports in ledger order
        evidence: Evidence referenced by those reports
        summary: Optional narrative placed before the table of contents
        timestamp: Certification time (default: now, UTC)

    Returns:
        PDF bytes

    Raises:
        ValueError: If there are no reports
    """
    if not reports:
        raise ValueError("No reports available to merge.")

    pdf = PdfWriter()

    if summary:
        pdf.heading("Case Narrative Summary", size=24)
        pdf.text(summary)
        pdf.new_page()

    pdf.heading("Table of Contents", size=24)
    for report in reports:
        pdf.text(f"Chapter {report.chapter_index}: {report.title}", size=12)

    for report in reports:
        pdf.new_page()
        pdf.heading(f"Chapter {report.chapter_index}: {report.title}")

        if report.findings:
            pdf.heading("Key Findings", size=14)
            for finding in report.findings:
                pdf.text(f"{finding.title} ({finding.verification or 'unverified'})", font=FONT_BOLD)
                pdf.text(finding.rationale, size=10, indent=10)
                pdf.space(10)

        if report.contradictions:
            pdf.heading("Contradictions", size=14)
            for contradiction in report.contradictions:
                pdf.text(f"{contradiction.type} ({contradiction.verification})", font=FONT_BOLD)
                pdf.text(contradiction.explanation, size=10, indent=10)
                pdf.space(10)

    pdf.new_page()
    pdf.heading("Appendix A: Evidence Index", size=24)
    for item in evidence:
        pdf.text(f"{item.name} (SHA-512: {item.sha512[:16]}...)", size=9, font=FONT_MONO)

    pdf.new_page()
    pdf.heading("Appendix B: Timeline Index", size=24)
    events = [event for report in reports for event in report.timeline]
    if not events:
        pdf.text("No timeline events recorded in this case file.", size=12)
    for event in events:
        pdf.text(f"{event.date}: {event.event}", size=10)

    payload = certification_payload(reports, evidence, timestamp)
    pdf.new_page()
    pdf.heading("Final Certification", size=24)
    pdf.text(f"Reports: {payload['reportCount']}  Evidence items: {payload['evidenceCount']}")
    pdf.space(10)
    pdf.text(f"Master Case Hash (SHA-512): {payload['masterHash']}", size=8, font=FONT_MONO)
    pdf.text(f"Generated: {payload['timestamp']}", size=10)

    pdf.set_metadata(
        {
            "title": "Case File",
            "subject": json.dumps(payload),
            "keywords": payload["masterHash"],
            "creator": PRODUCER,
            "producer": PRODUCER,
        }
    )
    return pdf.to_bytes()


def write_case_file(store, exports_dir: Optional[str | Path] = None, summary: Optional[str] = None) -> Path:
    """Render the store's indexed reports into a new case file under the exports directory."""
    reports, evidence = store.get_all_indexed()
    data = render_case_file(reports, evidence, summary=summary)

    exports_dir = Path(exports_dir or store.settings.paths.exports)
    exports_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    out_path = _write_new(exports_dir, f"case_file_{stamp}", data)

    logger.info(f"Wrote case file with {len(reports)} chapters to {out_path}")
    return out_path


def _write_new(exports_dir: Path, stem: str, data: bytes) -> Path:
    """Write to <stem>.pdf, or <stem>_2.pdf, <stem>_3.pdf... if taken. Never overwrites."""
    attempt = 1
    while True:
        suffix = "" if attempt == 1 else f"_{attempt}"
        out_path = exports_dir / f"{stem}{suffix}.pdf"
        try:
            with open(out_path, "xb") as f:
                f.write(data)
            return out_path
        except FileExistsError:
            attempt += 1


def delete_case_files(exports_dir: str | Path) -> int:
    """Delete merged case files; returns how many were removed."""
    exports_dir = Path(exports_dir)
    if not exports_dir.is_dir():
        return 0

    removed = 0
    for path in exports_dir.glob(CASE_FILE_GLOB):
        path.unlink()
        removed += 1
    return removed
