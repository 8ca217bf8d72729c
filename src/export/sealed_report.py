"""Sealed single-report PDF.

The seal is a JSON payload binding the report id to the evidence digest, a
timestamp and the jurisdiction. The last page carries it as a QR code and as
printed text, and the PDF metadata (``subject``) holds a copy so it can be
checked without parsing the page.
"""

import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import qrcode
from qrcode.image.pil import PilImage

from src.evidence.fingerprint import master_digest, sha512_hex
from src.export.pdf_writer import FONT_BOLD, FONT_MONO, PdfWriter
from src.ledger.errors import ReportNotFoundError
from src.schema import Evidence, Report

logger = logging.getLogger(__name__)

PRODUCER = "case-ledger"
QR_SIZE = 160  # points


def evidence_digest(report: Report) -> str:
    """Digest sealed for a report: the single evidence hash, or the master hash of several."""
    digests = [ref.sha512 for ref in report.evidence_refs]
    if len(digests) == 1:
        return digests[0]
    return master_digest(digests)


def seal_payload(report: Report, timestamp: Optional[datetime] = None) -> dict[str, str]:
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "reportId": report.id,
        "evidenceSha512": evidence_digest(report),
        "timestamp": timestamp.isoformat(),
        "jurisdiction": report.jurisdiction,
    }


def seal_qr_png(payload: dict[str, str]) -> bytes:
    """QR code (PNG) encoding the compact JSON seal payload."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M, border=2, image_factory=PilImage
    )
    qr.add_data(json.dumps(payload, separators=(",", ":")))
    qr.make(fit=True)
    buf = io.BytesIO()
    qr.make_image().save(buf, format="PNG")
    return buf.getvalue()


def render_sealed_report(
    report: Report,
    evidence: Sequence[Evidence] = (),
    timestamp: Optional[datetime] = None,
) -> bytes:
    """Render one report as a sealed PDF.

    Args:
        report: Report to render
        evidence: Evidence referenced by the report (names are listed when present)
        timestamp: Seal time (default: now, UTC)

    Returns:
        PDF bytes
    """
    payload = seal_payload(report, timestamp)
    names = {e.id: e.name for e in evidence}

    pdf = PdfWriter()
    pdf.heading(report.title, size=16)
    pdf.text(f"Chapter {report.chapter_index} | Jurisdiction: {report.jurisdiction}", size=10)
    pdf.text(f"Created: {report.created_at.isoformat()} ({report.timezone})", size=10)
    pdf.space(14)

    if report.findings:
        pdf.heading("Key Findings", size=14)
        for i, finding in enumerate(report.findings, 1):
            tier = f" ({finding.verification})" if finding.verification else ""
            pdf.text(f"{i}. {finding.title}{tier}", font=FONT_BOLD)
            if finding.trigger:
                pdf.text(f"Trigger: {finding.trigger}", size=10, indent=10)
            if finding.source:
                pdf.text(f"Source: {finding.source}", size=10, indent=10)
            if finding.rationale:
                pdf.text(f"Rationale: {finding.rationale}", size=10, indent=10)
            pdf.space(8)

    if report.contradictions:
        pdf.heading("Contradictions", size=14)
        for contradiction in report.contradictions:
            pdf.text(f"{contradiction.type} ({contradiction.verification})", font=FONT_BOLD)
            pdf.text(contradiction.explanation, size=10, indent=10)
            pdf.space(8)

    if report.timeline:
        pdf.heading("Timeline", size=14)
        for event in report.timeline:
            pdf.text(f"{event.date}: {event.event}", size=10)

    pdf.new_page()
    pdf.heading("Forensic Seal", size=16)
    for ref in report.evidence_refs:
        pdf.text(names.get(ref.id, ref.id), size=10)
        pdf.text(f"SHA-512: {ref.sha512}", size=8, font=FONT_MONO, indent=10)
    pdf.space(14)
    pdf.image(seal_qr_png(payload), QR_SIZE)
    pdf.space(10)
    pdf.text("Seal payload:", size=10)
    pdf.text(json.dumps(payload, indent=2), size=8, font=FONT_MONO)

    pdf.set_metadata(
        {
            "title": report.title,
            "subject": json.dumps(payload),
            "keywords": payload["evidenceSha512"],
            "creator": PRODUCER,
            "producer": PRODUCER,
        }
    )
    return pdf.to_bytes()


def seal_report(store, report_id: str, exports_dir: Optional[str | Path] = None) -> Path:
    """Render a stored report, write it to the exports directory and record its digest.

    Raises:
        ReportNotFoundError: If the report is not in the ledger
    """
    report = store.get_report(report_id)
    if report is None:
        raise ReportNotFoundError(f"Report not found: {report_id}")

    evidence = [e for ref in report.evidence_refs if (e := store.get_evidence(ref.id))]
    data = render_sealed_report(report, evidence)

    exports_dir = Path(exports_dir or store.settings.paths.exports)
    exports_dir.mkdir(parents=True, exist_ok=True)
    out_path = exports_dir / f"report_{report.chapter_index:04d}_{report.id[:8]}.pdf"
    out_path.write_bytes(data)

    store.update_report(report.model_copy(update={"pdf_sha512": sha512_hex(data)}))
    logger.info(f"Sealed chapter {report.chapter_index} to {out_path}")
    return out_path
