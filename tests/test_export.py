"""Tests for sealed report and case file exports."""

import io
import json
from datetime import datetime, timezone
from pathlib import Path

import fitz
import pytest
from PIL import Image

from src.analysis.verification import VERIFIED
from src.evidence.fingerprint import master_digest, sha512_hex
from src.export import (
    delete_case_files,
    render_case_file,
    render_sealed_report,
    seal_payload,
    seal_qr_png,
    seal_report,
    write_case_file,
)
from src.export import case_file
from src.export.case_file import certification_payload
from src.ledger import ReportNotFoundError
from src.schema import Finding, ReportDraft, TimelineEvent

SEALED_AT = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


def pdf_text(data: bytes) -> str:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc)


def pdf_subject(data: bytes) -> dict:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return json.loads(doc.metadata["subject"])


@pytest.fixture
def analysed(store, add_evidence):
    evidence = add_evidence("contract.pdf", b"contract bytes")
    report = store.append_report(
        ReportDraft(
            title="Analysis of contract.pdf",
            jurisdiction="SA",
            evidence_refs=[evidence.ref],
            findings=[Finding(title="Altered clause", rationale="Font differs", verification=VERIFIED)],
            timeline=[TimelineEvent(date="2024-01-02", event="Contract signed")],
        )
    )
    return report, evidence


def test_seal_payload_single_evidence(analysed):
    report, evidence = analysed
    payload = seal_payload(report, SEALED_AT)
    assert payload == {
        "reportId": report.id,
        "evidenceSha512": evidence.sha512,
        "timestamp": "2024-06-01T08:00:00+00:00",
        "jurisdiction": "SA",
    }


def test_seal_payload_several_evidence(store, add_evidence, file_report):
    a = add_evidence("a.pdf", b"a")
    b = add_evidence("b.pdf", b"b")
    report = file_report(a, b)
    assert seal_payload(report)["evidenceSha512"] == master_digest([a.sha512, b.sha512])


def test_sealed_report_content_and_metadata(analysed):
    report, evidence = analysed
    data = render_sealed_report(report, [evidence], SEALED_AT)

    text = pdf_text(data)
    assert "Analysis of contract.pdf" in text
    assert "Altered clause" in text
    assert "Verified (3/3)" in text
    assert evidence.sha512 in text.replace("\n", "").replace(" ", "")
    assert pdf_subject(data) == seal_payload(report, SEALED_AT)


def test_seal_page_carries_qr_code(analysed):
    report, evidence = analysed
    data = render_sealed_report(report, [evidence], SEALED_AT)

    with fitz.open(stream=data, filetype="pdf") as doc:
        seal_page = doc[-1]
        assert "Forensic Seal" in seal_page.get_text()
        assert len(seal_page.get_images()) == 1
        assert all(not page.get_images() for page in doc.pages(0, doc.page_count - 1))

    png = seal_qr_png(seal_payload(report, SEALED_AT))
    with Image.open(io.BytesIO(png)) as img:
        assert img.format == "PNG"
        assert img.width == img.height


def test_seal_report_records_pdf_digest(store, analysed):
    report, _ = analysed
    path = seal_report(store, report.id)

    assert path.parent == Path(store.settings.paths.exports)
    stored = store.get_report(report.id)
    assert stored.pdf_sha512 == sha512_hex(path.read_bytes())
    assert stored.chapter_index == report.chapter_index


def test_seal_unknown_report(store):
    with pytest.raises(ReportNotFoundError):
        seal_report(store, "missing")


def test_case_file_chapters_and_certification(store, analysed, add_evidence, file_report):
    file_report(add_evidence("email.eml", b"mail"), title="Analysis of email.eml")
    reports, evidence = store.get_all_indexed()

    data = render_case_file(reports, evidence, summary="Narrative of the case.", timestamp=SEALED_AT)

    text = pdf_text(data)
    assert "Case Narrative Summary" in text
    assert "Chapter 1: Analysis of contract.pdf" in text
    assert "Chapter 2: Analysis of email.eml" in text
    assert "2024-01-02: Contract signed" in text
    assert "Final Certification" in text

    payload = pdf_subject(data)
    assert payload == certification_payload(reports, evidence, SEALED_AT)
    assert payload["masterHash"] == master_digest(e.sha512 for e in evidence)
    assert payload["reportCount"] == 2


def test_case_file_needs_reports():
    with pytest.raises(ValueError):
        render_case_file([], [])


def test_write_and_delete_case_files(store, analysed):
    path = write_case_file(store)

    assert path.name.startswith("case_file_")
    assert path.read_bytes().startswith(b"%PDF")
    assert delete_case_files(store.settings.paths.exports) == 1
    assert not path.exists()


def test_case_file_in_same_second_is_not_overwritten(store, analysed, monkeypatch):
    class FrozenDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            return SEALED_AT

    monkeypatch.setattr(case_file, "datetime", FrozenDatetime)

    first = write_case_file(store, summary="First export")
    second = write_case_file(store, summary="Second export")

    assert first.name == "case_file_20240601T080000.pdf"
    assert second.name == "case_file_20240601T080000_2.pdf"
    assert "First export" in pdf_text(first.read_bytes())
    assert delete_case_files(store.settings.paths.exports) == 2


def test_delete_case_files_without_directory(tmp_path):
    assert delete_case_files(tmp_path / "missing") == 0
