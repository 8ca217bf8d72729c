"""Tests for the individual contradiction detectors."""

import uuid
from datetime import date, datetime, timezone

from src.analysis.detectors import (
    detect_cross_document_drift,
    detect_metadata_mismatch,
    detect_omissions,
    extract_dates,
    extract_references,
    normalize_name,
)
from src.evidence.fingerprint import sha512_hex
from src.schema import Evidence

CREATED = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_evidence(name, content=None, text=None, created_at=CREATED, tz="UTC"):
    content = content if content is not None else name.encode()
    return Evidence(
        id=str(uuid.uuid4()),
        name=name,
        size=len(content),
        type="application/pdf",
        content=content,
        sha512=sha512_hex(content),
        created_at=created_at,
        timezone=tz,
        extracted_text=text,
    )


# ---------------------------------------------------------------------------
# Cross-document drift
# ---------------------------------------------------------------------------
def test_normalize_name():
    assert normalize_name("Statement.PDF") == "statement"
    assert normalize_name("archive.tar.gz") == "archive.tar"
    assert normalize_name(".pdf") == ""


def test_similar_names_with_different_digests_drift():
    a = make_evidence("statement.pdf", b"version one")
    b = make_evidence("statement_v2.pdf", b"version two")

    found = detect_cross_document_drift([a, b])

    assert len(found) == 1
    assert set(found[0].sources) == {a.id, b.id}
    assert "'statement.pdf', 'statement_v2.pdf'" in found[0].explanation


def test_drift_explanation_does_not_depend_on_order():
    a = make_evidence("statement.pdf", b"version one")
    b = make_evidence("statement_v2.pdf", b"version two")
    assert detect_cross_document_drift([a, b]) == detect_cross_document_drift([b, a])


def test_identical_digests_do_not_drift():
    a = make_evidence("statement.pdf", b"same")
    b = make_evidence("statement_v2.pdf", b"same")
    assert detect_cross_document_drift([a, b]) == []


def test_equal_or_unrelated_names_do_not_drift():
    same_name = [make_evidence("invoice.pdf", b"1"), make_evidence("INVOICE.png", b"2")]
    unrelated = [make_evidence("invoice.pdf", b"1"), make_evidence("contract.pdf", b"2")]
    assert detect_cross_document_drift(same_name) == []
    assert detect_cross_document_drift(unrelated) == []


# ---------------------------------------------------------------------------
# Metadata mismatch
# ---------------------------------------------------------------------------
def test_extract_dates_both_formats():
    text = "Signed 01/15/2024, amended 2024-02-01, again 1/15/2024. Bad: 02/31/2024"
    assert extract_dates(text) == [date(2024, 1, 15), date(2024, 2, 1)]


def test_date_after_creation_is_mismatch():
    evidence = make_evidence("memo.pdf", text="The meeting on 2024-01-11 was cancelled.")

    found = detect_metadata_mismatch([evidence])

    assert len(found) == 1
    assert found[0].sources == (evidence.id,)
    assert "(2024-01-11)" in found[0].explanation
    assert "(2024-01-10)" in found[0].explanation


def test_date_on_or_before_creation_is_not_mismatch():
    evidence = make_evidence("memo.pdf", text="Written 01/10/2024 about events of 2024-01-09.")
    assert detect_metadata_mismatch([evidence]) == []


def test_mismatch_uses_evidence_timezone():
    # 23:30 UTC on Jan 10 is already Jan 11 in Dubai
    created = datetime(2024, 1, 10, 23, 30, tzinfo=timezone.utc)
    evidence = make_evidence("memo.pdf", text="Dated 2024-01-11", created_at=created, tz="Asia/Dubai")
    assert detect_metadata_mismatch([evidence]) == []


def test_unknown_timezone_falls_back_to_utc():
    evidence = make_evidence("memo.pdf", text="Dated 2024-01-11", tz="Mars/Olympus")
    assert len(detect_metadata_mismatch([evidence])) == 1


def test_evidence_without_text_is_skipped():
    assert detect_metadata_mismatch([make_evidence("scan.pdf", text="   ")]) == []


# ---------------------------------------------------------------------------
# Omission
# ---------------------------------------------------------------------------
def test_extract_references():
    text = "See Exhibit A-7 and attachment 12. Please see the appendix. Ref B-2, ref B-2."
    assert extract_references(text) == ["A-7", "12", "B-2"]


def test_missing_exhibit_is_omission():
    evidence = make_evidence("brief.pdf", text="As shown in Exhibit A-7, the funds moved.")

    found = detect_omissions([evidence, make_evidence("other.pdf")])

    assert len(found) == 1
    assert '"A-7"' in found[0].explanation
    assert found[0].claim_b == "Evidence not provided"


def test_present_exhibit_is_not_omission():
    brief = make_evidence("brief.pdf", text="As shown in Exhibit A-7, the funds moved.")
    exhibit = make_evidence("Exhibit_a-7_bank.pdf")
    assert detect_omissions([brief, exhibit]) == []


def test_token_length_limit():
    evidence = make_evidence("brief.pdf", text="See ABCDEFGHIJKLMNOP")
    assert detect_omissions([evidence], max_token=10) == []


def test_lowercase_reference_is_matched():
    assert extract_references("see exhibit a-7 for details") == ["a-7"]
    assert extract_references("per attachment b2 and Exhibit A-7, see exhibit a-7") == ["b2", "A-7"]


def test_lowercase_missing_exhibit_is_omission():
    brief = make_evidence("brief.pdf", text="the ledger (see exhibit a-7) was altered")

    found = detect_omissions([brief, make_evidence("other.pdf")])

    assert len(found) == 1
    assert '"a-7"' in found[0].explanation


def test_plain_words_after_keyword_are_not_exhibits():
    text = "See the appendix, see above, reference material, see - and see exhibit."
    assert extract_references(text) == []
    assert extract_references("See Exhibit B") == ["B"]
