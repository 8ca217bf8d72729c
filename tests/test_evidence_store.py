"""Tests for the evidence collection."""

from datetime import datetime, timedelta, timezone

import pytest

from src.evidence.fingerprint import sha512_hex
from src.ledger import EvidenceNotFoundError, ImmutableEvidenceError


def test_put_evidence_fingerprints_content(store):
    evidence = store.put_evidence(b"%PDF-1.4 body", "statement.pdf", "application/pdf")

    assert evidence.sha512 == sha512_hex(b"%PDF-1.4 body")
    assert evidence.size == len(b"%PDF-1.4 body")
    assert evidence.created_at.tzinfo is not None
    assert evidence.extracted_text is None


def test_put_evidence_uses_configured_defaults(store):
    evidence = store.put_evidence(b"x", "a.txt", "text/plain")
    assert evidence.jurisdiction == store.settings.case.jurisdiction
    assert evidence.timezone == store.settings.case.timezone


def test_get_evidence_round_trip(store):
    created = datetime(2024, 3, 1, 9, 30, tzinfo=timezone(timedelta(hours=4)))
    stored = store.put_evidence(
        b"\x00\x01binary",
        "photo.jpg",
        "image/jpeg",
        jurisdiction="UAE",
        timezone_name="Asia/Dubai",
        meta={"Make": "Canon"},
        created_at=created,
    )

    loaded = store.get_evidence(stored.id)

    assert loaded == stored
    assert loaded.content == b"\x00\x01binary"
    assert loaded.created_at == created


def test_same_content_gets_distinct_ids(store):
    first = store.put_evidence(b"same", "a.pdf", "application/pdf")
    second = store.put_evidence(b"same", "a.pdf", "application/pdf")
    assert first.id != second.id
    assert first.sha512 == second.sha512


def test_get_missing_evidence_returns_none(store):
    assert store.get_evidence("does-not-exist") is None


def test_list_evidence_in_ingest_order(store):
    names = ["one.pdf", "two.pdf", "three.pdf"]
    for name in names:
        store.put_evidence(name.encode(), name, "application/pdf")
    assert [e.name for e in store.list_evidence()] == names


def test_attach_extracted_text_once(store):
    evidence = store.put_evidence(b"scan", "scan.pdf", "application/pdf")

    updated = store.attach_extracted_text(evidence.id, "OCR text")
    assert updated.extracted_text == "OCR text"
    assert store.get_evidence(evidence.id).extracted_text == "OCR text"

    # Same text again is a no-op
    store.attach_extracted_text(evidence.id, "OCR text")

    with pytest.raises(ImmutableEvidenceError):
        store.attach_extracted_text(evidence.id, "different text")


def test_attach_text_to_missing_evidence(store):
    with pytest.raises(EvidenceNotFoundError):
        store.attach_extracted_text("missing", "text")


def test_update_rejects_content_change(store):
    evidence = store.put_evidence(b"original", "doc.pdf", "application/pdf")
    tampered = evidence.model_copy(update={"content": b"tampered"})

    with pytest.raises(ImmutableEvidenceError, match="content"):
        store.update_evidence(tampered)

    assert store.get_evidence(evidence.id).content == b"original"


def test_update_allows_meta(store):
    evidence = store.put_evidence(b"img", "a.png", "image/png")
    store.update_evidence(evidence.model_copy(update={"meta": {"GPS": "none"}}))
    assert store.get_evidence(evidence.id).meta == {"GPS": "none"}


def test_update_missing_evidence(store):
    evidence = store.put_evidence(b"x", "x.pdf", "application/pdf")
    with pytest.raises(EvidenceNotFoundError):
        store.update_evidence(evidence.model_copy(update={"id": "other"}))
