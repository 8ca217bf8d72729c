"""Tests for text extraction and the OCR fallback."""

import io

import fitz
import pytest
import pytesseract
from PIL import Image

from src.ingestion.text_extraction import ExtractionError, TextExtractor


def make_pdf(text: str = "") -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    if text:
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def extractor(settings):
    return TextExtractor(settings)


def test_plain_text_is_decoded(extractor):
    assert extractor.extract_text("Grüße".encode("utf-8"), "text/plain") == "Grüße"


def test_pdf_text_layer(extractor):
    text = extractor.extract_text(make_pdf("Witness statement of J. Doe"), "application/pdf")
    assert "Witness statement of J. Doe" in text


def test_corrupt_pdf_raises_extraction_error(extractor):
    with pytest.raises(ExtractionError):
        extractor.extract_text(b"this is not a pdf at all", "application/pdf")
    with pytest.raises(ExtractionError):
        extractor.run_ocr(b"this is not a pdf at all", "application/pdf")


def test_unknown_type_has_no_text(extractor):
    assert extractor.extract_text(b"\x00\x01", "application/octet-stream") == ""


def test_needs_ocr_threshold(extractor):
    assert extractor.needs_ocr("")
    assert extractor.needs_ocr("   short   \n")
    assert extractor.needs_ocr("x" * 99)
    assert not extractor.needs_ocr("x" * 100)


def test_can_ocr(extractor):
    assert extractor.can_ocr("application/pdf")
    assert extractor.can_ocr("image/jpeg")
    assert not extractor.can_ocr("text/plain")


def test_ocr_image(extractor, monkeypatch):
    calls = []

    def fake_ocr(img, lang):
        calls.append((img.size, lang))
        return " Recovered text \n"

    monkeypatch.setattr(pytesseract, "image_to_string", fake_ocr)

    assert extractor.run_ocr(make_png(), "image/png") == "Recovered text"
    assert calls == [((40, 20), "eng")]


def test_ocr_pdf_renders_every_page(extractor, monkeypatch):
    doc = fitz.open()
    doc.new_page()
    doc.new_page()
    data = doc.tobytes()
    doc.close()

    pages = iter(["page one", "page two"])
    monkeypatch.setattr(pytesseract, "image_to_string", lambda img, lang: next(pages))

    assert extractor.run_ocr(data, "application/pdf") == "page one\n\npage two"


def test_ocr_rejects_other_types(extractor):
    with pytest.raises(ValueError):
        extractor.run_ocr(b"text", "text/plain")
