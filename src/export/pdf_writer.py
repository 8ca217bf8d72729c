"""Minimal flowing-text PDF writer on top of PyMuPDF."""

from typing import Optional

import fitz  # PyMuPDF

A4_WIDTH, A4_HEIGHT = fitz.paper_size("a4")

FONT = "helv"
FONT_BOLD = "hebo"
FONT_MONO = "cour"
FOOTER_TEXT = "Sealed case record"


class PdfWriter:
    """Writes wrapped lines top to bottom, adding A4 pages as needed.

    Every page gets a small grey footer line.
    """

    def __init__(self, margin: float = 70, footer: Optional[str] = FOOTER_TEXT):
        self.margin = margin
        self.footer = footer
        self.doc = fitz.open()
        self.page = None
        self.y = 0.0
        self.new_page()

    @property
    def text_width(self) -> float:
        return A4_WIDTH - 2 * self.margin

    def new_page(self) -> None:
        self.page = self.doc.new_page(width=A4_WIDTH, height=A4_HEIGHT)
        self.y = self.margin
        if self.footer:
            self.page.insert_text(
                (30, A4_HEIGHT - 30), self.footer, fontname=FONT, fontsize=8, color=(0.6, 0.6, 0.6)
            )

    def heading(self, text: str, size: float = 18) -> None:
        self.text(text, size=size, font=FONT_BOLD)
        self.space(size * 0.6)

    def text(self, text: str, size: float = 11, font: str = FONT, indent: float = 0) -> None:
        """Write text, wrapping on word boundaries and breaking pages."""
        line_height = size * 1.35
        width = self.text_width - indent
        for paragraph in (text or "").split("\n"):
            for line in self._wrap(paragraph, width, size, font):
                if self.y + line_height > A4_HEIGHT - self.margin:
                    self.new_page()
                self.y += line_height
                self.page.insert_text(
                    (self.margin + indent, self.y), line, fontname=font, fontsize=size
                )

    def space(self, points: float) -> None:
        self.y += points

    def image(self, data: bytes, size: float) -> None:
        """Place a square image (PNG bytes) at the current position."""
        if self.y + size > A4_HEIGHT - self.margin:
            self.new_page()
        rect = fitz.Rect(self.margin, self.y, self.margin + size, self.y + size)
        self.page.insert_image(rect, stream=data)
        self.y += size

    def set_metadata(self, metadata: dict[str, str]) -> None:
        self.doc.set_metadata(metadata)

    def to_bytes(self) -> bytes:
        data = self.doc.tobytes(garbage=3, deflate=True)
        self.doc.close()
        return data

    @staticmethod
    def _wrap(paragraph: str, width: float, size: float, font: str) -> list[str]:
        words = paragraph.split()
        if not words:
            return [""]

        def fits(s: str) -> bool:
            return fitz.get_text_length(s, fontname=font, fontsize=size) <= width

        # Hard-split tokens wider than a line (digests, JSON values)
        pieces = []
        for word in words:
            while not fits(word) and len(word) > 1:
                cut = len(word) - 1
                while cut > 1 and not fits(word[:cut]):
                    cut -= 1
                pieces.append(word[:cut])
                word = word[cut:]
            pieces.append(word)

        lines = []
        current = ""
        for word in pieces:
            candidate = f"{current} {word}" if current else word
            if current and not fits(candidate):
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
        return lines
