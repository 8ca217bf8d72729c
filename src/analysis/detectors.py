"""Deterministic contradiction detectors.

Each detector looks at the evidence in scope and returns raw contradictions
(no verification tier yet). Explanations are built only from canonical
values (sorted pairs, ISO dates) so the same facts always produce the same
text, whatever order the evidence arrived in.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.schema import ContradictionType, Evidence

logger = logging.getLogger(__name__)

EXTENSION_RE = re.compile(r"\.[^/.]+$")

# MM/DD/YYYY and YYYY-MM-DD
US_DATE_RE = re.compile(r"\b(0?[1-9]|1[0-2])/(0?[1-9]|[12][0-9]|3[01])/(\d{4})\b")
ISO_DATE_RE = re.compile(r"\b(\d{4})-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])\b")

REFERENCE_KEYWORDS = ("see", "ref", "reference", "attachment", "exhibit")


@dataclass(frozen=True)
class RawContradiction:
    """A contradiction as emitted by a single detector pass."""

    type: ContradictionType
    sources: tuple[str, ...]
    explanation: str
    claim_a: Optional[str] = None
    claim_b: Optional[str] = None
    actor: Optional[str] = field(default=None)

    @property
    def key(self) -> tuple[str, tuple[str, ...], str]:
        return (self.type, tuple(sorted(self.sources)), self.explanation)


def normalize_name(name: str) -> str:
    """File name without its last extension, case-folded."""
    return EXTENSION_RE.sub("", name).casefold()


def has_text(evidence: Evidence) -> bool:
    return bool(evidence.extracted_text and evidence.extracted_text.strip())


# ----------------------------------------------------------------------#
# Cross-document drift
# ----------------------------------------------------------------------#
def detect_cross_document_drift(scope: Sequence[Evidence]) -> list[RawContradiction]:
    """Similar file names whose content digests differ."""
    found = []
    for i, first in enumerate(scope):
        for second in scope[i + 1:]:
            name_a = normalize_name(first.name)
            name_b = normalize_name(second.name)
            if not name_a or not name_b or name_a == name_b:
                continue
            if name_a not in name_b and name_b not in name_a:
                continue
            if first.sha512 == second.sha512:
                continue

            a, b = sorted((first, second), key=lambda e: (normalize_name(e.name), e.id))
            found.append(
                RawContradiction(
                    type="cross_doc_drift",
                    sources=(a.id, b.id),
                    explanation=(
                        f"Two files with similar names ('{a.name}', '{b.name}') have "
                        "different content hashes, indicating a possible version "
                        "mismatch or alteration."
                    ),
                    claim_a=f'Evidence named "{a.name}"',
                    claim_b=f'Evidence named "{b.name}"',
                )
            )
    return found


# ----------------------------------------------------------------------#
# Metadata mismatch
# ----------------------------------------------------------------------#
def extract_dates(text: str) -> list[date]:
    """Calendar dates mentioned in text, sorted and de-duplicated.

    Matches that are not real dates (e.g. 02/31/2024) are ignored.
    """
    dates: set[date] = set()
    for match in US_DATE_RE.finditer(text):
        month, day, year = (int(g) for g in match.groups())
        _add_date(dates, year, month, day)
    for match in ISO_DATE_RE.finditer(text):
        year, month, day = (int(g) for g in match.groups())
        _add_date(dates, year, month, day)
    return sorted(dates)


def _add_date(dates: set[date], year: int, month: int, day: int) -> None:
    try:
        dates.add(date(year, month, day))
    except ValueError:
        pass


def _zone(evidence: Evidence):
    try:
        return ZoneInfo(evidence.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{evidence.timezone}' on {evidence.id}, using UTC")
        return ZoneInfo("UTC")


def detect_metadata_mismatch(scope: Sequence[Evidence]) -> list[RawContradiction]:
    """Content mentioning a date later than the evidence's own creation time."""
    found = []
    for evidence in scope:
        if not has_text(evidence):
            continue
        zone = _zone(evidence)
        created_on = evidence.created_at.astimezone(zone).date()
        for mentioned in extract_dates(evidence.extracted_text):
            # Start of the mentioned day in the evidence's timezone
            if datetime.combine(mentioned, time.min, tzinfo=zone) <= evidence.created_at:
                continue
            found.append(
                RawContradiction(
                    type="metadata_mismatch",
                    sources=(evidence.id,),
                    explanation=(
                        f"The document content mentions a future date ({mentioned.isoformat()}) "
                        f"relative to its creation date ({created_on.isoformat()})."
                    ),
                    claim_a=f"File created: {created_on.isoformat()}",
                    claim_b=f"Content mentions: {mentioned.isoformat()}",
                )
            )
    return found


# ----------------------------------------------------------------------#
# Omission
# ----------------------------------------------------------------------#
def reference_pattern(max_token: int = 10) -> re.Pattern:
    """Reference keyword followed by a candidate exhibit token.

    The token sits in a lookahead so chained keywords ("see exhibit A-7")
    each get a match.
    """
    keywords = "|".join(sorted(REFERENCE_KEYWORDS, key=len, reverse=True))
    return re.compile(
        rf"(?i)\b(?:{keywords})\s+(?=([A-Z0-9-]{{1,{max_token}}})(?![\w-]))"
    )


def is_exhibit_token(token: str) -> bool:
    """Digits or a hyphen anywhere, or written in capitals ("A", "B-2", "a-7", "12").

    Plain lowercase words ("the", "above") and the keywords themselves are not
    exhibit labels.
    """
    if token.casefold() in REFERENCE_KEYWORDS or not any(ch.isalnum() for ch in token):
        return False
    return any(ch.isdigit() or ch == "-" for ch in token) or token.isupper()


def extract_references(text: str, max_token: int = 10) -> list[str]:
    """Exhibit tokens referenced in text, in first-seen order, without repeats.

    Matching ignores case; the first spelling of a token is kept.
    """
    tokens: list[str] = []
    seen: set[str] = set()
    for match in reference_pattern(max_token).finditer(text):
        token = match.group(1)
        if not is_exhibit_token(token) or token.casefold() in seen:
            continue
        seen.add(token.casefold())
        tokens.append(token)
    return tokens


def detect_omissions(scope: Sequence[Evidence], max_token: int = 10) -> list[RawContradiction]:
    """References to exhibits that no evidence in scope is named after."""
    names = [e.name.casefold() for e in scope]
    found = []
    for evidence in scope:
        if not has_text(evidence):
            continue
        for token in extract_references(evidence.extracted_text, max_token):
            needle = token.casefold()
            if any(needle in name for name in names):
                continue
            found.append(
                RawContradiction(
                    type="omission",
                    sources=(evidence.id,),
                    explanation=(
                        f'Document "{evidence.name}" references an exhibit or attachment '
                        f'"{token}" which was not found in the provided evidence set.'
                    ),
                    claim_a=f'Reference to "{token}"',
                    claim_b="Evidence not provided",
                )
            )
    return found
