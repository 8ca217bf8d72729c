"""Data schemas for evidence, reports, findings and contradictions."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.config_loader import Jurisdiction


VerificationTier = Literal["Verified (3/3)", "Consensus (2/3)", "Inconclusive (≤1/3)"]

ContradictionType = Literal["direct", "metadata_mismatch", "cross_doc_drift", "omission"]

SHA512_HEX_LENGTH = 128


class Evidence(BaseModel):
    """An immutable, content-addressed record of an uploaded artifact.

    Attributes:
        id: Opaque unique identifier (uuid4), assigned once at creation
        name: Original file name
        size: Content size in bytes
        type: Declared MIME type
        content: Raw bytes, owned exclusively by this record
        sha512: Hex SHA-512 digest of content
        created_at: Ingest timestamp (timezone-aware)
        jurisdiction: Legal jurisdiction tag
        timezone: IANA timezone name of the ingesting session
        meta: Free-form metadata (EXIF data, etc.)
        extracted_text: Text from PDF extraction or OCR, set once after ingest
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    size: int
    type: str
    content: bytes = Field(repr=False)
    sha512: str
    created_at: datetime
    jurisdiction: Jurisdiction = "Global"
    timezone: str = "UTC"
    meta: dict[str, Any] = Field(default_factory=dict)
    extracted_text: Optional[str] = None

    @field_validator("sha512")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Ensure digest is a 512-bit lowercase hex string."""
        if len(v) != SHA512_HEX_LENGTH or any(c not in "0123456789abcdef" for c in v):
            raise ValueError("sha512 must be 128 lowercase hex characters")
        return v

    @field_validator("created_at")
    @classmethod
    def validate_aware(cls, v: datetime) -> datetime:
        """Ensure creation timestamp carries a timezone."""
        if v.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")
        return v

    @property
    def ref(self) -> "EvidenceRef":
        """Reference to this evidence as recorded on a report."""
        return EvidenceRef(id=self.id, sha512=self.sha512)


class EvidenceRef(BaseModel):
    """Soft reference from a report to evidence, resolved at read time."""

    model_config = ConfigDict(frozen=True)

    id: str
    sha512: str


class Finding(BaseModel):
    """A finding with its chain of proof: trigger + source + rationale."""

    title: str
    trigger: str = ""
    source: str = ""
    rationale: str = ""
    verification: Optional[VerificationTier] = None


class Contradiction(BaseModel):
    """An inconsistency between evidence items or between content and metadata."""

    type: ContradictionType
    actor: Optional[str] = None
    claim_a: Optional[str] = None
    claim_b: Optional[str] = None
    sources: list[str] = Field(default_factory=list)
    explanation: str
    verification: VerificationTier

    def key(self) -> tuple[str, tuple[str, ...], str]:
        """De-duplication key, independent of source order."""
        return (self.type, tuple(sorted(self.sources)), self.explanation)


class TimelineEvent(BaseModel):
    """A dated event attributed to one or more evidence items."""

    date: str  # ISO 8601
    event: str
    sources: list[str] = Field(default_factory=list)


class BoundingBoxVertex(BaseModel):
    """Normalized (0.0-1.0) image coordinate."""

    x: float
    y: float


class Highlight(BaseModel):
    """Links a finding (1-based index) to a region of image evidence."""

    finding_index: int
    bounding_box: list[BoundingBoxVertex] = Field(default_factory=list)

    @field_validator("finding_index")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Ensure finding index is 1-based."""
        if v < 1:
            raise ValueError("finding_index must be >= 1")
        return v


class ReportDraft(BaseModel):
    """Caller-supplied part of a report; the ledger assigns the rest."""

    title: str
    jurisdiction: Jurisdiction = "Global"
    timezone: str = "UTC"
    evidence_refs: list[EvidenceRef] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    contradictions: list[Contradiction] = Field(default_factory=list)
    timeline: list[TimelineEvent] = Field(default_factory=list)
    raw_html_report: Optional[str] = None
    highlights: list[Highlight] = Field(default_factory=list)


class Report(ReportDraft):
    """A report placed at a fixed chapter position in the case ledger.

    Attributes:
        id: Unique identifier (uuid4)
        chapter_index: Strictly increasing position, starting at 1
        created_at: Append timestamp
        updated_at: Refreshed on structural edits
        pdf_sha512: Digest of the last sealed export, if any
    """

    id: str
    chapter_index: int
    created_at: datetime
    updated_at: datetime
    pdf_sha512: Optional[str] = None

    @field_validator("chapter_index")
    @classmethod
    def validate_chapter(cls, v: int) -> int:
        """Ensure chapter numbers are positive."""
        if v < 1:
            raise ValueError("chapter_index must be >= 1")
        return v


class ReportIndex(BaseModel):
    """Singleton ordering record of the ledger.

    Serialized with the camelCase key ``lastChapterIndex`` to match the
    persisted meta record layout.
    """

    model_config = ConfigDict(populate_by_name=True)

    order: list[str] = Field(default_factory=list)
    last_chapter_index: int = Field(default=0, alias="lastChapterIndex")

    def to_record(self) -> dict[str, Any]:
        """Serialize for the meta collection."""
        return self.model_dump(by_alias=True)
