"""Evidence intake pipeline: fingerprint, store, extract text, analyze, file report."""

import io
import mimetypes
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytesseract
from loguru import logger
from PIL import ExifTags, Image, UnidentifiedImageError

from src.analysis.oracle import MSG_INCONCLUSIVE, AnalysisOracle
from src.config_loader import Jurisdiction, Settings, get_settings
from src.ingestion.text_extraction import ExtractionError, TextExtractor
from src.ledger import CaseStore, CaseStoreError
from src.schema import Evidence, Report, ReportDraft


LOG_FILE_NAME = "ingestion.log"


def configure_logging(log_dir: str | Path) -> Path:
    """Send pipeline logs to stderr (INFO) and a rotating file (DEBUG).

    Returns:
        Path of the log file
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="INFO",
    )
    logger.add(
        log_file,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        level="DEBUG",
        rotation="10 MB",
        retention="7 days",
    )
    return log_file


MSG_OCR_FAILED = "Local OCR failed. Please try a clearer document."
MSG_UNREADABLE = "Evidence stored, but the file could not be read for analysis."
DEFAULT_MIME = "application/octet-stream"


@dataclass
class IngestionOutcome:
    """What happened to one file.

    Attributes:
        evidence: The stored evidence (always present once stored)
        report: The filed analysis report, or None
        message: Human-readable status line
    """

    evidence: Evidence
    report: Optional[Report]
    message: str


def guess_mime_type(file_path: Path) -> str:
    mime, _ = mimetypes.guess_type(file_path.name)
    return mime or DEFAULT_MIME


def image_meta(content: bytes) -> dict:
    """EXIF tags of an image as strings, {} if there are none."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            exif = img.getexif()
            return {
                ExifTags.TAGS.get(tag, str(tag)): str(value)
                for tag, value in exif.items()
            }
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"No EXIF data: {e}")
        return {}


class IngestionPipeline:
    """Pipeline that turns files into evidence records and analysis reports.

    Steps per file: read bytes, fingerprint and store, extract text (OCR for
    scans), attach text, corroborate with the oracle, append the report.
    """

    def __init__(
        self,
        store: CaseStore,
        extractor: Optional[TextExtractor] = None,
        oracle: Optional[AnalysisOracle] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize pipeline.

        Args:
            store: Case store receiving evidence and reports
            extractor: Text extractor. If None, built from settings.
            oracle: Analysis oracle. If None and the oracle is enabled,
                    built from the runtime provider config.
            settings: Settings instance. If None, uses the store's settings.
        """
        self.store = store
        self.settings = settings or store.settings or get_settings()
        self.extractor = extractor or TextExtractor(self.settings)
        if oracle is None and self.settings.oracle.enabled:
            oracle = AnalysisOracle(settings=self.settings)
        self.oracle = oracle

    def ingest_file(
        self,
        file_path: str | Path,
        jurisdiction: Optional[Jurisdiction] = None,
        timezone_name: Optional[str] = None,
    ) -> IngestionOutcome:
        """Ingest one file end to end.

        Args:
            file_path: Path to the artifact
            jurisdiction: Override the configured default jurisdiction
            timezone_name: Override the configured default timezone

        Returns:
            IngestionOutcome. When analysis is inconclusive the evidence stays
            stored and no report is filed.

        Raises:
            OSError: If the file cannot be read
            CaseStoreError: If the store rejects a write
        """
        file_path = Path(file_path)
        content = file_path.read_bytes()
        mime = guess_mime_type(file_path)
        meta = image_meta(content) if mime.startswith("image/") else {}

        logger.info(f"[1/4] Storing {file_path.name} ({mime}, {len(content)} bytes)")
        evidence = self.store.put_evidence(
            content,
            file_path.name,
            mime,
            jurisdiction=jurisdiction,
            timezone_name=timezone_name,
            meta=meta,
        )
        logger.debug(f"SHA-512 {evidence.sha512}")

        logger.info(f"[2/4] Extracting text from {file_path.name}...")
        try:
            text = self.extractor.extract_text(content, mime)
        except ExtractionError as e:
            logger.exception(f"Could not read {file_path.name}: {e}")
            return IngestionOutcome(evidence=evidence, report=None, message=MSG_UNREADABLE)

        if (
            self.settings.ocr.enabled
            and self.extractor.can_ocr(mime)
            and self.extractor.needs_ocr(text)
        ):
            logger.info(f"{file_path.name} looks like a scan, running OCR")
            try:
                text = self.extractor.run_ocr(content, mime)
            except (
                pytesseract.TesseractError,
                pytesseract.TesseractNotFoundError,
                ExtractionError,
                OSError,
            ) as e:
                logger.exception(f"OCR failed for {file_path.name}: {e}")
                return IngestionOutcome(evidence=evidence, report=None, message=MSG_OCR_FAILED)

        if text.strip():
            evidence = self.store.attach_extracted_text(evidence.id, text)

        if self.oracle is None:
            logger.info(f"[3/4] Oracle disabled, skipping analysis of {file_path.name}")
            return IngestionOutcome(evidence=evidence, report=None, message="Evidence stored.")

        logger.info(f"[3/4] Corroborating analysis of {file_path.name}...")
        analysis = self.oracle.corroborate(evidence)
        if analysis is None:
            logger.warning(f"Analysis of {file_path.name} was inconclusive, no report filed")
            return IngestionOutcome(evidence=evidence, report=None, message=MSG_INCONCLUSIVE)

        logger.info(f"[4/4] Filing report ({analysis.tier}, {len(analysis.findings)} findings)")
        report = self.store.append_report(
            ReportDraft(
                title=f"Analysis of {evidence.name}",
                jurisdiction=evidence.jurisdiction,
                timezone=evidence.timezone,
                evidence_refs=[evidence.ref],
                findings=analysis.findings,
                raw_html_report=analysis.report_html,
                highlights=analysis.highlights,
            )
        )
        logger.success(f"Filed chapter {report.chapter_index}: {report.title}")
        return IngestionOutcome(evidence=evidence, report=report, message=analysis.intro)

    def ingest_files(self, file_paths: list[str | Path], **kwargs) -> list[IngestionOutcome]:
        """Ingest several files in order, logging and skipping failures."""
        outcomes = []
        for file_path in file_paths:
            try:
                outcomes.append(self.ingest_file(file_path, **kwargs))
            except (OSError, CaseStoreError) as e:
                logger.exception(f"Failed to ingest {file_path}: {e}")

        logger.info(f"Ingested {len(outcomes)}/{len(file_paths)} files")
        return outcomes

    def ingest_folder(
        self, folder_path: str | Path, recursive: bool = True, **kwargs
    ) -> list[IngestionOutcome]:
        """Batch ingest every file in a folder.

        Args:
            folder_path: Folder containing evidence
            recursive: If True, process subdirectories recursively

        Returns:
            Outcomes of the files that were ingested
        """
        folder_path = Path(folder_path)
        if not folder_path.is_dir():
            logger.error(f"Folder not found or not a directory: {folder_path}")
            return []

        files = folder_path.rglob("*") if recursive else folder_path.glob("*")
        files = sorted(f for f in files if f.is_file())
        logger.info(f"Found {len(files)} files in {folder_path}")
        return self.ingest_files(files, **kwargs)
