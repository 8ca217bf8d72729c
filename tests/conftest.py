"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.config_loader import Settings
from src.ledger import CaseStore
from src.schema import ReportDraft

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root() -> Path:
    """Return project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_path(project_root: Path) -> Path:
    """Return path to config.yaml."""
    return project_root / "config" / "config.yaml"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Default settings with every path inside tmp_path."""
    settings = Settings()
    settings.paths.database = str(tmp_path / "data" / "case_store.db")
    settings.paths.exports = str(tmp_path / "exports")
    settings.paths.logs = str(tmp_path / "logs")
    settings.contradictions.parallel_passes = False
    return settings


@pytest.fixture
def store(settings: Settings):
    """Empty case store in a temporary directory."""
    case_store = CaseStore(settings=settings)
    yield case_store
    case_store.close()


@pytest.fixture
def created_at() -> datetime:
    return datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def add_evidence(store, created_at):
    """Factory: store evidence with text and return it."""

    def _add(name: str, content: bytes, text: str | None = None, **kwargs):
        kwargs.setdefault("created_at", created_at)
        evidence = store.put_evidence(content, name, "application/pdf", **kwargs)
        if text is not None:
            evidence = store.attach_extracted_text(evidence.id, text)
        return evidence

    return _add


@pytest.fixture
def file_report(store):
    """Factory: append a report referencing the given evidence."""

    def _file(*evidence, title: str | None = None):
        return store.append_report(
            ReportDraft(
                title=title or f"Analysis of {evidence[0].name}",
                evidence_refs=[e.ref for e in evidence],
            )
        )

    return _file
