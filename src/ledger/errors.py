"""Exceptions raised by the case store."""


class CaseStoreError(Exception):
    """Base class for case store failures."""


class StorageError(CaseStoreError):
    """Durable storage failed; the operation was rolled back."""


class EvidenceNotFoundError(CaseStoreError):
    """No evidence record exists for the given id."""


class ReportNotFoundError(CaseStoreError):
    """No indexed report exists for the given id."""


class ImmutableEvidenceError(CaseStoreError):
    """An update tried to change a write-once evidence field."""


class ImmutableReportError(CaseStoreError):
    """An update tried to change a fixed report field."""
