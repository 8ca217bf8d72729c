"""Contradiction detection, verification tiers and the analysis oracle."""

from src.analysis.contradiction_engine import (
    ContradictionEngine,
    InsufficientSelectionError,
    analyze_selection,
    evidence_in_scope,
)
from src.analysis.verification import (
    CONSENSUS,
    INCONCLUSIVE,
    VERIFICATION_PASSES,
    VERIFIED,
    classify,
)

__all__ = [
    "ContradictionEngine",
    "InsufficientSelectionError",
    "analyze_selection",
    "evidence_in_scope",
    "classify",
    "VERIFICATION_PASSES",
    "VERIFIED",
    "CONSENSUS",
    "INCONCLUSIVE",
]
