"""Multi-pass contradiction engine with consensus tiering.

Every pass shuffles the reports and evidence and runs all detectors. Results
are reduced through an order-independent key (type, sorted sources,
explanation); the number of passes that produced a key decides its tier.
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from src.analysis.detectors import (
    RawContradiction,
    detect_cross_document_drift,
    detect_metadata_mismatch,
    detect_omissions,
)
from src.analysis.verification import VERIFICATION_PASSES, classify
from src.config_loader import Jurisdiction, Settings, get_settings
from src.schema import Contradiction, Evidence, Report, ReportDraft

logger = logging.getLogger(__name__)


class InsufficientSelectionError(ValueError):
    """Fewer than two reports match the evidence selected for analysis."""


def evidence_in_scope(reports: Sequence[Report], evidence: Sequence[Evidence]) -> list[Evidence]:
    """Unique evidence referenced by the reports, in reference order.

    References that do not resolve to a record in ``evidence`` are skipped.
    """
    by_id = {e.id: e for e in evidence}
    scope: list[Evidence] = []
    seen: set[str] = set()
    for report in reports:
        for ref in report.evidence_refs:
            found = by_id.get(ref.id)
            if found is not None and found.id not in seen:
                seen.add(found.id)
                scope.append(found)
    return scope


class ContradictionEngine:
    """Runs the detectors several times and classifies agreement."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        seed: Optional[int] = None,
    ):
        """Initialize engine.

        Args:
            settings: Settings instance. If None, loads from config.
            seed: Seed for the pass shuffles (None = fresh randomness)
        """
        self.settings = settings or get_settings()
        self.passes = VERIFICATION_PASSES
        self._rng = random.Random(seed)

    def analyze(
        self, reports: Sequence[Report], evidence: Sequence[Evidence]
    ) -> list[Contradiction]:
        """Detect contradictions across the evidence referenced by reports.

        Returns:
            One contradiction per unique key, sorted by key. Empty when fewer
            than two evidence items are in scope.
        """
        if len(evidence_in_scope(reports, evidence)) < 2:
            return []

        pass_seeds = [self._rng.getrandbits(64) for _ in range(self.passes)]
        if self.settings.contradictions.parallel_passes:
            with ThreadPoolExecutor(max_workers=self.passes) as executor:
                results = list(
                    executor.map(lambda s: self.run_pass(reports, evidence, s), pass_seeds)
                )
        else:
            results = [self.run_pass(reports, evidence, s) for s in pass_seeds]

        contradictions = self.reduce(results)
        logger.info(
            f"Contradiction analysis over {len(reports)} reports: "
            f"{len(contradictions)} unique findings from {self.passes} passes"
        )
        return contradictions

    def run_pass(
        self,
        reports: Sequence[Report],
        evidence: Sequence[Evidence],
        seed: int,
    ) -> list[RawContradiction]:
        """One detector pass over shuffled copies of the inputs.

        Each key appears at most once per pass.
        """
        rng = random.Random(seed)
        shuffled_reports = list(reports)
        shuffled_evidence = list(evidence)
        rng.shuffle(shuffled_reports)
        rng.shuffle(shuffled_evidence)

        scope = evidence_in_scope(shuffled_reports, shuffled_evidence)
        max_token = self.settings.contradictions.max_reference_token

        unique: dict[tuple, RawContradiction] = {}
        for found in (
            detect_cross_document_drift(scope)
            + detect_metadata_mismatch(scope)
            + detect_omissions(scope, max_token)
        ):
            unique.setdefault(found.key, found)
        return list(unique.values())

    @staticmethod
    def reduce(pass_results: Sequence[Sequence[RawContradiction]]) -> list[Contradiction]:
        """Collapse pass results by key and attach verification tiers."""
        counts: dict[tuple, int] = {}
        first_seen: dict[tuple, RawContradiction] = {}
        for results in pass_results:
            for raw in results:
                counts[raw.key] = counts.get(raw.key, 0) + 1
                first_seen.setdefault(raw.key, raw)

        contradictions = []
        for key in sorted(counts):
            raw = first_seen[key]
            contradictions.append(
                Contradiction(
                    type=raw.type,
                    actor=raw.actor,
                    claim_a=raw.claim_a,
                    claim_b=raw.claim_b,
                    sources=list(key[1]),
                    explanation=raw.explanation,
                    verification=classify(counts[key]),
                )
            )
        return contradictions


def analyze_selection(
    store,
    evidence_ids: set[str],
    jurisdiction: Jurisdiction,
    timezone_name: str,
    engine: Optional[ContradictionEngine] = None,
) -> Report:
    """Analyze reports covering the selected evidence and file the result.

    Args:
        store: CaseStore to read from and append to
        evidence_ids: Evidence chosen by the user
        jurisdiction: Jurisdiction of the new report
        timezone_name: Timezone of the new report
        engine: Engine to use (default: one built from the store's settings)

    Returns:
        The appended contradiction report

    Raises:
        InsufficientSelectionError: If fewer than two reports reference the selection
    """
    engine = engine or ContradictionEngine(settings=store.settings)
    reports, evidence = store.get_all_indexed()
    selected = [r for r in reports if any(ref.id in evidence_ids for ref in r.evidence_refs)]
    if len(selected) < 2:
        raise InsufficientSelectionError(
            "Please select at least two different reports to analyze for contradictions."
        )

    contradictions = engine.analyze(selected, evidence)

    refs = {}
    for report in selected:
        for ref in report.evidence_refs:
            refs.setdefault(ref.id, ref)

    return store.append_report(
        ReportDraft(
            title=f"Contradiction Analysis of {len(selected)} reports",
            jurisdiction=jurisdiction,
            timezone=timezone_name,
            evidence_refs=list(refs.values()),
            contradictions=contradictions,
        )
    )
