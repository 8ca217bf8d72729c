"""Analysis oracle: model-generated findings with multi-call corroboration.

The oracle is an external model endpoint. Its reply must contain a fenced
```json block with ``reportHtml``, ``findings`` and optional ``highlights``.
Anything else is treated as inconclusive, never as an error.
"""

from __future__ import annotations

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.analysis.verification import classify
from src.config.llm_config import load_llm_config
from src.config_loader import Settings, get_settings
from src.llm.client import LLMClient, get_llm_client
from src.schema import Evidence, Finding, Highlight, VerificationTier

logger = logging.getLogger(__name__)

JSON_BLOCK_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")

MSG_INCOMPLETE = "I generated a report, but its content was incomplete. Please try again."
MSG_BAD_FORMAT = "I generated a report, but there was an issue with its format. Please try again."
MSG_UNSTRUCTURED = (
    "I was unable to generate a structured report from this document. "
    "The content may be unclear or unsupported."
)
MSG_FAILED = "An error occurred during the forensic analysis. Please check the file and try again."
MSG_INCONCLUSIVE = (
    "Analysis was inconclusive. The AI could not generate a valid report for this evidence. "
    "Please try another file."
)


SYSTEM_INSTRUCTION = """You are a forensic evidence analyst acting as a calm, professional co-counsel.
Analyze the provided digital evidence and report only what the evidence supports.

Principles:
1. If evidence is missing or appears concealed, state that the conclusion is
   INDETERMINATE_DUE_TO_CONCEALMENT. Never guess or fill gaps.
2. Every finding must be traceable: trigger + source + rationale.
3. Frame the analysis within the legal context of the jurisdiction: {jurisdiction}.
   Provide legal context, not legal advice.
4. Keep a factual, neutral tone. Prefer "there is a contradiction between the
   statement and the evidence" over accusatory language.

Reply with a brief confirmation, then exactly one JSON object in a ```json code block:
{{
  "reportHtml": "<!DOCTYPE html>...",
  "findings": [{{"title": "...", "trigger": "...", "source": "...", "rationale": "..."}}],
  "highlights": [{{"findingIndex": 1, "boundingBox": [{{"x": 0.1, "y": 0.2}}]}}]
}}
"""

ANALYSIS_PROMPT = """Analyze the attached evidence.
File Name: {name}
File Type: {type}
File Hash (SHA-512): {sha512}
Jurisdiction: {jurisdiction}
{text_section}
Generate a sealed forensic report by following the protocol exactly. Highlights
apply to image evidence only; use an empty array otherwise."""


class _OracleFinding(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    trigger: str = ""
    source: str = ""
    rationale: str = ""


class _OracleVertex(BaseModel):
    x: float
    y: float


class _OracleHighlight(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    finding_index: int = Field(alias="findingIndex", ge=1)
    bounding_box: list[_OracleVertex] = Field(default_factory=list, alias="boundingBox")


class OraclePayload(BaseModel):
    """Validated structured part of an oracle reply."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    report_html: str = Field(alias="reportHtml", min_length=1)
    findings: list[_OracleFinding]
    highlights: list[_OracleHighlight] = Field(default_factory=list)


@dataclass
class OracleResult:
    """One oracle invocation: introductory text plus payload (None if unusable)."""

    intro: str
    data: Optional[OraclePayload] = None

    @property
    def valid(self) -> bool:
        return self.data is not None


@dataclass
class CorroboratedAnalysis:
    """Findings of the first valid reply, tiered by how many replies were valid."""

    intro: str
    tier: VerificationTier
    valid_count: int
    findings: list[Finding] = field(default_factory=list)
    highlights: list[Highlight] = field(default_factory=list)
    report_html: Optional[str] = None


def parse_response(raw_text: str) -> OracleResult:
    """Extract and validate the JSON block of a reply."""
    match = JSON_BLOCK_RE.search(raw_text or "")
    if not match:
        return OracleResult(intro=MSG_UNSTRUCTURED)

    intro = raw_text[: match.start()].strip()
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning(f"Oracle reply carried invalid JSON: {e}")
        return OracleResult(intro=MSG_BAD_FORMAT)

    if not isinstance(data, dict) or not data.get("reportHtml") or "findings" not in data:
        return OracleResult(intro=MSG_INCOMPLETE)

    try:
        payload = OraclePayload.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Oracle reply failed validation: {e.error_count()} errors")
        return OracleResult(intro=MSG_BAD_FORMAT)

    return OracleResult(intro=intro, data=payload)


class AnalysisOracle:
    """Adapter around the model endpoint."""

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize oracle.

        Args:
            client: LLM client. If None, built from the runtime provider config.
            settings: Settings instance. If None, loads from config.
        """
        self.settings = settings or get_settings()
        self.client = client or get_llm_client(
            load_llm_config(), timeout=self.settings.oracle.timeout
        )

    def build_prompt(self, evidence: Evidence) -> str:
        text = (evidence.extracted_text or "")[: self.settings.oracle.max_text_chars]
        text_section = f"\nOCR-EXTRACTED TEXT FOR CONTEXT:\n{text}\n" if text else ""
        return ANALYSIS_PROMPT.format(
            name=evidence.name,
            type=evidence.type,
            sha512=evidence.sha512,
            jurisdiction=evidence.jurisdiction,
            text_section=text_section,
        )

    def analyze(self, evidence: Evidence) -> OracleResult:
        """One oracle invocation. Failures come back as an invalid result."""
        try:
            raw = self.client.generate(
                self.build_prompt(evidence),
                system=SYSTEM_INSTRUCTION.format(jurisdiction=evidence.jurisdiction),
                model=self.settings.oracle.model,
                temperature=self.settings.oracle.temperature,
            )
        except (requests.RequestException, RuntimeError, ValueError) as e:
            logger.error(f"Oracle call for {evidence.id} failed: {e}", exc_info=True)
            return OracleResult(intro=MSG_FAILED)
        return parse_response(raw)

    def corroborate(
        self, evidence: Evidence, invocations: Optional[int] = None
    ) -> Optional[CorroboratedAnalysis]:
        """Invoke the oracle several times and tier the outcome.

        Returns:
            CorroboratedAnalysis, or None when no invocation produced a
            usable reply (inconclusive; nothing should be persisted).
        """
        invocations = invocations or self.settings.oracle.invocations
        with ThreadPoolExecutor(max_workers=invocations) as executor:
            results = list(executor.map(lambda _: self.analyze(evidence), range(invocations)))

        valid = [r for r in results if r.valid]
        if not valid:
            logger.info(f"Oracle inconclusive for {evidence.id}: 0/{invocations} valid replies")
            return None

        tier = classify(len(valid))
        primary = valid[0]
        payload = primary.data
        return CorroboratedAnalysis(
            intro=primary.intro or "Analysis complete.",
            tier=tier,
            valid_count=len(valid),
            findings=[Finding(**f.model_dump(), verification=tier) for f in payload.findings],
            highlights=[
                Highlight(
                    finding_index=h.finding_index,
                    bounding_box=[v.model_dump() for v in h.bounding_box],
                )
                for h in payload.highlights
            ],
            report_html=payload.report_html,
        )
