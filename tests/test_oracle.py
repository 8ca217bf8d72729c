"""Tests for oracle reply parsing and corroboration."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from src.analysis.oracle import (
    MSG_BAD_FORMAT,
    MSG_FAILED,
    MSG_INCOMPLETE,
    MSG_UNSTRUCTURED,
    AnalysisOracle,
    parse_response,
)
from src.analysis.verification import CONSENSUS, VERIFIED

PAYLOAD = {
    "reportHtml": "<!DOCTYPE html><html><body>Report</body></html>",
    "findings": [
        {
            "title": "Signature mismatch",
            "trigger": "Page 2",
            "source": "contract.pdf",
            "rationale": "Signature differs from the specimen.",
        }
    ],
    "highlights": [{"findingIndex": 1, "boundingBox": [{"x": 0.1, "y": 0.2}, {"x": 0.3, "y": 0.4}]}],
}


def reply(payload=PAYLOAD, intro="Analysis complete. Findings below."):
    return f"{intro}\n```json\n{json.dumps(payload)}\n```"


@pytest.fixture
def evidence(store):
    stored = store.put_evidence(b"%PDF", "contract.pdf", "application/pdf", jurisdiction="UAE")
    return store.attach_extracted_text(stored.id, "Contract text")


def make_oracle(settings, replies):
    client = MagicMock()
    client.generate.side_effect = replies
    return AnalysisOracle(client=client, settings=settings), client


def test_parse_valid_reply():
    result = parse_response(reply())

    assert result.valid
    assert result.intro == "Analysis complete. Findings below."
    assert result.data.findings[0].title == "Signature mismatch"
    assert result.data.highlights[0].finding_index == 1


def test_parse_without_json_block():
    result = parse_response("I could not analyze this file.")
    assert not result.valid
    assert result.intro == MSG_UNSTRUCTURED


def test_parse_invalid_json():
    result = parse_response("Intro\n```json\n{not json}\n```")
    assert not result.valid
    assert result.intro == MSG_BAD_FORMAT


def test_parse_missing_fields():
    result = parse_response(reply({"findings": []}))
    assert not result.valid
    assert result.intro == MSG_INCOMPLETE


def test_parse_bad_highlight_index():
    payload = dict(PAYLOAD, highlights=[{"findingIndex": 0, "boundingBox": []}])
    result = parse_response(reply(payload))
    assert not result.valid
    assert result.intro == MSG_BAD_FORMAT


def test_prompt_carries_digest_and_text(settings, evidence):
    oracle, _ = make_oracle(settings, [])
    prompt = oracle.build_prompt(evidence)

    assert evidence.sha512 in prompt
    assert "Contract text" in prompt
    assert "Jurisdiction: UAE" in prompt


def test_analyze_uses_jurisdiction_instruction(settings, evidence):
    oracle, client = make_oracle(settings, [reply()])
    oracle.analyze(evidence)

    system = client.generate.call_args.kwargs["system"]
    assert "jurisdiction: UAE" in system


def test_analyze_maps_transport_errors(settings, evidence):
    oracle, _ = make_oracle(settings, [requests.ConnectionError("refused")])
    result = oracle.analyze(evidence)
    assert not result.valid
    assert result.intro == MSG_FAILED


def test_corroborate_all_valid(settings, evidence):
    oracle, client = make_oracle(settings, [reply(), reply(), reply()])

    analysis = oracle.corroborate(evidence)

    assert client.generate.call_count == 3
    assert analysis.tier == VERIFIED
    assert analysis.valid_count == 3
    assert analysis.findings[0].verification == VERIFIED
    assert analysis.highlights[0].bounding_box[1].x == 0.3
    assert analysis.report_html.startswith("<!DOCTYPE html>")


def test_corroborate_two_of_three(settings, evidence):
    oracle, _ = make_oracle(settings, [reply(), "no json here", reply()])
    analysis = oracle.corroborate(evidence)
    assert analysis.tier == CONSENSUS
    assert analysis.findings[0].verification == CONSENSUS


def test_corroborate_nothing_valid(settings, evidence):
    oracle, _ = make_oracle(settings, ["nothing", RuntimeError("HTTP 500"), "```json\n[]\n```"])
    assert oracle.corroborate(evidence) is None
