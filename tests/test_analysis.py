"""Tests for response parsing, highlighting and the detection pipeline."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import json

import pytest

from span_reconciler import (
    DetectionPipeline, FlagCandidate, FlagKind, MatchStrategy, Severity,
    highlight, parse_analysis, reconcile, sanitize,
)
from span_reconciler.analysis import (
    NO_JSON, UNPARSEABLE, ConfidenceLevel, clean_model_output, coerce_flag,
    score_label,
)


REPLY = {
    "overallScore": 87,
    "confidence": "high",
    "summary": "Several strong indicators.",
    "flags": [
        {
            "type": "buzzword_heavy",
            "severity": "high",
            "description": "Corporate phrasing",
            "text": "quick brown fox",
            "startIndex": 100,
            "endIndex": 115,
            "confidence": 80,
            "suggestion": "Be specific",
        },
        {
            "type": "robotic_flow",
            "severity": "medium",
            "description": "Uniform rhythm",
            "text": "Entire text",
            "startIndex": 0,
            "endIndex": 0,
            "confidence": 65,
            "suggestion": "Vary sentence length",
        },
    ],
    "metrics": {
        "sentenceVariability": 20,
        "vocabularyDiversity": 35,
        "naturalFlow": 30,
        "personalityPresence": 10,
        "burstiness": 15,
        "perplexity": 25,
    },
    "recommendations": ["Add a personal anecdote"],
}


# ── Cleanup ──────────────────────────────────────────────────────────

def test_clean_strips_code_fence():
    raw = "```json\n" + json.dumps(REPLY) + "\n```"
    assert json.loads(clean_model_output(raw)) == REPLY


def test_clean_strips_preamble_and_trailer():
    raw = "Here's the analysis: " + json.dumps(REPLY) + "\nHope this helps!"
    assert json.loads(clean_model_output(raw)) == REPLY


def test_clean_handles_empty():
    assert clean_model_output("") == ""
    assert clean_model_output(None) == ""


# ── Parsing ──────────────────────────────────────────────────────────

def test_parse_full_reply():
    analysis = parse_analysis(json.dumps(REPLY))
    assert analysis.overall_score == 87
    assert analysis.confidence is ConfidenceLevel.HIGH
    assert analysis.summary == "Several strong indicators."
    assert len(analysis.flags) == 2
    flag = analysis.flags[0]
    assert flag.kind is FlagKind.BUZZWORD_HEAVY
    assert flag.severity is Severity.HIGH
    assert flag.claimed_text == "quick brown fox"
    assert flag.claimed_start_index == 100
    assert flag.explanation == "Corporate phrasing"
    assert analysis.metrics.vocabulary_diversity == 35
    assert analysis.metrics.to_dict() == REPLY["metrics"]
    assert analysis.recommendations == ["Add a personal anecdote"]


def test_parse_no_json_falls_back():
    analysis = parse_analysis("I'm sorry, I can't analyse that.")
    assert analysis.overall_score == 0
    assert analysis.confidence is ConfidenceLevel.LOW
    assert analysis.flags == []
    assert analysis.summary == NO_JSON[0]
    assert analysis.recommendations == NO_JSON[1]


def test_parse_broken_json_falls_back():
    analysis = parse_analysis("{overallScore: 87, flags: [}")
    assert analysis.summary == UNPARSEABLE[0]
    assert analysis.flags == []


def test_parse_non_object_json():
    analysis = parse_analysis("[1, 2, 3]")
    assert analysis.summary == NO_JSON[0]


def test_parse_missing_fields_default():
    analysis = parse_analysis('{"summary": "ok"}')
    assert analysis.overall_score == 0
    assert analysis.flags == []
    assert analysis.recommendations == []
    assert analysis.metrics.burstiness == 0
    assert analysis.confidence is ConfidenceLevel.LOW


def test_parse_non_list_flags_ignored():
    analysis = parse_analysis('{"overallScore": 50, "flags": 5}')
    assert analysis.overall_score == 50
    assert analysis.flags == []


def test_parse_unknown_confidence_level():
    analysis = parse_analysis('{"confidence": "absolute"}')
    assert analysis.confidence is ConfidenceLevel.LOW


def test_coerce_flag_drops_unknown_type():
    assert coerce_flag({"type": "sounds_like_a_robot", "text": "x"}) is None


def test_coerce_flag_tolerates_bad_fields():
    flag = coerce_flag({
        "type": "Hedging_Language",
        "severity": "extreme",
        "text": None,
        "startIndex": "abc",
        "confidence": 150,
    })
    assert flag.kind is FlagKind.HEDGING_LANGUAGE
    assert flag.severity is Severity.LOW
    assert flag.claimed_text == ""
    assert flag.claimed_start_index == 0
    assert flag.confidence == 100


def test_coerce_flag_numeric_strings():
    flag = coerce_flag({"type": "generic_phrasing", "confidence": "72", "endIndex": 12.0})
    assert flag.confidence == 72
    assert flag.claimed_end_index == 12


def test_score_label():
    assert score_label(95) == "Very Likely AI"
    assert score_label(80) == "Very Likely AI"
    assert score_label(60) == "Likely AI"
    assert score_label(45) == "Possibly AI"
    assert score_label(20) == "Unlikely AI"
    assert score_label(3) == "Likely Human"


# ── Highlight ────────────────────────────────────────────────────────

TEXT = "The quick brown fox jumps over the lazy dog"


def _flag(text, severity=Severity.HIGH, explanation="Corporate phrasing"):
    return FlagCandidate(FlagKind.BUZZWORD_HEAVY, severity, text, confidence=80, explanation=explanation)


def test_highlight_wraps_spans():
    flags = reconcile(TEXT, [_flag("quick brown"), _flag("lazy dog", Severity.LOW)])
    out = highlight(TEXT, flags)
    assert '<span class="ai-flag severity-high" data-flag-id="flag-0"' in out
    assert 'data-severity="low"' in out
    assert 'data-confidence="80"' in out
    assert ">quick brown</span>" in out
    assert ">lazy dog</span>" in out
    assert out.startswith("The ")


def test_highlight_round_trips_through_sanitize():
    flags = reconcile(TEXT, [_flag("quick"), _flag("over the"), _flag("dog")])
    assert sanitize(highlight(TEXT, flags)) == TEXT


def test_highlight_escapes_title():
    flags = reconcile(TEXT, [_flag("fox", explanation='Says "synergy" & <more>')])
    out = highlight(TEXT, flags)
    assert 'title="Says &quot;synergy&quot; &amp; &lt;more&gt;"' in out


def test_highlight_skips_document_wide_and_overlaps():
    flags = reconcile(TEXT, [_flag("quick brown"), _flag("brown fox"), _flag("Entire text")])
    out = highlight(TEXT, flags)
    assert out.count("<span") == 1
    assert ">brown fox</span>" in out


def test_highlight_no_flags():
    assert highlight(TEXT, []) == TEXT


def test_highlight_escapes_text_around_spans():
    canonical = sanitize("a &lt; b")
    out = highlight(canonical, reconcile(canonical, [_flag("b")]))
    assert out.startswith("a &lt; <span")
    assert sanitize(out) == canonical == "a < b"


def test_highlight_does_not_emit_live_markup():
    canonical = sanitize("see &lt;img src=x onerror=alert(1) here")
    assert canonical == "see <img src=x onerror=alert(1) here"
    out = highlight(canonical, reconcile(canonical, [_flag("here")]))
    assert "<img" not in out
    assert "&lt;img" in out
    assert ">here</span>" in out
    assert sanitize(out) == canonical


def test_highlight_escapes_wrapped_text():
    canonical = "x < y & z"
    out = highlight(canonical, reconcile(canonical, [_flag("< y &")]))
    assert ">&lt; y &amp;</span>" in out
    assert sanitize(out) == canonical


# ── Pipeline ─────────────────────────────────────────────────────────

def test_pipeline_reconciles_reply():
    pipeline = DetectionPipeline.create()
    report = pipeline.run("<p>The quick brown fox</p>", "```json\n" + json.dumps(REPLY) + "\n```")
    assert report.canonical_text == "The quick brown fox"
    first, second = report.flags
    assert first.match_strategy is MatchStrategy.EXACT
    assert (first.resolved_start_index, first.resolved_end_index) == (4, 19)
    assert second.document_wide
    assert report.highlighted is None


def test_pipeline_to_dict():
    pipeline = DetectionPipeline.create(with_highlight=True)
    payload = pipeline.run("The quick brown fox", json.dumps(REPLY)).to_dict()
    assert payload["originalText"] == "The quick brown fox"
    assert payload["canonicalText"] == "The quick brown fox"
    analysis = payload["analysis"]
    assert analysis["overallScore"] == 87
    assert analysis["scoreLabel"] == "Very Likely AI"
    assert analysis["confidence"] == "high"
    assert analysis["flags"][0]["startIndex"] == 4
    assert analysis["flags"][1]["text"] == "Entire text"
    assert analysis["metrics"]["naturalFlow"] == 30
    assert "<span" in payload["highlighted"]


def test_pipeline_rejects_empty_text():
    pipeline = DetectionPipeline.create()
    with pytest.raises(ValueError):
        pipeline.run("   ", json.dumps(REPLY))


def test_pipeline_survives_garbage_reply():
    report = DetectionPipeline.create().run("Some text here.", "not json at all")
    assert report.flags == []
    assert report.analysis.summary == NO_JSON[0]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
