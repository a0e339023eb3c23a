"""
Test Labeled Response Parsing
=============================

Bilingual, tolerant field extraction and the parse report.
"""

import pytest

from cognitiveCycle.response_parsing import LabeledResponse, is_question, parse_signed_score, parse_unit_score


@pytest.mark.parametrize("text, expected", [
    ("0.85", 0.85),
    ("85%", 0.85),
    ("7/10", 0.7),
    ("70/100", 0.7),
    ("8", 0.8),
    ("about 0.4 overall", 0.4),
    ("1.5", 1.0),
])
def test_parse_unit_score(text, expected):
    assert parse_unit_score(text) == pytest.approx(expected)


def test_parse_unit_score_without_number():
    assert parse_unit_score("no idea") is None
    assert parse_unit_score("") is None


def test_parse_signed_score_clamps():
    assert parse_signed_score("-0.4") == pytest.approx(-0.4)
    assert parse_signed_score("+0.6 mostly") == pytest.approx(0.6)
    assert parse_signed_score("-3") == -1.0
    assert parse_signed_score("none") is None


def test_english_and_japanese_labels():
    reply = "安全性スコア：0.9\nEthics score: 0.7\n懸念事項: なし\nRecommendations: keep going | add sources"
    parsed = LabeledResponse(reply)

    assert parsed.score("safety", ("safety score", "安全性スコア"), 0.8) == pytest.approx(0.9)
    assert parsed.score("ethics", ("ethics score", "倫理性スコア"), 0.8) == pytest.approx(0.7)
    assert parsed.list_field("concerns", ("concerns", "懸念事項")) == ()
    assert parsed.list_field("recommendations", ("recommendations",)) == ("keep going", "add sources")
    assert parsed.report.parsed == ["safety", "ethics", "recommendations"]
    assert parsed.report.defaulted == ["concerns"]
    assert parsed.report.degraded


def test_missing_fields_default_and_never_raise():
    parsed = LabeledResponse("The model rambled without any structure at all.")

    assert parsed.score("safety", ("safety score",), 0.8) == 0.8
    assert parsed.text_field("reasoning", ("reasoning",), "fallback") == "fallback"
    assert parsed.report.defaulted == ["safety", "reasoning"]


def test_label_must_be_in_line_head():
    parsed = LabeledResponse("Note: the safety score was discussed\nSafety score: 0.6")

    assert parsed.score("safety", ("safety score",), 0.8) == pytest.approx(0.6)


def test_empty_heading_does_not_hide_later_value():
    parsed = LabeledResponse("Agreement:\nAgreement level: -0.5\nReasoning: none\nReasoning: the views diverge")

    assert parsed.signed_score("agreement", ("agreement",), 0.0) == pytest.approx(-0.5)
    assert parsed.text_field("reasoning", ("reasoning",), "fallback") == "the views diverge"
    assert parsed.report.defaulted == []


def test_labels_are_tried_in_priority_order():
    parsed = LabeledResponse("Confidence notes: 3 sources agree\nConfidence score: 0.65")

    assert parsed.score("confidence", ("confidence score", "confidence"), 0.5) == pytest.approx(0.65)


def test_list_field_keep_filter():
    parsed = LabeledResponse("Unresolved questions: Why do we listen? | a statement | 何が残るのか")
    questions = parsed.list_field("q", ("unresolved",), keep=is_question)

    assert questions == ("Why do we listen?", "何が残るのか")


@pytest.mark.parametrize("text, expected", [
    ("What remains?", True),
    ("How could this change", True),
    ("なぜ私たちは問うのか", True),
    ("This is a statement.", False),
    ("", False),
])
def test_is_question(text, expected):
    assert is_question(text) is expected
